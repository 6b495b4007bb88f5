import json
import logging
from datetime import datetime

import pytest

from zapcore import logger as log_module
from zapcore.logger import LoggerConfig, create_logger, parse_level


def _entries(text):
    return [json.loads(line) for line in text.splitlines() if line.strip()]


def _json_logger(level="debug"):
    return create_logger(LoggerConfig(level=level, format="json"))


@pytest.mark.parametrize(
    "name, expected",
    [
        ("debug", logging.DEBUG),
        ("DEBUG", logging.DEBUG),
        ("info", logging.INFO),
        ("warn", logging.WARNING),
        ("warning", logging.WARNING),
        ("error", logging.ERROR),
        ("fatal", logging.CRITICAL),
        ("nonsense", logging.INFO),
        ("", logging.INFO),
    ],
)
def test_parse_level(name, expected):
    assert parse_level(name) == expected


def test_level_ordering():
    assert parse_level("fatal") < parse_level("panic") < parse_level("disabled")


def test_json_entry_fields(capsys):
    log = _json_logger()
    log.info("hello", count=3)
    (entry,) = _entries(capsys.readouterr().out)
    assert entry["level"] == "info"
    assert entry["message"] == "hello"
    assert entry["count"] == 3
    assert "time" in entry
    path, _, line = entry["caller"].rpartition(":")
    assert path.endswith("test_logger.py")
    assert line.isdigit()


def test_threshold_filters_lower_levels(capsys):
    log = _json_logger(level="warn")
    log.debug("d")
    log.info("i")
    log.warning("w")
    log.error("e")
    entries = _entries(capsys.readouterr().out)
    assert [e["message"] for e in entries] == ["w", "e"]
    assert [e["level"] for e in entries] == ["warn", "error"]


def test_disabled_emits_nothing(capsys):
    log = _json_logger(level="disabled")
    log.error("e")
    assert capsys.readouterr().out == ""


def test_context_fields_do_not_mutate_parent(capsys):
    log = _json_logger()
    child = log.with_session_id("s1").with_jid("j1").with_status("connected")
    child.info("child")
    log.info("parent")
    child_entry, parent_entry = _entries(capsys.readouterr().out)
    assert child_entry["session_id"] == "s1"
    assert child_entry["jid"] == "j1"
    assert child_entry["status"] == "connected"
    assert "session_id" not in parent_entry


def test_with_field_and_fields(capsys):
    log = _json_logger().with_field("a", 1).with_fields({"b": [1, 2], "a": 5})
    log.info("x")
    (entry,) = _entries(capsys.readouterr().out)
    assert entry["a"] == 5
    assert entry["b"] == [1, 2]


def test_with_error(capsys):
    log = _json_logger()
    log.with_error(ValueError("boom")).error("failed")
    log.with_error(None).error("no error")
    with_err, without = _entries(capsys.readouterr().out)
    assert with_err["error"] == "boom"
    assert "error" not in without


def test_fatal_exits(capsys):
    log = _json_logger()
    with pytest.raises(SystemExit) as info:
        log.fatal("bye")
    assert info.value.code == 1
    (entry,) = _entries(capsys.readouterr().out)
    assert entry["level"] == "fatal"


def test_panic_raises(capsys):
    log = _json_logger()
    with pytest.raises(RuntimeError, match="oops"):
        log.panic("oops")
    (entry,) = _entries(capsys.readouterr().out)
    assert entry["level"] == "panic"


def test_console_format(capsys):
    log = create_logger(LoggerConfig(level="info", format="console"))
    log.info("hello")
    out = capsys.readouterr().out
    assert "hello" in out
    assert "INF" in out


def test_dual_output_writes_file(tmp_path, capsys):
    config = LoggerConfig(level="info", dual_output=True, file_path=str(tmp_path / "logs" / "app.log"))
    log = create_logger(config)
    log.info("dual", key="v")
    out = capsys.readouterr().out
    assert "dual" in out
    log_file = tmp_path / "logs" / f"zapcore-{datetime.now():%Y-%m-%d}.log"
    (entry,) = _entries(log_file.read_text(encoding="utf-8"))
    assert entry["message"] == "dual"
    assert entry["key"] == "v"


def test_dual_output_falls_back_to_console(tmp_path, capsys):
    blocker = tmp_path / "blocker"
    blocker.write_text("x")
    config = LoggerConfig(level="info", dual_output=True, file_path=str(blocker / "sub" / "app.log"))
    log = create_logger(config)
    log.info("still works")
    out = capsys.readouterr().out
    assert "Aviso" in out
    assert "still works" in out


def test_global_panic_and_fatal(capsys):
    log_module.init(LoggerConfig(level="info", format="json"))
    with pytest.raises(RuntimeError):
        log_module.panic("p")
    with pytest.raises(SystemExit):
        log_module.fatal("f")
    levels = [e["level"] for e in _entries(capsys.readouterr().out)]
    assert levels == ["panic", "fatal"]


def test_get_creates_default(monkeypatch, capsys):
    monkeypatch.setattr(log_module, "_global_logger", None)
    log_module.get().debug("hidden")
    log_module.get().info("shown")
    out = capsys.readouterr().out
    assert "shown" in out
    assert "hidden" not in out