import logging
import uuid
from dataclasses import dataclass, field
from typing import Any

import pytest

from zapcore.logger import Logger
from zapcore.webhook_usecases import (
    DispatchRequest,
    DispatchUseCase,
    ProcessPendingUseCase,
    RetryRequest,
    RetryUseCase,
)


def _quiet_logger() -> Logger:
    base = logging.Logger("test-webhooks")
    base.addHandler(logging.NullHandler())
    base.propagate = False
    return Logger(base)


@dataclass
class FakeEvent:
    session_id: Any
    event_type: Any
    url: str
    payload: dict
    id: uuid.UUID = field(default_factory=uuid.uuid4)


class FakeRepo:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.created: list = []

    def create(self, event):
        if self.fail:
            raise OSError("db down")
        self.created.append(event)


class FakeService:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.sent: list = []
        self.pending_calls = 0
        self.retried: list = []

    def send_async(self, event):
        if self.fail:
            raise ConnectionError("unreachable")
        self.sent.append(event)

    def process_pending_events(self):
        if self.fail:
            raise ConnectionError("unreachable")
        self.pending_calls += 1

    def retry(self, event_id):
        if self.fail:
            raise KeyError("missing")
        self.retried.append(event_id)


def _dispatch_request() -> DispatchRequest:
    return DispatchRequest(
        session_id=uuid.uuid4(),
        event_type="message",
        url="https://hooks.example.com/in",
        payload={"text": "hello"},
    )


def test_dispatch_stores_and_sends_event():
    repo, service = FakeRepo(), FakeService()
    use_case = DispatchUseCase(repo, service, FakeEvent, logger=_quiet_logger())
    request = _dispatch_request()

    response = use_case.execute(request)

    assert len(repo.created) == 1
    event = repo.created[0]
    assert service.sent == [event]
    assert response.event_id == event.id
    assert event.session_id == request.session_id
    assert event.url == request.url
    assert event.payload == {"text": "hello"}
    assert response.message == "Webhook despachado com sucesso"


def test_dispatch_repo_failure_does_not_send():
    service = FakeService()
    use_case = DispatchUseCase(FakeRepo(fail=True), service, FakeEvent, logger=_quiet_logger())

    with pytest.raises(RuntimeError, match="erro ao salvar evento: db down"):
        use_case.execute(_dispatch_request())
    assert service.sent == []


def test_dispatch_send_failure():
    repo = FakeRepo()
    use_case = DispatchUseCase(repo, FakeService(fail=True), FakeEvent, logger=_quiet_logger())

    with pytest.raises(RuntimeError, match="erro ao enviar webhook") as info:
        use_case.execute(_dispatch_request())
    assert isinstance(info.value.__cause__, ConnectionError)
    assert len(repo.created) == 1


def test_process_pending_success():
    service = FakeService()
    response = ProcessPendingUseCase(service, logger=_quiet_logger()).execute()

    assert service.pending_calls == 1
    assert response.processed_count == 0
    assert response.message == "Webhooks pendentes processados com sucesso"


def test_process_pending_failure():
    use_case = ProcessPendingUseCase(FakeService(fail=True), logger=_quiet_logger())
    with pytest.raises(RuntimeError, match="erro ao processar webhooks pendentes"):
        use_case.execute()


def test_retry_echoes_event_id():
    service = FakeService()
    event_id = uuid.uuid4()

    response = RetryUseCase(service, logger=_quiet_logger()).execute(RetryRequest(event_id=event_id))

    assert service.retried == [event_id]
    assert response.event_id == event_id
    assert response.message == "Webhook reprocessado com sucesso"


def test_retry_failure():
    use_case = RetryUseCase(FakeService(fail=True), logger=_quiet_logger())
    with pytest.raises(RuntimeError, match="erro ao reprocessar webhook") as info:
        use_case.execute(RetryRequest(event_id=uuid.uuid4()))
    assert isinstance(info.value.__cause__, KeyError)