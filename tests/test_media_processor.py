import base64
import io
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

from zapcore.media_processor import (
    MediaProcessingError,
    MediaProcessor,
    MediaValidationError,
    ProcessedMedia,
)
from zapcore.media_utils import MediaValueError

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 24
MP3 = b"ID3\x03\x00" + b"\x00" * 8


class _Handler(BaseHTTPRequestHandler):
    routes = {
        "/png": (200, PNG, "image/png"),
        "/sniff": (200, PNG, None),
        "/empty": (204, b"", None),
    }

    def do_GET(self):
        status, body, content_type = self.routes.get(self.path, (404, b"", None))
        self.send_response(status)
        if content_type:
            self.send_header("Content-Type", content_type)
        if status != 204:
            self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        if body:
            self.wfile.write(body)

    def log_message(self, *args):
        pass


@pytest.fixture
def server_url():
    server = ThreadingHTTPServer(("127.0.0.1", 0), _Handler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield f"http://127.0.0.1:{server.server_address[1]}"
    finally:
        server.shutdown()
        server.server_close()


def test_process_base64():
    encoded = base64.b64encode(PNG).decode()
    media = MediaProcessor().process_base64(f"data:image/png;base64,{encoded}")
    assert media.data == PNG
    assert media.mime_type == "image/png"
    assert media.file_name == "image.png"
    assert media.size == len(PNG)


def test_process_base64_error():
    with pytest.raises(MediaValueError, match="erro ao decodificar base64"):
        MediaProcessor().process_base64("not a data url")


def test_process_stream_sniffs_and_names():
    media = MediaProcessor().process_stream(io.BytesIO(MP3))
    assert media.mime_type == "audio/mpeg"
    assert media.file_name == "audio.mp3"


def test_process_stream_sanitizes_name_and_keeps_type():
    media = MediaProcessor().process_stream(io.BytesIO(b"abc"), "dir/file?.pdf", "application/pdf")
    assert media.file_name == "dir_file_.pdf"
    assert media.mime_type == "application/pdf"
    assert media.open().read() == b"abc"


def test_process_url_uses_content_type(server_url):
    media = MediaProcessor().process_url(f"{server_url}/png")
    assert media.data == PNG
    assert media.mime_type == "image/png"
    assert media.file_name == "image.png"


def test_process_url_sniffs_without_content_type(server_url):
    media = MediaProcessor().process_url(f"{server_url}/sniff")
    assert media.mime_type == "image/png"


@pytest.mark.parametrize("path", ["/missing", "/empty"])
def test_process_url_non_ok_status(server_url, path):
    with pytest.raises(MediaProcessingError):
        MediaProcessor().process_url(f"{server_url}{path}")


def test_process_url_unreachable():
    with pytest.raises(MediaProcessingError):
        MediaProcessor(timeout=2).process_url("http://127.0.0.1:1/x")


def test_validate_accepts_image_and_audio():
    processor = MediaProcessor()
    image = ProcessedMedia(data=PNG, mime_type="image/png", file_name="a.png")
    processor.validate(image, "image")
    processor.validate(image, "sticker")
    processor.validate(ProcessedMedia(data=MP3, mime_type="audio/mpeg", file_name="a.mp3"), "audio")
    assert image.is_image()


@pytest.mark.parametrize(
    "data, media_type",
    [(b"text", "image"), (PNG, "video"), (b"", "document"), (PNG, "hologram")],
)
def test_validate_rejects(data, media_type):
    media = ProcessedMedia(data=data, mime_type="", file_name="x")
    with pytest.raises(MediaValueError):
        MediaProcessor().validate(media, media_type)


@pytest.mark.parametrize(
    "mime, kind",
    [
        ("image/png", "image"),
        ("video/mp4", "video"),
        ("audio/ogg", "audio"),
        ("application/pdf", "document"),
    ],
)
def test_kind_checks(mime, kind):
    media = ProcessedMedia(data=b"x", mime_type=mime, file_name="x")
    result = {
        "image": media.is_image(),
        "video": media.is_video(),
        "audio": media.is_audio(),
        "document": media.is_document(),
    }
    assert [k for k, v in result.items() if v] == [kind]


def test_kind_checks_empty_mime():
    media = ProcessedMedia(data=b"x", mime_type="", file_name="x")
    assert not (media.is_image() or media.is_video() or media.is_audio() or media.is_document())


def test_create_thumbnail_only_for_images():
    image = ProcessedMedia(data=PNG, mime_type="image/png", file_name="a.png")
    image.create_thumbnail()
    assert image.thumbnail == PNG
    audio = ProcessedMedia(data=MP3, mime_type="audio/mpeg", file_name="a.mp3")
    audio.create_thumbnail()
    assert audio.thumbnail is None


def test_size_formatted():
    assert ProcessedMedia(b"x" * 512, "", "x").size_formatted() == "512 B"
    assert ProcessedMedia(b"x" * 1536, "", "x").size_formatted() == "1.5 KB"
    assert ProcessedMedia(b"x" * (1024 * 1024), "", "x").size_formatted().endswith(" MB")


def test_error_messages():
    assert str(MediaValidationError("size", "too big")) == "validação de mídia falhou em size: too big"
    cause = OSError("boom")
    err = MediaProcessingError("ler", "falhou", cause)
    assert str(err) == "erro ao ler: falhou (causa: boom)"
    assert err.__cause__ is cause
    assert str(MediaProcessingError("ler", "falhou")) == "erro ao ler: falhou"