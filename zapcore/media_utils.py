"""Helpers for media payloads: base64 data URLs, MIME sniffing, limits and names."""

from __future__ import annotations

import base64
import binascii
import io
from collections.abc import Callable
from typing import BinaryIO

_SNIFF_LEN = 512
_WHITESPACE = b"\t\n\x0c\r "

_HTML = "text/html; charset=utf-8"
_TEXT = "text/plain; charset=utf-8"
_BINARY = "application/octet-stream"

MAX_SIZES = {
    "image": 16 * 1024 * 1024,
    "video": 64 * 1024 * 1024,
    "audio": 16 * 1024 * 1024,
    "document": 100 * 1024 * 1024,
    "sticker": 500 * 1024,
}

VALID_IMAGE_TYPES = ("image/jpeg", "image/png", "image/gif", "image/webp")
VALID_VIDEO_TYPES = ("video/mp4", "video/avi", "video/quicktime", "video/x-msvideo", "video/webm")
VALID_AUDIO_TYPES = ("audio/mpeg", "audio/wav", "audio/ogg", "audio/aac", "audio/mp4")

_INVALID_FILE_NAME_CHARS = '/\\:*?"<>|'
_MAX_FILE_NAME_BYTES = 255


class MediaValueError(ValueError):
    """Media data that is malformed, of the wrong kind or out of limits."""


_Sniffer = Callable[[bytes, int], "str | None"]


def _html(tag: str) -> _Sniffer:
    pattern = tag.encode("ascii")

    def match(data: bytes, first_non_ws: int) -> str | None:
        body = data[first_non_ws:]
        if len(body) < len(pattern) + 1:
            return None
        for expected, actual in zip(pattern, body):
            if 0x41 <= expected <= 0x5A:
                actual &= 0xDF
            if actual != expected:
                return None
        if body[len(pattern)] not in b" >":
            return None
        return _HTML

    return match


def _masked(mask: bytes, pattern: bytes, content_type: str, skip_ws: bool = False) -> _Sniffer:
    def match(data: bytes, first_non_ws: int) -> str | None:
        body = data[first_non_ws:] if skip_ws else data
        if len(body) < len(pattern):
            return None
        if all(b & m == p for b, m, p in zip(body, mask, pattern)):
            return content_type
        return None

    return match


def _exact(signature: bytes, content_type: str) -> _Sniffer:
    def match(data: bytes, first_non_ws: int) -> str | None:
        return content_type if data.startswith(signature) else None

    return match


def _mp4(data: bytes, first_non_ws: int) -> str | None:
    if len(data) < 12:
        return None
    box_size = int.from_bytes(data[:4], "big")
    if len(data) < box_size or box_size % 4:
        return None
    if data[4:8] != b"ftyp":
        return None
    for start in range(8, box_size, 4):
        if start != 12 and data[start : start + 3] == b"mp4":
            return "video/mp4"
    return None


def _text(data: bytes, first_non_ws: int) -> str | None:
    for b in data[first_non_ws:]:
        if b <= 0x08 or b == 0x0B or 0x0E <= b <= 0x1A or 0x1C <= b <= 0x1F:
            return None
    return _TEXT


_SNIFFERS: tuple[_Sniffer, ...] = (
    *(
        _html(tag)
        for tag in (
            "<!DOCTYPE HTML", "<HTML", "<HEAD", "<SCRIPT", "<IFRAME", "<H1", "<DIV",
            "<FONT", "<TABLE", "<A", "<STYLE", "<TITLE", "<B", "<BODY", "<BR", "<P", "<!--",
        )
    ),
    _masked(b"\xff\xff\xff\xff\xff", b"<?xml", "text/xml; charset=utf-8", skip_ws=True),
    _exact(b"%PDF-", "application/pdf"),
    _exact(b"%!PS-Adobe-", "application/postscript"),
    _masked(b"\xff\xff\x00\x00", b"\xfe\xff\x00\x00", "text/plain; charset=utf-16be"),
    _masked(b"\xff\xff\x00\x00", b"\xff\xfe\x00\x00", "text/plain; charset=utf-16le"),
    _masked(b"\xff\xff\xff\x00", b"\xef\xbb\xbf\x00", _TEXT),
    _exact(b"\x00\x00\x01\x00", "image/x-icon"),
    _exact(b"\x00\x00\x02\x00", "image/x-icon"),
    _exact(b"BM", "image/bmp"),
    _exact(b"GIF87a", "image/gif"),
    _exact(b"GIF89a", "image/gif"),
    _masked(
        b"\xff\xff\xff\xff\x00\x00\x00\x00\xff\xff\xff\xff\xff\xff",
        b"RIFF\x00\x00\x00\x00WEBPVP",
        "image/webp",
    ),
    _exact(b"\x89PNG\r\n\x1a\n", "image/png"),
    _exact(b"\xff\xd8\xff", "image/jpeg"),
    _masked(b"\xff\xff\xff\xff", b".snd", "audio/basic"),
    _masked(
        b"\xff\xff\xff\xff\x00\x00\x00\x00\xff\xff\xff\xff",
        b"FORM\x00\x00\x00\x00AIFF",
        "audio/aiff",
    ),
    _masked(b"\xff\xff\xff", b"ID3", "audio/mpeg"),
    _masked(b"\xff\xff\xff\xff\xff", b"OggS\x00", "application/ogg"),
    _masked(b"\xff" * 8, b"MThd\x00\x00\x00\x06", "audio/midi"),
    _masked(
        b"\xff\xff\xff\xff\x00\x00\x00\x00\xff\xff\xff\xff",
        b"RIFF\x00\x00\x00\x00AVI ",
        "video/avi",
    ),
    _masked(
        b"\xff\xff\xff\xff\x00\x00\x00\x00\xff\xff\xff\xff",
        b"RIFF\x00\x00\x00\x00WAVE",
        "audio/wave",
    ),
    _mp4,
    _exact(b"\x1a\x45\xdf\xa3", "video/webm"),
    _masked(b"\x00" * 34 + b"\xff\xff", b"\x00" * 34 + b"LP", "application/vnd.ms-fontobject"),
    _exact(b"\x00\x01\x00\x00", "font/ttf"),
    _exact(b"OTTO", "font/otf"),
    _exact(b"ttcf", "font/collection"),
    _exact(b"wOFF", "font/woff"),
    _exact(b"wOF2", "font/woff2"),
    _exact(b"\x1f\x8b\x08", "application/x-gzip"),
    _exact(b"PK\x03\x04", "application/zip"),
    _exact(b"Rar!\x1a\x07\x00", "application/x-rar-compressed"),
    _exact(b"Rar!\x1a\x07\x01\x00", "application/x-rar-compressed"),
    _exact(b"\x00asm", "application/wasm"),
    _text,
)


def detect_mime_type(data: bytes) -> str:
    """Sniff the content type from at most the first 512 bytes of ``data``."""
    head = bytes(data[:_SNIFF_LEN])
    first_non_ws = len(head) - len(head.lstrip(_WHITESPACE))
    for sniff in _SNIFFERS:
        content_type = sniff(head, first_non_ws)
        if content_type:
            return content_type
    return _BINARY


def decode_base64_media(base64_data: str) -> tuple[bytes, str]:
    """Decode a ``data:`` URL into its bytes and MIME type."""
    if not base64_data.startswith("data:"):
        raise MediaValueError("base64 deve começar com 'data:'")
    header, sep, payload = base64_data.partition(",")
    if not sep:
        raise MediaValueError("formato base64 inválido")

    mime_type = header[len("data:") :].split(";", 1)[0]

    try:
        data = base64.b64decode(payload.replace("\r", "").replace("\n", ""), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise MediaValueError(f"erro ao decodificar base64: {exc}") from exc

    if not mime_type:
        mime_type = detect_mime_type(data)
    return data, mime_type


class _PrefixedStream(io.RawIOBase):
    """Reads ``prefix`` first, then the rest of ``stream``."""

    def __init__(self, prefix: bytes, stream: BinaryIO) -> None:
        super().__init__()
        self._prefix = io.BytesIO(prefix)
        self._stream = stream

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:  # type: ignore[override]
        view = memoryview(buffer).cast("B")
        count = self._prefix.readinto(view)
        if count:
            return count
        chunk = self._stream.read(len(view))
        if not chunk:
            return 0
        view[: len(chunk)] = chunk
        return len(chunk)


def detect_mime_type_from_stream(stream: BinaryIO) -> tuple[str, BinaryIO]:
    """Sniff the type of a stream; return it with a stream that still yields every byte."""
    try:
        head = stream.read(_SNIFF_LEN) or b""
    except OSError as exc:
        raise OSError(f"erro ao ler dados para detectar MIME: {exc}") from exc
    return detect_mime_type(head), io.BufferedReader(_PrefixedStream(head, stream))


def _check_format(data: bytes, valid: tuple[str, ...], kind: str) -> None:
    mime_type = detect_mime_type(data)
    if mime_type not in valid:
        raise MediaValueError(f"formato de {kind} inválido: {mime_type}")


def validate_image_format(data: bytes) -> None:
    """Raise MediaValueError unless ``data`` sniffs as a supported image."""
    _check_format(data, VALID_IMAGE_TYPES, "imagem")


def validate_video_format(data: bytes) -> None:
    """Raise MediaValueError unless ``data`` sniffs as a supported video."""
    _check_format(data, VALID_VIDEO_TYPES, "vídeo")


def validate_audio_format(data: bytes) -> None:
    """Raise MediaValueError unless ``data`` sniffs as a supported audio."""
    _check_format(data, VALID_AUDIO_TYPES, "áudio")


_NAME_RULES = (
    ("image/", "image", {"jpeg": "jpg"}),
    ("video/", "video", {"quicktime": "mov"}),
    ("audio/", "audio", {"mpeg": "mp3"}),
    ("application/", "document", {}),
)


def generate_file_name(mime_type: str) -> str:
    """A default file name whose extension follows the MIME type."""
    for prefix, stem, renames in _NAME_RULES:
        if mime_type.startswith(prefix):
            ext = mime_type[len(prefix) :]
            return f"{stem}.{renames.get(ext, ext)}"
    return "file.bin"


def size_of_stream(stream: BinaryIO) -> tuple[int, BinaryIO]:
    """Read a stream fully; return its size and a fresh stream over the same bytes."""
    try:
        data = stream.read()
    except OSError as exc:
        raise OSError(f"erro ao ler dados: {exc}") from exc
    return len(data), io.BytesIO(data)


def validate_file_size(size: int, media_type: str) -> None:
    """Raise MediaValueError if ``size`` is zero or over the limit for ``media_type``."""
    try:
        max_size = MAX_SIZES[media_type]
    except KeyError:
        raise MediaValueError(f"tipo de mídia não suportado: {media_type}") from None
    if size > max_size:
        raise MediaValueError(f"arquivo muito grande: {size} bytes (máximo: {max_size} bytes)")
    if size == 0:
        raise MediaValueError("arquivo vazio")


def create_thumbnail(image_data: bytes) -> bytes:
    """The thumbnail of an image; the image data is used as is."""
    return image_data


def is_valid_url(url: str) -> bool:
    """True for http:// and https:// URLs."""
    return url.startswith(("http://", "https://"))


def sanitize_file_name(file_name: str) -> str:
    """Replace path and shell characters with '_' and cap the name at 255 bytes."""
    sanitized = file_name.translate({ord(c): "_" for c in _INVALID_FILE_NAME_CHARS})
    encoded = sanitized.encode("utf-8")
    if len(encoded) > _MAX_FILE_NAME_BYTES:
        sanitized = encoded[:_MAX_FILE_NAME_BYTES].decode("utf-8", errors="ignore")
    return sanitized