"""Loading media from base64, URLs and streams, and checking it against limits."""

from __future__ import annotations

import io
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Any, BinaryIO

from zapcore.media_utils import (
    MediaValueError,
    create_thumbnail,
    decode_base64_media,
    detect_mime_type,
    generate_file_name,
    sanitize_file_name,
    validate_audio_format,
    validate_file_size,
    validate_image_format,
    validate_video_format,
)

_SIZE_PREFIXES = "KMGTPE"


@dataclass
class ProcessedMedia:
    """Media bytes together with their type and file name."""

    data: bytes
    mime_type: str
    file_name: str
    thumbnail: bytes | None = None

    @property
    def size(self) -> int:
        return len(self.data)

    def open(self) -> BinaryIO:
        """A fresh stream over the data."""
        return io.BytesIO(self.data)

    def create_thumbnail(self) -> None:
        """Set the thumbnail, for images only."""
        if self.is_image():
            self.thumbnail = create_thumbnail(self.data)

    def is_image(self) -> bool:
        return self.mime_type.startswith("image/")

    def is_video(self) -> bool:
        return self.mime_type.startswith("video/")

    def is_audio(self) -> bool:
        return self.mime_type.startswith("audio/")

    def is_document(self) -> bool:
        return self.mime_type.startswith("application/")

    def size_formatted(self) -> str:
        """The size in binary units, e.g. '512 B' or '1.5 KB'."""
        unit = 1024
        size = self.size
        if size < unit:
            return f"{size} B"
        div, exp = unit, 0
        n = size // unit
        while n >= unit:
            div *= unit
            exp += 1
            n //= unit
        return f"{size / div:.1f} {_SIZE_PREFIXES[exp]}B"


class MediaValidationError(ValueError):
    """A media field that failed validation."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(field, message)
        self.field = field
        self.message = message

    def __str__(self) -> str:
        return f"validação de mídia falhou em {self.field}: {self.message}"


class MediaProcessingError(Exception):
    """An operation on media that could not be completed."""

    def __init__(self, operation: str, message: str, cause: Any = None) -> None:
        super().__init__(operation, message)
        self.operation = operation
        self.message = message
        self.cause = cause
        if isinstance(cause, BaseException):
            self.__cause__ = cause

    def __str__(self) -> str:
        if self.cause is not None:
            return f"erro ao {self.operation}: {self.message} (causa: {self.cause})"
        return f"erro ao {self.operation}: {self.message}"


class MediaProcessor:
    """Turns the supported media inputs into ProcessedMedia."""

    def __init__(self, timeout: float = 30.0) -> None:
        self.timeout = timeout

    def process_base64(self, base64_data: str) -> ProcessedMedia:
        """Decode a ``data:`` URL."""
        try:
            data, mime_type = decode_base64_media(base64_data)
        except MediaValueError as exc:
            raise MediaValueError(f"erro ao decodificar base64: {exc}") from exc
        return ProcessedMedia(data=data, mime_type=mime_type, file_name=generate_file_name(mime_type))

    def process_url(self, url: str) -> ProcessedMedia:
        """Download media; the response's Content-Type wins over sniffing."""
        try:
            with urllib.request.urlopen(url, timeout=self.timeout) as response:
                status = response.status
                if status != 200:
                    raise MediaProcessingError("baixar mídia", f"erro HTTP {status}")
                content_type = response.headers.get("Content-Type")
                try:
                    data = response.read()
                except OSError as exc:
                    raise MediaProcessingError("ler dados da URL", "falha na leitura", exc) from exc
        except urllib.error.HTTPError as exc:
            raise MediaProcessingError("baixar mídia", f"erro HTTP {exc.code}") from exc
        except (urllib.error.URLError, OSError, ValueError) as exc:
            raise MediaProcessingError("baixar mídia da URL", "falha na requisição", exc) from exc

        mime_type = content_type or detect_mime_type(data)
        return ProcessedMedia(data=data, mime_type=mime_type, file_name=generate_file_name(mime_type))

    def process_stream(self, stream: BinaryIO, file_name: str = "", mime_type: str = "") -> ProcessedMedia:
        """Read a stream; sniff the type and make up a name where none is given."""
        try:
            data = stream.read()
        except OSError as exc:
            raise MediaProcessingError("ler dados do reader", "falha na leitura", exc) from exc
        if not mime_type:
            mime_type = detect_mime_type(data)
        file_name = sanitize_file_name(file_name) if file_name else generate_file_name(mime_type)
        return ProcessedMedia(data=data, mime_type=mime_type, file_name=file_name)

    def validate(self, media: ProcessedMedia, media_type: str) -> None:
        """Raise MediaValueError unless the media fits ``media_type``."""
        validate_file_size(media.size, media_type)
        if media_type in ("image", "sticker"):
            validate_image_format(media.data)
        elif media_type == "video":
            validate_video_format(media.data)
        elif media_type == "audio":
            validate_audio_format(media.data)
        elif media_type == "document":
            if media.size == 0:
                raise MediaValueError("documento vazio")
        else:
            raise MediaValueError(f"tipo de mídia não suportado: {media_type}")