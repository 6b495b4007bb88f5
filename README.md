# zapcore

Building blocks for a chat messaging gateway, using only the standard library:

- `zapcore.session_usecases`: create, connect, disconnect, query and list chat sessions.
- `zapcore.webhook_usecases`: dispatch webhook events, process pending events and retry
  failed deliveries.
- `zapcore.media_utils`: decode base64 `data:` URLs, sniff MIME types from content,
  check formats and size limits, and build and sanitize file names.
- `zapcore.media_processor`: load media from base64, URLs or streams into a
  `ProcessedMedia` object and validate it for a media type.
- `zapcore.logger`: a small structured logger with bound context fields and console,
  JSON or console-plus-file output.

The use cases do not depend on any particular storage or chat network. You pass in
repository, client and service objects that provide the methods each use case calls.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Media helpers

```python
from zapcore.media_utils import (
    MediaValueError,
    decode_base64_media,
    detect_mime_type,
    generate_file_name,
    sanitize_file_name,
    validate_file_size,
)

data, mime = decode_base64_media("data:text/plain;base64,aGVsbG8=")
assert data == b"hello" and mime == "text/plain"

detect_mime_type(b"\x89PNG\r\n\x1a\n...")   # "image/png"
generate_file_name("image/jpeg")             # "image.jpg"
generate_file_name("audio/mpeg")             # "audio.mp3"
sanitize_file_name("a/b:c.txt")              # "a_b_c.txt"

try:
    validate_file_size(600 * 1024, "sticker")
except MediaValueError as exc:
    print(exc)  # arquivo muito grande: ...
```

`decode_base64_media` takes the MIME type from the `data:` header. If the header has
none, it sniffs the type from the decoded bytes. It raises `MediaValueError` when the
input does not start with `data:`, has no comma, or is not valid base64.

`detect_mime_type` looks at no more than the first 512 bytes.
`detect_mime_type_from_stream` returns the sniffed type together with a stream that
still yields every byte. `size_of_stream` reads a stream to the end and returns its
size and a fresh stream over the same bytes.

Size limits, in `MAX_SIZES`: image 16 MiB, video 64 MiB, audio 16 MiB,
document 100 MiB, sticker 500 KiB. A size of zero is rejected as empty. An unknown
media type raises `MediaValueError`.

`validate_image_format`, `validate_video_format` and `validate_audio_format` sniff
the bytes and raise `MediaValueError` unless the type is in `VALID_IMAGE_TYPES`,
`VALID_VIDEO_TYPES` or `VALID_AUDIO_TYPES`. `is_valid_url` accepts only `http://` and
`https://` URLs. `create_thumbnail` returns the image bytes unchanged.

## Processing media

```python
import io
from zapcore.media_processor import MediaProcessor

processor = MediaProcessor()            # timeout=30.0 seconds for URL downloads
media = processor.process_stream(io.BytesIO(b"%PDF-1.4 ..."), "report.pdf", "application/pdf")
print(media.file_name, media.size, media.size_formatted())   # report.pdf 12 12 B
processor.validate(media, "document")
```

- `process_base64(data_url)` decodes a `data:` URL.
- `process_url(url)` downloads with `urllib`. The response's `Content-Type` takes
  precedence over sniffing. A non-200 status or a network failure raises
  `MediaProcessingError`.
- `process_stream(stream, file_name="", mime_type="")` reads the stream. It sniffs the
  type when none is given, sanitizes a given file name, and otherwise makes one up
  from the type.
- `validate(media, media_type)` checks the size limit and, for `image`, `sticker`,
  `video` and `audio`, the sniffed format. It raises `MediaValueError` on failure.

`ProcessedMedia` has `data`, `mime_type`, `file_name`, `thumbnail` and a `size`
property. It also has `open()`, which returns a fresh binary stream, and
`create_thumbnail()`, which works on images only. The methods `is_image()`,
`is_video()`, `is_audio()` and `is_document()` check the MIME type, and
`size_formatted()` returns the size as text, for example `"1.5 KB"`.
`MediaValidationError` is also available, with `field` and `message`.

## Logging

```python
from zapcore import logger

logger.init(logger.LoggerConfig(level="debug", format="json"))
log = logger.with_session_id("session-1").with_field("attempt", 2)
log.info("connecting", jid="someone")
```

`LoggerConfig` fields: `level` (`debug`, `info`, `warn`/`warning`, `error`, `fatal`,
`panic`, `disabled`; unknown names mean `info`), `format` (`console` or `json`),
`dual_output` and `file_path`. When `dual_output` is set, entries go to the console
and also, as JSON, to `zapcore-YYYY-MM-DD.log` in the directory of `file_path`. If
that file cannot be opened, a warning is printed and only the console is used.

The level set by the most recently created logger applies to all loggers.
`Logger.fatal` logs and then raises `SystemExit(1)`. `Logger.panic` logs and then
raises `RuntimeError`. `with_session_id`, `with_jid`, `with_status`, `with_error`,
`with_field` and `with_fields` return a new logger with the extra fields bound. The
module-level functions of the same names use the global logger from `get()`, which
creates a console logger at `info` level if `init` has not been called.

## Session use cases

Each use case is built from your objects. Its `execute` method takes a request
dataclass and returns a response dataclass. Every use case accepts an optional
`logger`; without one it uses the global logger.

The session repository provides `get_by_id(id)`, `get_by_name(name)`,
`create(session)`, `update(session)` and `list(filters)`. `get_by_id` should raise
`SessionNotFoundError` for a missing session. Any other exception from the repository
becomes a `SessionError`.

The chat client provides `connect(id)`, `disconnect(id)` and `get_status(id)`.

A session object has these attributes: `id`, `name`, `status`, `jid`, `is_active`,
`qr_code`, `last_seen`, `created_at` and `updated_at`. It also has these methods:
`is_connected()`, `can_connect()`, `update_status(status)`, `set_qr_code(code)` and
`set_webhook(url)`.

```python
from zapcore.session_usecases import CreateUseCase, CreateRequest, ListUseCase, ListRequest

create = CreateUseCase(session_repository, session_factory=MySession)  # factory takes the name
response = create.execute(CreateRequest(name="support", webhook="https://example.com/hook"))

page = ListUseCase(session_repository).execute(ListRequest(limit=10))
print(page.total, len(page.sessions))
```

- `CreateUseCase` raises `SessionAlreadyExistsError` if the name is taken.
- `ConnectUseCase` raises `SessionNotActiveError` for an inactive session. It returns
  at once if the session is already connected. Otherwise it sets the status to
  `SessionStatus.CONNECTING` and calls the client. If the client fails, it resets the
  status to `DISCONNECTED`.
- `DisconnectUseCase` updates the local status to `DISCONNECTED` and clears the QR
  code, even if the client's `disconnect` fails.
- `GetStatusUseCase` refreshes the status from the client for active sessions and
  gives times in RFC 3339 form. `get_by_name` looks a session up by name.
- `ListUseCase` defaults to a limit of 50, ordering by `createdat` and direction
  `DESC`. It takes `total` from a second repository call with no limit or offset.

## Webhook use cases

```python
from zapcore.webhook_usecases import DispatchUseCase, DispatchRequest, RetryUseCase, RetryRequest

dispatch = DispatchUseCase(webhook_repository, webhook_service, event_factory=make_event)
result = dispatch.execute(
    DispatchRequest(session_id=sid, event_type="message", url="https://example.com/hook",
                    payload={"text": "hi"})
)
RetryUseCase(webhook_service).execute(RetryRequest(event_id=result.event_id))
```

The repository provides `create(event)`. The service provides `send_async(event)`,
`process_pending_events()` and `retry(event_id)`. `event_factory(session_id,
event_type, url, payload)` builds an event that has an `id`. Failures are raised as
`RuntimeError`. `ProcessPendingUseCase(service).execute()` asks the service to deliver
all pending events.

## What this package does not do

- It does not store anything. Sessions and webhook events live in repositories that
  you supply.
- It does not connect to a chat network or deliver webhooks itself. The client and
  webhook service are yours.
- It has no use cases for sending text or media messages, no HTTP server and no
  command-line program.