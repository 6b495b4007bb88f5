"""Session and webhook use cases, media handling and structured logging for a chat gateway."""

__version__ = "0.1.0"

__all__ = [
    "logger",
    "media_processor",
    "media_utils",
    "session_usecases",
    "webhook_usecases",
]