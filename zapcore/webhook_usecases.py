"""Use cases for webhook delivery: dispatching events, processing pending ones and retrying."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Protocol

from zapcore import logger as _logging
from zapcore.logger import Logger


class _WebhookEvent(Protocol):
    id: Any


class _WebhookRepository(Protocol):
    def create(self, event: _WebhookEvent) -> None: ...


class _WebhookService(Protocol):
    def send_async(self, event: _WebhookEvent) -> None: ...

    def process_pending_events(self) -> None: ...

    def retry(self, event_id: Any) -> None: ...


_EventFactory = Callable[[Any, Any, str, Mapping[str, Any]], _WebhookEvent]


@dataclass
class DispatchRequest:
    session_id: Any
    event_type: Any
    url: str
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass
class DispatchResponse:
    event_id: Any
    message: str


class DispatchUseCase:
    """Store a webhook event and hand it to the service for delivery.

    ``event_factory`` builds the event from the session id, event type, URL and payload.
    """

    def __init__(
        self,
        webhook_repo: _WebhookRepository,
        webhook_service: _WebhookService,
        event_factory: _EventFactory,
        logger: Logger | None = None,
    ) -> None:
        self._repo = webhook_repo
        self._service = webhook_service
        self._factory = event_factory
        self._log = logger or _logging.get()

    def execute(self, request: DispatchRequest) -> DispatchResponse:
        event = self._factory(request.session_id, request.event_type, request.url, request.payload)

        try:
            self._repo.create(event)
        except Exception as exc:
            self._log.with_error(exc).error("Erro ao salvar evento de webhook")
            raise RuntimeError(f"erro ao salvar evento: {exc}") from exc

        try:
            self._service.send_async(event)
        except Exception as exc:
            self._log.with_error(exc).error("Erro ao enviar webhook")
            raise RuntimeError(f"erro ao enviar webhook: {exc}") from exc

        self._log.info("webhook despachado com sucesso")
        return DispatchResponse(event_id=event.id, message="Webhook despachado com sucesso")


@dataclass
class ProcessPendingResponse:
    message: str
    processed_count: int = 0


class ProcessPendingUseCase:
    """Ask the service to deliver every pending webhook event."""

    def __init__(self, webhook_service: _WebhookService, logger: Logger | None = None) -> None:
        self._service = webhook_service
        self._log = logger or _logging.get()

    def execute(self) -> ProcessPendingResponse:
        try:
            self._service.process_pending_events()
        except Exception as exc:
            self._log.with_error(exc).error("erro ao processar webhooks pendentes")
            raise RuntimeError(f"erro ao processar webhooks pendentes: {exc}") from exc

        self._log.info("Webhooks pendentes processados com sucesso")
        return ProcessPendingResponse(message="Webhooks pendentes processados com sucesso")


@dataclass
class RetryRequest:
    event_id: Any


@dataclass
class RetryResponse:
    event_id: Any
    message: str


class RetryUseCase:
    """Deliver a failed webhook event again."""

    def __init__(self, webhook_service: _WebhookService, logger: Logger | None = None) -> None:
        self._service = webhook_service
        self._log = logger or _logging.get()

    def execute(self, request: RetryRequest) -> RetryResponse:
        event_id = str(request.event_id)
        try:
            self._service.retry(request.event_id)
        except Exception as exc:
            self._log.with_error(exc).error("Erro ao reprocessar webhook", event_id=event_id)
            raise RuntimeError(f"erro ao reprocessar webhook: {exc}") from exc

        self._log.info("Webhook reprocessado com sucesso", event_id=event_id)
        return RetryResponse(event_id=request.event_id, message="Webhook reprocessado com sucesso")