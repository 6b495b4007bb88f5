"""Use cases for managing messaging sessions: create, connect, disconnect, status and listing."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Protocol

from zapcore import logger as _logging
from zapcore.logger import Logger

_INTERNAL_ERROR = "erro interno do servidor"


class SessionStatus(str, Enum):
    """Connection state of a session."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"

    def __str__(self) -> str:
        return self.value


class SessionError(Exception):
    """A session operation that could not be completed."""

    default_message = "erro de sessão"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class SessionNotFoundError(SessionError):
    default_message = "sessão não encontrada"


class SessionNotActiveError(SessionError):
    default_message = "sessão não está ativa"


class SessionNotConnectedError(SessionError):
    default_message = "sessão não está conectada"


class SessionAlreadyExistsError(SessionError):
    default_message = "sessão já existe"


class _Session(Protocol):
    id: Any
    name: str
    status: Any
    jid: str
    is_active: bool
    qr_code: str
    last_seen: datetime | None
    created_at: datetime
    updated_at: datetime

    def is_connected(self) -> bool: ...

    def can_connect(self) -> bool: ...

    def update_status(self, status: Any) -> None: ...

    def set_qr_code(self, qr_code: str) -> None: ...

    def set_webhook(self, webhook: str) -> None: ...


class _SessionRepository(Protocol):
    def get_by_id(self, session_id: Any) -> _Session: ...

    def get_by_name(self, name: str) -> _Session | None: ...

    def create(self, session: _Session) -> None: ...

    def update(self, session: _Session) -> None: ...

    def list(self, filters: ListFilters) -> list[_Session]: ...


class _WhatsAppClient(Protocol):
    def connect(self, session_id: Any) -> None: ...

    def disconnect(self, session_id: Any) -> None: ...

    def get_status(self, session_id: Any) -> Any: ...


def _as_status(status: Any) -> SessionStatus | str:
    try:
        return SessionStatus(status)
    except ValueError:
        return status


def _status_text(status: Any) -> str:
    return str(getattr(status, "value", status))


def _rfc3339(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.astimezone()
    text = moment.isoformat(timespec="seconds")
    if text.endswith("+00:00"):
        text = text[:-6] + "Z"
    return text


def _fetch_session(repo: _SessionRepository, log: Logger, session_id: Any) -> _Session:
    try:
        return repo.get_by_id(session_id)
    except SessionNotFoundError:
        raise
    except Exception as exc:
        log.with_error(exc).error("Erro ao buscar sessão")
        raise SessionError(_INTERNAL_ERROR) from exc


@dataclass
class ConnectRequest:
    session_id: Any


@dataclass
class ConnectResponse:
    session_id: Any
    status: SessionStatus | str
    message: str
    qr_code: str = ""


class ConnectUseCase:
    """Start the connection of an active session."""

    def __init__(
        self,
        session_repo: _SessionRepository,
        whatsapp_client: _WhatsAppClient,
        logger: Logger | None = None,
    ) -> None:
        self._repo = session_repo
        self._client = whatsapp_client
        self._log = logger or _logging.get()

    def execute(self, request: ConnectRequest) -> ConnectResponse:
        sid = str(request.session_id)
        sess = _fetch_session(self._repo, self._log, request.session_id)

        if not sess.is_active:
            self._log.warning("Tentativa de conectar sessão inativa", session_id=sid)
            raise SessionNotActiveError()

        if sess.is_connected():
            self._log.info("Sessão já está conectada", session_id=sid)
            return ConnectResponse(
                session_id=sess.id, status=sess.status, message="Sessão já está conectada"
            )

        if not sess.can_connect():
            self._log.warning("Sessão não pode ser conectada no estado atual", session_id=sid)
            raise SessionError(
                f"sessão não pode ser conectada no estado atual: {_status_text(sess.status)}"
            )

        sess.update_status(SessionStatus.CONNECTING)
        try:
            self._repo.update(sess)
        except Exception as exc:
            self._log.with_error(exc).error("Erro ao atualizar status da sessão")
            raise SessionError(f"erro ao atualizar sessão: {exc}") from exc

        try:
            self._client.connect(request.session_id)
        except Exception as exc:
            sess.update_status(SessionStatus.DISCONNECTED)
            try:
                self._repo.update(sess)
            except Exception:
                pass
            self._log.with_error(exc).error("Erro ao conectar com WhatsApp", session_id=sid)
            raise SessionError(f"erro ao conectar com WhatsApp: {exc}") from exc

        try:
            status = self._client.get_status(request.session_id)
        except Exception as exc:
            self._log.with_error(exc).error("Erro ao obter status do WhatsApp")
            raise SessionError(f"erro ao obter status: {exc}") from exc

        self._log.info(
            "Sessão conectada com sucesso", session_id=sid, status=_status_text(status)
        )
        return ConnectResponse(
            session_id=sess.id,
            status=_as_status(status),
            message="Conexão iniciada com sucesso",
        )


@dataclass
class CreateRequest:
    name: str
    webhook: str = ""


@dataclass
class CreateResponse:
    session: Any
    message: str


class CreateUseCase:
    """Create a session with a unique name; ``session_factory`` builds it from the name."""

    def __init__(
        self,
        session_repo: _SessionRepository,
        session_factory: Callable[[str], _Session],
        logger: Logger | None = None,
    ) -> None:
        self._repo = session_repo
        self._factory = session_factory
        self._log = logger or _logging.get()

    def execute(self, request: CreateRequest) -> CreateResponse:
        try:
            existing = self._repo.get_by_name(request.name)
        except SessionNotFoundError:
            existing = None
        except Exception as exc:
            self._log.with_error(exc).error("Erro ao verificar sessão existente")
            raise SessionError(_INTERNAL_ERROR) from exc

        if existing is not None:
            self._log.warning("Tentativa de criar sessão com nome duplicado", name=request.name)
            raise SessionAlreadyExistsError()

        new_session = self._factory(request.name)
        if request.webhook:
            new_session.set_webhook(request.webhook)

        try:
            self._repo.create(new_session)
        except Exception as exc:
            self._log.with_error(exc).error("Erro ao criar sessão", session_name=request.name)
            raise SessionError(f"erro ao criar sessão: {exc}") from exc

        self._log.info(
            "Sessão criada com sucesso",
            session_id=str(new_session.id),
            session_name=new_session.name,
        )
        return CreateResponse(session=new_session, message="Sessão criada com sucesso")


@dataclass
class DisconnectRequest:
    session_id: Any


@dataclass
class DisconnectResponse:
    session_id: Any
    status: SessionStatus | str
    message: str


class DisconnectUseCase:
    """Disconnect a session; the local state is updated even if the client fails."""

    def __init__(
        self,
        session_repo: _SessionRepository,
        whatsapp_client: _WhatsAppClient,
        logger: Logger | None = None,
    ) -> None:
        self._repo = session_repo
        self._client = whatsapp_client
        self._log = logger or _logging.get()

    def execute(self, request: DisconnectRequest) -> DisconnectResponse:
        sid = str(request.session_id)
        sess = _fetch_session(self._repo, self._log, request.session_id)

        if sess.status == SessionStatus.DISCONNECTED:
            self._log.info("Sessão já está desconectada", session_id=sid)
            return DisconnectResponse(
                session_id=sess.id, status=sess.status, message="Sessão já está desconectada"
            )

        try:
            self._client.disconnect(request.session_id)
        except Exception as exc:
            self._log.with_error(exc).error("Erro ao desconectar do WhatsApp", session_id=sid)

        sess.update_status(SessionStatus.DISCONNECTED)
        sess.set_qr_code("")

        try:
            self._repo.update(sess)
        except Exception as exc:
            self._log.with_error(exc).error("erro ao atualizar sessão")
            raise SessionError(f"erro ao atualizar sessão: {exc}") from exc

        self._log.info("Sessão desconectada com sucesso", session_id=sid)
        return DisconnectResponse(
            session_id=sess.id, status=sess.status, message="Sessão desconectada com sucesso"
        )


@dataclass
class GetStatusRequest:
    session_id: Any


@dataclass
class GetStatusResponse:
    session_id: Any
    name: str
    status: SessionStatus | str
    is_active: bool
    is_connected: bool
    can_connect: bool
    created_at: str
    updated_at: str
    jid: str = ""
    last_seen: str = ""
    qr_code: str = ""


class GetStatusUseCase:
    """Report a session's state, refreshed from the client when the session is active."""

    def __init__(
        self,
        session_repo: _SessionRepository,
        whatsapp_client: _WhatsAppClient,
        logger: Logger | None = None,
    ) -> None:
        self._repo = session_repo
        self._client = whatsapp_client
        self._log = logger or _logging.get()

    def execute(self, request: GetStatusRequest) -> GetStatusResponse:
        sid = str(request.session_id)
        sess = _fetch_session(self._repo, self._log, request.session_id)

        if sess.is_active:
            try:
                remote = self._client.get_status(request.session_id)
            except Exception as exc:
                self._log.with_error(exc).warning(
                    "Erro ao obter status do WhatsApp, usando status local", session_id=sid
                )
            else:
                new_status = _as_status(remote)
                if sess.status != new_status:
                    sess.update_status(new_status)
                    try:
                        self._repo.update(sess)
                    except Exception:
                        pass

        response = GetStatusResponse(
            session_id=sess.id,
            name=sess.name,
            status=sess.status,
            jid=sess.jid,
            is_active=sess.is_active,
            qr_code=sess.qr_code,
            is_connected=sess.is_connected(),
            can_connect=sess.can_connect(),
            created_at=_rfc3339(sess.created_at),
            updated_at=_rfc3339(sess.updated_at),
        )
        if sess.last_seen is not None:
            response.last_seen = _rfc3339(sess.last_seen)

        self._log.info(
            "Status da sessão obtido com sucesso", session_id=sid, status=_status_text(sess.status)
        )
        return response

    def get_by_name(self, name: str) -> Any:
        """Look a session up by name."""
        try:
            return self._repo.get_by_name(name)
        except SessionNotFoundError:
            raise
        except Exception as exc:
            self._log.with_error(exc).error("Erro ao buscar sessão por nome", session_name=name)
            raise SessionError(_INTERNAL_ERROR) from exc


@dataclass
class ListRequest:
    status: SessionStatus | str | None = None
    is_active: bool | None = None
    limit: int = 0
    offset: int = 0
    order_by: str = ""
    order_dir: str = ""


@dataclass
class ListFilters:
    """Filters passed to the repository; a limit of 0 means no limit."""

    status: SessionStatus | str | None = None
    is_active: bool | None = None
    limit: int = 0
    offset: int = 0
    order_by: str = ""
    order_dir: str = ""


@dataclass
class ListResponse:
    sessions: list[Any]
    total: int
    limit: int
    offset: int


class ListUseCase:
    """List sessions one page at a time, with the total count."""

    def __init__(self, session_repo: _SessionRepository, logger: Logger | None = None) -> None:
        self._repo = session_repo
        self._log = logger or _logging.get()

    def execute(self, request: ListRequest) -> ListResponse:
        filters = ListFilters(
            status=request.status,
            is_active=request.is_active,
            limit=request.limit if request.limit > 0 else 50,
            offset=max(request.offset, 0),
            order_by=request.order_by or "createdat",
            order_dir=request.order_dir or "DESC",
        )

        try:
            sessions = list(self._repo.list(filters))
        except Exception as exc:
            self._log.with_error(exc).error("Erro ao listar sessões")
            raise SessionError(f"erro ao listar sessões: {exc}") from exc

        try:
            every = list(self._repo.list(dataclasses.replace(filters, limit=0, offset=0)))
        except Exception as exc:
            self._log.with_error(exc).error("Erro ao contar total de sessões")
            raise SessionError(f"erro ao contar sessões: {exc}") from exc

        self._log.info(
            "Sessões listadas com sucesso",
            count=len(sessions),
            total=len(every),
            limit=filters.limit,
            offset=filters.offset,
        )
        return ListResponse(
            sessions=sessions, total=len(every), limit=filters.limit, offset=filters.offset
        )