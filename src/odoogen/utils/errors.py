from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Any

HTTP_SERVER_ERROR_START = 500
HTTP_SERVER_ERROR_END = 600
HTTP_TOO_MANY_REQUESTS = 429


class Err(Enum):
    DOMAIN_REJECTED = auto()
    CANCELLED = auto()
    PROVIDER_TRANSIENT = auto()
    PROVIDER_FATAL = auto()
    INVALID_CONFIG = auto()
    INVALID_REQUEST = auto()
    MISSING_TEMPLATE = auto()
    PARSER_FAILURE = auto()
    IO_ERROR = auto()
    UNKNOWN = auto()


@dataclass(eq=False)
class OGError(Exception):
    code: Err
    ctx: dict[str, Any] | None = None
    cause: Exception | None = None

    def __post_init__(self) -> None:
        if self.ctx is None:
            self.ctx = {}
        if self.cause is not None:
            self.__cause__ = self.cause
        super().__init__(self.code.name)

    def __str__(self) -> str:  # pragma: no cover - convenience for logging
        parts = [self.code.name]
        if self.ctx:
            parts.append(str(self.ctx))
        return ": ".join(parts)


class DomainRejectedError(OGError):
    """The request is not about an Odoo module. Terminal; never retried."""

    def __init__(self, *, reason: str, ctx: dict[str, Any] | None = None):
        base_ctx = {"reason": reason}
        if ctx:
            base_ctx.update(ctx)
        super().__init__(Err.DOMAIN_REJECTED, ctx=base_ctx)

    @property
    def reason(self) -> str:
        return str(self.ctx.get("reason", ""))


class GenerationCancelled(OGError):
    """Raised when the cancellation token is observed between stages or files.

    ``files`` holds the canonical path -> content map of every file completed
    before cancellation was observed.
    """

    def __init__(self, *, stage: str, files: dict[str, str] | None = None):
        super().__init__(Err.CANCELLED, ctx={"stage": stage})
        self.files: dict[str, str] = dict(files or {})

    @property
    def stage(self) -> str:
        return str(self.ctx.get("stage", ""))


class ProviderError(OGError):
    """A failed round trip to an LLM provider.

    ``kind`` is one of ``http``, ``timeout``, ``connection`` or ``response``.
    """

    def __init__(
        self,
        *,
        message: str,
        status_code: int | None = None,
        kind: str = "http",
        cause: Exception | None = None,
    ):
        self.status_code = status_code
        self.kind = kind
        code = Err.PROVIDER_TRANSIENT if _is_transient(status_code, kind) else Err.PROVIDER_FATAL
        super().__init__(
            code,
            ctx={"message": message, "status_code": status_code, "kind": kind},
            cause=cause,
        )

    @property
    def retryable(self) -> bool:
        return self.code is Err.PROVIDER_TRANSIENT


def _is_transient(status_code: int | None, kind: str) -> bool:
    if kind in ("timeout", "connection"):
        return True
    if status_code is None:
        return False
    if status_code == HTTP_TOO_MANY_REQUESTS:
        return True
    return HTTP_SERVER_ERROR_START <= status_code < HTTP_SERVER_ERROR_END


def is_retryable_error(error: BaseException) -> bool:
    """Rate limits, server errors and timeouts are retryable; nothing else is."""
    if isinstance(error, ProviderError):
        return error.retryable
    if isinstance(error, OGError):
        return False
    return isinstance(error, (TimeoutError, ConnectionError))


__all__ = [
    "Err",
    "OGError",
    "DomainRejectedError",
    "GenerationCancelled",
    "ProviderError",
    "is_retryable_error",
]
