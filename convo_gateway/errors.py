# convo_gateway/errors.py
"""
Result values shared by the validator, the TTS resolver, the credential issuer
and the orchestrators.

Every step that can fail returns either ``Ok(value)`` or a ``Failure``; the
HTTP layer is the only place a ``Failure`` is turned into a status code and a
JSON error body.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Generic, Optional, TypeVar, Union

T = TypeVar("T")


class ErrorKind(str, Enum):
    CONFIGURATION = "configuration"
    VALIDATION = "validation"
    UNSUPPORTED_MEDIA_TYPE = "unsupported_media_type"
    UPSTREAM = "upstream"
    TRANSPORT = "transport"


_DEFAULT_STATUS: Dict[ErrorKind, int] = {
    ErrorKind.CONFIGURATION: 500,
    ErrorKind.VALIDATION: 400,
    ErrorKind.UNSUPPORTED_MEDIA_TYPE: 415,
    ErrorKind.UPSTREAM: 502,
    ErrorKind.TRANSPORT: 500,
}


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Failure:
    kind: ErrorKind
    message: str
    field: Optional[str] = None
    details: Any = None
    upstream_status: Optional[int] = None

    @property
    def status_code(self) -> int:
        # Upstream failures keep the provisioning service's own status.
        if self.kind is ErrorKind.UPSTREAM and self.upstream_status:
            return self.upstream_status
        return _DEFAULT_STATUS[self.kind]

    def to_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


Result = Union[Ok[T], Failure]


def configuration_error(message: str, field: Optional[str] = None, details: Any = None) -> Failure:
    return Failure(ErrorKind.CONFIGURATION, message, field=field, details=details)


def validation_error(message: str, field: Optional[str] = None) -> Failure:
    return Failure(ErrorKind.VALIDATION, message, field=field)


def upstream_error(message: str, status: int, body: Any) -> Failure:
    return Failure(ErrorKind.UPSTREAM, message, details=body, upstream_status=status)


def transport_error(message: str) -> Failure:
    return Failure(ErrorKind.TRANSPORT, message)
