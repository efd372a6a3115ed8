# convo_gateway/credentials.py
"""Time-boxed channel credentials for clients and for the agent itself."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import IntEnum
from typing import Callable, Union

from agora_token_builder import RtcTokenBuilder

from .errors import ErrorKind, Failure, Ok, Result

logger = logging.getLogger(__name__)

TOKEN_TTL_SECONDS = 3600

Identity = Union[int, str]
Signer = Callable[[str, str, str, Identity, int, int], str]


class Role(IntEnum):
    PUBLISHER = 1
    SUBSCRIBER = 2


@dataclass(frozen=True)
class Credential:
    token: str
    identity: str
    channel: str
    issued_at: int
    expires_at: int


def agora_sign(app_id: str, app_certificate: str, channel: str, identity: Identity, role: int, expire_ts: int) -> str:
    # Numeric identities are signed as uids, anything else as a user account.
    if isinstance(identity, int):
        return RtcTokenBuilder.buildTokenWithUid(app_id, app_certificate, channel, identity, role, expire_ts)
    return RtcTokenBuilder.buildTokenWithAccount(app_id, app_certificate, channel, identity, role, expire_ts)


class CredentialIssuer:
    """Mints a fresh signed token on every call; nothing is cached."""

    def __init__(
        self,
        app_id: str,
        app_certificate: str,
        signer: Signer = agora_sign,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._app_id = app_id
        self._app_certificate = app_certificate
        self._signer = signer
        self._clock = clock

    def issue(
        self,
        channel: str,
        identity: Identity = 0,
        role: Role = Role.PUBLISHER,
        ttl_seconds: int = TOKEN_TTL_SECONDS,
    ) -> Result[Credential]:
        issued_at = int(self._clock())
        expires_at = issued_at + int(ttl_seconds)
        try:
            token = self._signer(
                self._app_id,
                self._app_certificate,
                channel,
                identity,
                int(role),
                expires_at,
            )
        except Exception:
            logger.error(f"Failed to sign token for channel={channel} identity={identity}", exc_info=True)
            return Failure(ErrorKind.TRANSPORT, "Failed to generate Agora token")

        logger.info(f"Issued channel token channel={channel} identity={identity} expires_at={expires_at}")
        return Ok(
            Credential(
                token=token,
                identity=str(identity),
                channel=channel,
                issued_at=issued_at,
                expires_at=expires_at,
            )
        )
