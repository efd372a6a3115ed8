# convo_gateway/validation.py
"""
Request and configuration checks.

Everything here is side-effect free: each check returns ``None`` (or ``Ok``)
when the input is acceptable and a ``Failure`` naming the offending field
otherwise. The HTTP layer runs them in order: configuration, content type,
body, then the route's field rules.
"""

import json
import logging
import math
import re
from enum import Enum
from typing import Any, Dict, List, Optional

from .config import Settings
from .errors import ErrorKind, Failure, Ok, Result, configuration_error, validation_error
from .models import InviteAgentRequest, RemoveAgentRequest
from .tts import resolve_tts_config
from .utils import generate_channel_name

logger = logging.getLogger(__name__)

CHANNEL_NAME_MIN = 3
CHANNEL_NAME_MAX = 64
TOKEN_CHANNEL_MAX = 64

_ALNUM_HYPHEN = re.compile(r"[a-zA-Z0-9-]+")
_DIGITS = re.compile(r"[0-9]+")


class ConfigScope(str, Enum):
    TOKEN = "token"
    AGENT = "agent"


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def check_configuration(settings: Settings, scope: ConfigScope) -> Optional[Failure]:
    """Verify the deployment has what ``scope`` needs before any request data is read."""
    if _blank(settings.AGORA_APP_ID) or _blank(settings.AGORA_APP_CERTIFICATE):
        logger.error("Agora credentials are not set")
        return configuration_error("Agora credentials are not set", field="AGORA_APP_ID")

    if scope is ConfigScope.TOKEN:
        return None

    missing = [
        key
        for key in ("AGORA_CONVO_AI_BASE_URL", "AGORA_CUSTOMER_ID", "AGORA_CUSTOMER_SECRET")
        if _blank(getattr(settings, key))
    ]
    if missing:
        logger.error("Agora Conversation AI credentials are not set")
        return configuration_error(
            "Agora Conversation AI credentials are not set", field=missing[0], details={"missing": missing}
        )

    missing = [key for key in ("LLM_URL", "LLM_TOKEN") if _blank(getattr(settings, key))]
    if missing:
        logger.error("LLM configuration is not set")
        return configuration_error("LLM configuration is not set", field=missing[0], details={"missing": missing})

    tts = resolve_tts_config(settings.TTS_VENDOR, settings)
    if isinstance(tts, Failure):
        return tts
    return None


def _media_type(content_type: Optional[str]) -> str:
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


def check_content_type(method: str, content_type: Optional[str]) -> Optional[Failure]:
    if method.upper() == "POST" and _media_type(content_type) != "application/json":
        return Failure(
            ErrorKind.UNSUPPORTED_MEDIA_TYPE,
            "Unsupported Media Type. Content-Type must be application/json",
        )
    return None


def parse_json_body(raw: bytes) -> Result[Dict[str, Any]]:
    if not raw or not raw.strip():
        return validation_error("Request body is required")
    try:
        body = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        return validation_error("Invalid JSON body")
    if not isinstance(body, dict):
        return validation_error("Request body must be a JSON object")
    if not body:
        return validation_error("Request body is required")
    return Ok(body)


def _validate_requester_id(value: Any, policy: str) -> Result[Any]:
    if value is None:
        return validation_error("requester_id is required", field="requester_id")

    # bool is an int subclass; true/false are not identities
    if isinstance(value, bool):
        return validation_error("requester_id must be a string or number", field="requester_id")

    if isinstance(value, str):
        if not value.strip():
            return validation_error("requester_id cannot be empty", field="requester_id")
        if policy == "alphanumeric" and not _ALNUM_HYPHEN.fullmatch(value):
            return validation_error(
                "requester_id must contain only alphanumeric characters and hyphens",
                field="requester_id",
            )
        return Ok(value)

    if isinstance(value, float):
        if not math.isfinite(value) or not value.is_integer() or value < 0:
            return validation_error(
                "requester_id must be a non-negative integer when provided as a number",
                field="requester_id",
            )
        return Ok(int(value))

    if isinstance(value, int):
        if value < 0:
            return validation_error(
                "requester_id must be a non-negative integer when provided as a number",
                field="requester_id",
            )
        return Ok(value)

    return validation_error("requester_id must be a string or number", field="requester_id")


def _validate_channel_name(value: Any) -> Optional[Failure]:
    if value is None:
        return validation_error("channel_name is required", field="channel_name")
    if not isinstance(value, str):
        return validation_error("channel_name must be a string", field="channel_name")
    if not CHANNEL_NAME_MIN <= len(value) <= CHANNEL_NAME_MAX:
        return validation_error(
            f"channel_name length must be between {CHANNEL_NAME_MIN} and {CHANNEL_NAME_MAX} characters",
            field="channel_name",
        )
    return None


def _validate_modalities(body: Dict[str, Any], key: str) -> Result[Optional[List[str]]]:
    value = body.get(key)
    if value is None:
        return Ok(None)
    if not isinstance(value, list) or not all(isinstance(item, str) and item for item in value):
        return validation_error(f"{key} must be an array of strings", field=key)
    return Ok(value)


def validate_invite_request(body: Dict[str, Any], requester_id_policy: str = "non_empty") -> Result[InviteAgentRequest]:
    requester = _validate_requester_id(body.get("requester_id"), requester_id_policy)
    if isinstance(requester, Failure):
        return requester

    failure = _validate_channel_name(body.get("channel_name"))
    if failure:
        return failure

    modalities = {}
    for key in ("input_modalities", "output_modalities"):
        checked = _validate_modalities(body, key)
        if isinstance(checked, Failure):
            return checked
        modalities[key] = checked.value

    return Ok(
        InviteAgentRequest(
            requester_id=requester.value,
            channel_name=body["channel_name"],
            **modalities,
        )
    )


def validate_remove_request(body: Dict[str, Any]) -> Result[RemoveAgentRequest]:
    agent_id = body.get("agent_id")
    if agent_id is None or agent_id == "":
        return validation_error("agent_id is required", field="agent_id")
    if not isinstance(agent_id, str):
        return validation_error("agent_id must be a string", field="agent_id")
    if not agent_id.strip():
        return validation_error("agent_id is required", field="agent_id")
    return Ok(RemoveAgentRequest(agent_id=agent_id))


def validate_token_query(uid: Optional[str], channel: Optional[str]) -> Result[Dict[str, Any]]:
    """Check ``GET /token`` parameters and fill in the defaults (uid 0, generated channel)."""
    if uid and not _DIGITS.fullmatch(uid):
        return validation_error("Invalid uid parameter. Must be a number", field="uid")

    if channel:
        if len(channel) > TOKEN_CHANNEL_MAX:
            return validation_error(
                f"Invalid channel parameter. Length must be between 1 and {TOKEN_CHANNEL_MAX} characters",
                field="channel",
            )
        if not _ALNUM_HYPHEN.fullmatch(channel):
            return validation_error(
                "Invalid channel parameter. Only alphanumeric characters and hyphens are allowed",
                field="channel",
            )

    return Ok({"uid": int(uid) if uid else 0, "channel": channel or generate_channel_name()})
