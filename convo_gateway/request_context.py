import contextvars
from typing import Dict, Optional

# Per-request identifiers appended to log lines. Invite requests fill in the
# channel and requester; remove requests only know the agent id.
_channel_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar("channel_name", default=None)
_requester_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar("requester_id", default=None)
_agent_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar("agent_id", default=None)


def set_request_context(
    channel_name: Optional[str] = None,
    requester_id: Optional[str] = None,
    agent_id: Optional[str] = None,
) -> None:
    if channel_name is not None:
        _channel_var.set(channel_name)
    if requester_id is not None:
        _requester_var.set(requester_id)
    if agent_id is not None:
        _agent_var.set(agent_id)


def clear_request_context() -> None:
    _channel_var.set(None)
    _requester_var.set(None)
    _agent_var.set(None)


def get_request_context() -> Dict[str, Optional[str]]:
    return {
        "channel_name": _channel_var.get(),
        "requester_id": _requester_var.get(),
        "agent_id": _agent_var.get(),
    }
