import contextvars
import re
import uuid
from typing import Dict, Optional

TRACE_HEADER = "X-Trace-Id"

# Client-supplied ids end up in every log line; anything else is replaced
_TRACE_ID_RE = re.compile(r"[A-Za-z0-9._-]{1,128}")

_trace_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar("trace_id", default=None)


def set_trace_id(trace_id: Optional[str]) -> None:
    _trace_id_var.set(trace_id)


def get_trace_id() -> Optional[str]:
    return _trace_id_var.get()


def ensure_trace_id(incoming: Optional[str] = None) -> str:
    """Adopt the caller's ``X-Trace-Id`` when it is well formed, else mint one."""
    if incoming and _TRACE_ID_RE.fullmatch(incoming):
        tid = incoming
    else:
        tid = get_trace_id() or uuid.uuid4().hex
    _trace_id_var.set(tid)
    return tid


def outbound_headers() -> Dict[str, str]:
    """Headers for a JSON call to the provisioning service, carrying the current trace id."""
    headers = {"Content-Type": "application/json"}
    tid = get_trace_id()
    if tid:
        headers[TRACE_HEADER] = tid
    return headers
