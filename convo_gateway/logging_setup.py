import logging
from opentelemetry import trace as otel_trace

from .request_context import get_request_context
from .tracing import get_trace_id

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class TraceContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        # Trace id propagated over the X-Trace-Id header
        record.gw_trace_id = get_trace_id() or "-"
        # Active OpenTelemetry trace id in hex
        span = otel_trace.get_current_span()
        ctx = span.get_span_context() if span else None
        if ctx and ctx.is_valid:
            record.otel_trace_id = format(ctx.trace_id, "032x")
            record.otel_span_id = format(ctx.span_id, "016x")
        else:
            record.otel_trace_id = "-"
            record.otel_span_id = "-"
        context = get_request_context()
        record.channel_name = context.get("channel_name") or "-"
        record.requester_id = context.get("requester_id") or "-"
        record.agent_id = context.get("agent_id") or "-"
        return True


def _with_context_suffix(current: str) -> str:
    suffix_parts = []
    if "channel_name" not in current and "requester_id" not in current:
        suffix_parts.append("channel=%(channel_name)s requester=%(requester_id)s agent=%(agent_id)s")
    if "gw_trace_id" not in current:
        suffix_parts.append("trace=%(gw_trace_id)s")
    if "otel_trace_id" not in current:
        suffix_parts.append("otel=%(otel_trace_id)s")
    if "otel_span_id" not in current:
        suffix_parts.append("span=%(otel_span_id)s")
    if not suffix_parts:
        return current
    return current.rstrip() + " [" + " ".join(suffix_parts) + "]"


def install_logging_filter() -> None:
    """Attach the context filter to every root handler and extend its format."""
    filt = TraceContextFilter()
    root = logging.getLogger()
    for h in root.handlers:
        if not any(isinstance(f, TraceContextFilter) for f in h.filters):
            h.addFilter(filt)
        current = h.formatter._fmt if h.formatter else LOG_FORMAT
        new_fmt = _with_context_suffix(current)
        if new_fmt != current or h.formatter is None:
            h.setFormatter(logging.Formatter(new_fmt))


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
    install_logging_filter()
