import logging

from convo_gateway.config import get_settings
from convo_gateway.logging_setup import configure_logging
from convo_gateway.otel_setup import init_tracing
from convo_gateway.server import run_server

logger = logging.getLogger("convo_gateway")


def main() -> None:
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)

    if settings.OTEL_ENABLED:
        try:
            init_tracing(settings)
        except Exception:
            logger.warning("OpenTelemetry initialization failed; continuing without export", exc_info=True)

    run_server(settings)


if __name__ == "__main__":
    main()
