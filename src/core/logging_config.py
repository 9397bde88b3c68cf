import logging
import sys


def setup_logging(level: str = "INFO") -> None:
    """
    Configures the root logger for the service.
    Called once when the app is created; repeated calls are no-ops.
    """
    root = logging.getLogger()
    if getattr(setup_logging, "_configured", False):
        root.setLevel(level.upper())
        return

    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s - %(name)s - [%(levelname)s] - %(message)s",
        stream=sys.stdout,
    )
    # The access log is written by core.logging_middleware
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    setup_logging._configured = True  # type: ignore[attr-defined]
