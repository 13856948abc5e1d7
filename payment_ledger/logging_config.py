import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Install one stream handler on the package logger."""
    root = logging.getLogger("payment_ledger")
    root.setLevel(level.upper())
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)


def log_payment_event(logger: logging.Logger, event: str, **fields) -> None:
    """Log a payment lifecycle event as `event key=value ...`."""
    details = " ".join(f"{key}={value}" for key, value in sorted(fields.items()))
    logger.info("payment_event=%s %s", event, details)
