import logging
import logging.handlers
import os

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _file_handler(log_file: str, formatter: logging.Formatter) -> logging.Handler:
    log_dir = os.path.dirname(log_file)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

    # Rotating file handler: 10MB per file, keep 5 backups
    handler = logging.handlers.RotatingFileHandler(
        log_file, maxBytes=10*1024*1024, backupCount=5
    )
    handler.setFormatter(formatter)
    return handler


def setup_logging(app_env: str, log_file: str = None):
    """Configure logging based on environment."""

    formatter = logging.Formatter(LOG_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.INFO)

    # Remove existing handlers (important if reloading in dev)
    for h in list(root_logger.handlers):
        root_logger.removeHandler(h)

    if log_file:
        root_logger.addHandler(_file_handler(log_file, formatter))

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    if app_env != "development":
        # Keep console logs at WARNING+ in prod
        console_handler.setLevel(logging.WARNING)
    root_logger.addHandler(console_handler)

    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
