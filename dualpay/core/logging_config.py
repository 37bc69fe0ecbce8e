"""
Logging configuration for the Dualpay billing API.

Provides structured logging without exposing secrets.
"""
import logging
import sys
from pathlib import Path
from logging.handlers import RotatingFileHandler


def setup_logging(log_level: str = "INFO", log_dir: str = "logs"):
    """
    Configure application logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Directory for the rotating log file
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    # Create logs directory if it doesn't exist
    log_path = Path(log_dir)
    log_path.mkdir(exist_ok=True)

    logger = logging.getLogger()
    logger.setLevel(level)
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    ))

    file_handler = RotatingFileHandler(
        log_path / "dualpay.log",
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=5
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    ))

    logger.addHandler(console_handler)
    logger.addHandler(file_handler)

    # Third-party libraries; httpx logs full request URLs at INFO
    logging.getLogger("uvicorn").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("stripe").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


# Matched against lower-cased keys with dashes folded to underscores
SENSITIVE_KEYS = [
    "password", "secret", "authorization", "api_key",
    "access_token", "refresh_token", "id_token",
    "client_secret", "stripe_secret_key", "paypal_client_secret",
]

# Values that are credentials whatever key they sit under
SENSITIVE_VALUE_PREFIXES = (
    "bearer ", "basic ",
    "sk_live_", "sk_test_", "rk_live_", "rk_test_", "whsec_",
)

REDACTED = "***REDACTED***"


def _is_sensitive_key(key) -> bool:
    normalized = str(key).lower().replace("-", "_")
    return any(sensitive in normalized for sensitive in SENSITIVE_KEYS)


def _is_sensitive_value(value) -> bool:
    return isinstance(value, str) and value.lower().startswith(SENSITIVE_VALUE_PREFIXES)


def _sanitize_value(value):
    if _is_sensitive_value(value):
        return REDACTED
    if isinstance(value, dict):
        return sanitize_log_data(value)
    if isinstance(value, (list, tuple)):
        return [_sanitize_value(item) for item in value]
    return value


def sanitize_log_data(data: dict) -> dict:
    """
    Sanitize log data to remove sensitive information.

    Provider payloads nest (token responses, request headers), so nested
    dicts and lists are sanitized too.

    Args:
        data: Dictionary to sanitize

    Returns:
        New dictionary without secrets; the input is not modified
    """
    sanitized = {}
    for key, value in data.items():
        if _is_sensitive_key(key):
            sanitized[key] = REDACTED
        else:
            sanitized[key] = _sanitize_value(value)
    return sanitized
