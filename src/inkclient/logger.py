"""Structured logging for the contract client."""
import logging
import json
import time
from typing import Any, Dict, Optional
from contextlib import contextmanager
import os

# Configure log level from environment (default: INFO)
LOG_LEVEL = os.getenv("INK_LOG_LEVEL", "INFO").upper()

# Package root logger; module loggers (inkclient.connection, ...) propagate here
logger = logging.getLogger("inkclient")


# JSON formatter for structured logging
class JSONFormatter(logging.Formatter):
    def format(self, record):
        log_data = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Add extra fields if present
        if hasattr(record, "extra_fields"):
            log_data.update(record.extra_fields)

        return json.dumps(log_data, default=str)


def configure_logging(level: Optional[str] = None, json_output: bool = True) -> logging.Logger:
    """
    Attach a console handler to the package logger.

    Safe to call more than once; the handler is only added the first time.

    Args:
        level: Log level name (defaults to INK_LOG_LEVEL)
        json_output: Emit JSON lines instead of plain text

    Returns:
        The configured package logger
    """
    logger.setLevel(getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO))

    if not any(getattr(h, "_inkclient_handler", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        if json_output:
            handler.setFormatter(JSONFormatter())
        else:
            handler.setFormatter(
                logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
            )
        handler._inkclient_handler = True
        logger.addHandler(handler)

    return logger


def log_rpc(method: str, endpoint: str, duration_ms: float, **kwargs):
    """Log a JSON-RPC round trip with timing."""
    logger.debug(f"RPC {method}", extra={
        "extra_fields": {
            "rpc_method": method,
            "endpoint": endpoint,
            "duration_ms": round(duration_ms, 2),
            **kwargs
        }
    })


def log_call(mode: str, address: str, message: str, signer: str, **kwargs):
    """Log an estimate or commit call against a contract."""
    logger.info(f"{mode} {message} on {address}", extra={
        "extra_fields": {
            "mode": mode,
            "contract": address,
            "contract_message": message,
            "signer": signer,
            **kwargs
        }
    })


def log_error(operation: str, error_type: str, error_message: str, **context):
    """Log error with context."""
    logger.error(f"Error in {operation}: {error_message}", extra={
        "extra_fields": {
            "operation": operation,
            "error_type": error_type,
            "error_message": error_message[:500],  # Truncate long errors
            **context
        }
    })


@contextmanager
def track_duration():
    """Context manager to track operation duration."""
    start_time = time.time()
    yield lambda: (time.time() - start_time) * 1000  # Return duration in ms


def extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    """Return the structured fields attached to a log record (empty if none)."""
    return getattr(record, "extra_fields", {})
