"""
Production logging utility for structured JSON logging.

Provides event-specific logging functions with mandatory fields:
- timestamp (ISO8601)
- level
- service
- event

Optional fields (included when applicable):
- identity (fingerprint hash, never a raw IP)
- endpoint
- duration_ms
- error

Usage:
    from mediarelay.utils.logging import configure_logging, log_upload_accepted

    configure_logging('mediarelay-api', 'INFO')
    log_upload_accepted(logger, identity='ab12...', size=1024, file_type='image/png')
"""
import logging
import sys
from typing import Optional, Dict, Any
from pythonjsonlogger import jsonlogger


class StructuredLogger:
    """Structured JSON logger with mandatory fields."""

    _service_name = None
    _configured = False

    @classmethod
    def configure(cls, service_name: str, log_level: str = "INFO"):
        """
        Configure structured JSON logging for the application.

        Args:
            service_name: Service identifier (mediarelay-api)
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        """
        if cls._configured:
            return  # Already configured

        cls._service_name = service_name

        # Remove default handlers
        root_logger = logging.getLogger()
        root_logger.handlers = []

        formatter = jsonlogger.JsonFormatter(
            '%(timestamp)s %(level)s %(name)s %(message)s',
            timestamp=True,
            json_ensure_ascii=False
        )

        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(formatter)

        root_logger.addHandler(handler)
        root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

        # Add service name to all log records via filter
        class ServiceFilter(logging.Filter):
            def filter(self, record):
                record.service = cls._service_name
                return True

        handler.addFilter(ServiceFilter())
        cls._configured = True


def _build_log_extra(
    event: str,
    identity: Optional[str] = None,
    endpoint: Optional[str] = None,
    duration_ms: Optional[float] = None,
    **kwargs
) -> Dict[str, Any]:
    """
    Build extra fields for structured logging.

    Args:
        event: Event name (mandatory)
        identity: Optional fingerprint identity
        endpoint: Optional upstream endpoint name
        duration_ms: Optional duration in milliseconds
        **kwargs: Additional fields

    Returns:
        Dictionary of extra fields
    """
    extra = {
        "event": event,
        **kwargs
    }

    if identity:
        extra["identity"] = identity
    if endpoint:
        extra["endpoint"] = endpoint
    if duration_ms is not None:
        extra["duration_ms"] = round(duration_ms, 2)

    return extra


# Upload event functions

def log_upload_accepted(
    logger: logging.Logger,
    identity: str,
    size: int,
    file_type: str,
    via_api_key: bool = False,
    duration_ms: Optional[float] = None,
    **kwargs
):
    """
    Log a successful upload.

    Args:
        logger: Logger instance
        identity: Fingerprint identity (required)
        size: Payload size in bytes (required)
        file_type: Declared content type (required)
        via_api_key: Whether a valid API key was presented
        duration_ms: Optional duration in milliseconds
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="upload_accepted",
        identity=identity,
        duration_ms=duration_ms,
        size=size,
        file_type=file_type,
        via_api_key=via_api_key,
        **kwargs
    )
    logger.info(f"Upload accepted: {size} bytes ({file_type})", extra=extra)


def log_upload_rejected(
    logger: logging.Logger,
    reason: str,
    status_code: int,
    identity: Optional[str] = None,
    **kwargs
):
    """
    Log an upload rejected before or after the relay call.

    Args:
        logger: Logger instance
        reason: Human readable rejection reason (required)
        status_code: HTTP status returned to the client (required)
        identity: Fingerprint identity, when already computed
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="upload_rejected",
        identity=identity,
        reason=reason,
        status_code=status_code,
        **kwargs
    )
    logger.warning(f"Upload rejected ({status_code}): {reason}", extra=extra)


def log_rate_limited(
    logger: logging.Logger,
    identity: str,
    limit: int,
    retry_after_ms: int,
    **kwargs
):
    """Log an admission denial."""
    extra = _build_log_extra(
        event="rate_limited",
        identity=identity,
        limit=limit,
        retry_after_ms=retry_after_ms,
        **kwargs
    )
    logger.warning(f"Rate limit reached for {identity[:12]}", extra=extra)


# Relay event functions

def log_relay_attempt(
    logger: logging.Logger,
    endpoint: str,
    attempt: int,
    outcome: str,
    duration_ms: Optional[float] = None,
    **kwargs
):
    """
    Log a single upstream relay call.

    Args:
        logger: Logger instance
        endpoint: Upstream method name (sendPhoto, sendDocument, ...)
        attempt: Network attempt number on this endpoint, starting at 0
        outcome: succeeded, rejected or network_error
        duration_ms: Optional duration in milliseconds
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="relay_attempt",
        endpoint=endpoint,
        duration_ms=duration_ms,
        attempt=attempt,
        outcome=outcome,
        **kwargs
    )
    logger.info(f"Relay attempt: {endpoint} #{attempt} -> {outcome}", extra=extra)


def log_relay_failure(
    logger: logging.Logger,
    endpoint: str,
    error: str,
    include_traceback: bool = False,
    **kwargs
):
    """
    Log a relay failure after retries and fallbacks were exhausted.

    Args:
        logger: Logger instance
        endpoint: Last upstream method tried (required)
        error: Error message (required)
        include_traceback: Whether to include stack trace
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="relay_failure",
        endpoint=endpoint,
        error=str(error),
        **kwargs
    )

    message = f"Relay failure: {endpoint} - {error}"

    if include_traceback:
        exc_info = sys.exc_info()
        if exc_info[0] is not None:
            logger.error(message, extra=extra, exc_info=exc_info)
            return
    logger.error(message, extra=extra)


def log_store_failure(
    logger: logging.Logger,
    operation: str,
    key: str,
    error: str,
    **kwargs
):
    """Log a key-value store failure that was handled."""
    extra = _build_log_extra(
        event="store_failure",
        operation=operation,
        key=key,
        error=str(error),
        **kwargs
    )
    logger.error(f"Store failure: {operation} {key} - {error}", extra=extra)


# Convenience alias
def configure_logging(service_name: str, log_level: str = "INFO"):
    """Configure logging (alias for StructuredLogger.configure)."""
    StructuredLogger.configure(service_name, log_level)
