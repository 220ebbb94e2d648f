# common/utils/logging_config.py
import logging
import json
import sys
from datetime import datetime
from functools import wraps
import inspect
import threading
from contextlib import contextmanager

# Extra fields that must never reach a log sink
REDACTED_FIELDS = frozenset({'code', 'otp', 'submitted_code'})

_RESERVED_ATTRS = frozenset({
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname', 'filename',
    'module', 'exc_info', 'exc_text', 'stack_info', 'lineno', 'funcName',
    'created', 'msecs', 'relativeCreated', 'thread', 'threadName',
    'processName', 'process', 'message', 'taskName',
})

# Log context is per thread so concurrent requests do not mix their fields
_local = threading.local()


def _get_context(logger: logging.Logger) -> dict:
    contexts = getattr(_local, 'contexts', None)
    if contexts is None:
        return {}
    return contexts.get(logger.name, {})


def _set_context(logger: logging.Logger, context: dict) -> None:
    if not hasattr(_local, 'contexts'):
        _local.contexts = {}
    _local.contexts[logger.name] = context


class StructuredLogger(logging.Logger):
    """Custom logger that adds structured logging capabilities"""

    def _log(self, level, msg, args, exc_info=None, extra=None, stack_info=False, stacklevel=1):
        extra = dict(extra) if extra else {}

        # Add context information if available
        extra.update(_get_context(self))

        for key in REDACTED_FIELDS.intersection(extra):
            extra[key] = '***'

        # Add timestamp in ISO format
        extra['timestamp'] = datetime.utcnow().isoformat()

        # Add service name if set
        if hasattr(self, '_service_name'):
            extra['service'] = self._service_name

        super()._log(level, msg, args, exc_info, extra, stack_info, stacklevel)


class JSONFormatter(logging.Formatter):
    """Custom formatter that outputs logs in JSON format"""

    def format(self, record):
        log_record = {
            'timestamp': datetime.fromtimestamp(record.created).isoformat(),
            'name': record.name,
            'level': record.levelname,
            'message': record.getMessage(),
            'service': getattr(record, 'service', 'unknown')
        }

        # Add exception info if present
        if record.exc_info:
            log_record['exception'] = self.formatException(record.exc_info)

        # Add any extra fields
        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS or key in log_record:
                continue
            log_record[key] = '***' if key in REDACTED_FIELDS else value

        return json.dumps(log_record, default=str)


def setup_logging(
        service_name: str,
        log_level: str = 'INFO',
        log_format: str = 'json'  # 'json' or 'text'
) -> logging.Logger:
    """
    Set up logging configuration for a service

    Args:
        service_name: Name of the service
        log_level: Logging level
        log_format: Format to use ('json' or 'text')

    Returns:
        Configured logger
    """
    # Set custom logger class
    logging.setLoggerClass(StructuredLogger)

    logger = logging.getLogger(service_name)
    logger.setLevel(getattr(logging, log_level.upper()))

    # Clear any existing handlers
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(getattr(logging, log_level.upper()))

    if log_format == 'json':
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    handler.setFormatter(formatter)
    logger.addHandler(handler)

    logger._service_name = service_name

    # Prevent propagation to root logger
    logger.propagate = False

    return logger


@contextmanager
def log_context(logger: logging.Logger, **kwargs):
    """
    Context manager for adding contextual information to logs

    Args:
        logger: Logger instance
        **kwargs: Context key-value pairs
    """
    old_context = _get_context(logger)
    new_context = old_context.copy()
    new_context.update(kwargs)
    _set_context(logger, new_context)
    try:
        yield
    finally:
        _set_context(logger, old_context)


def log_operation(operation_name: str, log_args: bool = True):
    """
    Decorator for logging function entry and exit

    Args:
        operation_name: Name of the operation being performed
        log_args: Include call arguments in the entry record. Must be False
            for any call that receives a verification code.
    """

    def _resolve_logger(args):
        # Methods expose their logger as an attribute of self
        if args and hasattr(args[0], 'logger'):
            return args[0].logger
        return logging.getLogger(__name__)

    def _entry_extra(args, kwargs):
        if not log_args:
            return {}
        return {
            'call_args': str(args[1:])[:100],  # Limit args length
            'call_kwargs': str(kwargs)[:100]
        }

    def decorator(func):
        @wraps(func)
        def sync_wrapper(*args, **kwargs):
            logger = _resolve_logger(args)

            with log_context(logger, operation=operation_name):
                logger.debug(f"Starting {operation_name}", extra=_entry_extra(args, kwargs))

                try:
                    result = func(*args, **kwargs)
                    logger.debug(f"Completed {operation_name}")
                    return result
                except Exception as e:
                    logger.exception(f"Error in {operation_name}: {type(e).__name__}")
                    raise

        @wraps(func)
        async def async_wrapper(*args, **kwargs):
            logger = _resolve_logger(args)

            with log_context(logger, operation=operation_name):
                logger.debug(f"Starting {operation_name}", extra=_entry_extra(args, kwargs))

                try:
                    result = await func(*args, **kwargs)
                    logger.debug(f"Completed {operation_name}")
                    return result
                except Exception as e:
                    logger.exception(f"Error in {operation_name}: {type(e).__name__}")
                    raise

        # Return appropriate wrapper based on function type
        if inspect.iscoroutinefunction(func):
            return async_wrapper
        else:
            return sync_wrapper

    return decorator
