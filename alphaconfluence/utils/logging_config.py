"""
AlphaConfluence Logging Infrastructure
======================================

- Structured JSON logging for production
- Human-readable colored output for development
- Rotating log files (application, errors, confidence audit trail)
- Helpers for timing, error context and data quality issues

Library modules only ever call ``logging.getLogger(__name__)``; handlers are
installed by the application through ``setup_logging()``.

Usage:
    from alphaconfluence.utils.logging_config import setup_logging, get_logger

    setup_logging()
    logger = get_logger(__name__)
    logger.info("Scored instrument", extra={"instrument": "SPY", "confidence": 0.67})
"""

import json
import logging
import logging.handlers
import os
import sys
import time
import traceback
from datetime import datetime, timezone
from functools import wraps
from pathlib import Path
from typing import Any, Dict, Optional


# ===== CONFIGURATION =====

class LogConfig:
    """Logging configuration"""

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()

    ENVIRONMENT = os.getenv('ENVIRONMENT', 'development')
    IS_PRODUCTION = ENVIRONMENT == 'production'

    LOG_DIR = Path(os.getenv('LOG_DIR', 'logs'))
    LOG_TO_FILE = os.getenv('LOG_TO_FILE', 'false').lower() in ('true', '1', 'yes', 'on')

    MAX_BYTES = 10 * 1024 * 1024  # 10MB per file
    BACKUP_COUNT = 5

    APP_LOG_FILE = 'alphaconfluence.log'
    ERROR_LOG_FILE = 'alphaconfluence_errors.log'
    AUDIT_LOG_FILE = 'confidence_audit.log'

    SLOW_OPERATION_THRESHOLD_MS = 250


_STANDARD_RECORD_FIELDS = set(logging.LogRecord('', 0, '', 0, '', (), None).__dict__)


def _extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    """Fields passed through ``extra=`` plus the active LogContext"""
    fields = dict(LogContext.get_context())
    fields.update({
        k: v for k, v in record.__dict__.items()
        if k not in _STANDARD_RECORD_FIELDS and not k.startswith('_')
        and k not in ('message', 'args')
    })
    return fields


# ===== FORMATTERS =====

class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging in production"""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info)
            }

        context = _extra_fields(record)
        if context:
            log_data["context"] = context

        return json.dumps(log_data, default=str)


class ReadableFormatter(logging.Formatter):
    """Human-readable formatter for development"""

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
        'RESET': '\033[0m'
    }

    def __init__(self, use_color: bool = True):
        super().__init__()
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, '') if self.use_color else ''
        reset = self.COLORS['RESET'] if self.use_color else ''

        timestamp = datetime.now().strftime('%Y-%m-%d %H:%M:%S')
        base = f"{timestamp} | {color}{record.levelname:8}{reset} | {record.name} | {record.getMessage()}"

        context = _extra_fields(record)
        if context:
            context_str = ' | '.join(f"{k}={v}" for k, v in context.items())
            base += f" | {context_str}"

        if record.exc_info:
            base += f"\n{self.formatException(record.exc_info)}"

        return base


# ===== LOGGER SETUP =====

def _rotating_handler(filename: str, level: int, backup_count: int) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        LogConfig.LOG_DIR / filename,
        maxBytes=LogConfig.MAX_BYTES,
        backupCount=backup_count
    )
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter())
    return handler


def setup_logging(level: Optional[str] = None, log_to_file: Optional[bool] = None) -> logging.Logger:
    """
    Install console (and optionally rotating file) handlers on the root logger.

    Args:
        level: Override for LOG_LEVEL
        log_to_file: Override for LOG_TO_FILE

    Returns:
        The configured root logger
    """
    level_name = (level or LogConfig.LOG_LEVEL).upper()
    numeric_level = getattr(logging, level_name, logging.INFO)
    to_file = LogConfig.LOG_TO_FILE if log_to_file is None else log_to_file

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    if LogConfig.IS_PRODUCTION:
        formatter = JSONFormatter()
    else:
        formatter = ReadableFormatter(use_color=sys.stdout.isatty())

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if to_file:
        LogConfig.LOG_DIR.mkdir(parents=True, exist_ok=True)
        root_logger.addHandler(_rotating_handler(LogConfig.APP_LOG_FILE, logging.DEBUG, LogConfig.BACKUP_COUNT))
        root_logger.addHandler(_rotating_handler(LogConfig.ERROR_LOG_FILE, logging.ERROR, LogConfig.BACKUP_COUNT))

    root_logger.info(
        "Logging infrastructure initialized",
        extra={
            "log_level": level_name,
            "environment": LogConfig.ENVIRONMENT,
            "log_to_file": to_file,
        }
    )
    return root_logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a module.

    Args:
        name: Module name (typically __name__)
    """
    return logging.getLogger(name)


def get_audit_logger() -> logging.Logger:
    """
    Logger for the confidence audit trail.
    Gets its own rotating file when file logging is enabled.
    """
    logger = logging.getLogger('alphaconfluence.audit')

    if LogConfig.LOG_TO_FILE and not any(
        isinstance(h, logging.handlers.RotatingFileHandler)
        and LogConfig.AUDIT_LOG_FILE in str(getattr(h, 'baseFilename', ''))
        for h in logger.handlers
    ):
        LogConfig.LOG_DIR.mkdir(parents=True, exist_ok=True)
        logger.addHandler(_rotating_handler(LogConfig.AUDIT_LOG_FILE, logging.INFO, 20))

    return logger


# ===== CONTEXT MANAGERS AND DECORATORS =====

class LogContext:
    """
    Context manager for adding contextual information to logs.

    Usage:
        with LogContext(instrument="SPY", cycle=42):
            logger.info("Aggregating factors")  # includes instrument and cycle
    """

    _context: Dict[str, Any] = {}

    def __init__(self, **kwargs):
        self.new_context = kwargs
        self.old_context = {}

    def __enter__(self):
        self.old_context = LogContext._context.copy()
        LogContext._context = {**LogContext._context, **self.new_context}
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        LogContext._context = self.old_context
        return False

    @classmethod
    def get_context(cls) -> Dict[str, Any]:
        return cls._context.copy()


def log_execution_time(logger: Optional[logging.Logger] = None, level: int = logging.DEBUG):
    """
    Decorator to log function execution time. Slow calls are raised to WARNING.

    Usage:
        @log_execution_time()
        def evaluate_watchlist(...):
            ...
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            log = logger or get_logger(func.__module__)

            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                elapsed_ms = (time.perf_counter() - start) * 1000
                log.error(
                    f"{func.__name__} failed: {str(e)}",
                    extra={
                        "execution_time_ms": round(elapsed_ms, 2),
                        "error_type": type(e).__name__
                    },
                    exc_info=True
                )
                raise

            elapsed_ms = (time.perf_counter() - start) * 1000
            slow = elapsed_ms > LogConfig.SLOW_OPERATION_THRESHOLD_MS
            log.log(
                logging.WARNING if slow else level,
                f"{func.__name__} completed",
                extra={
                    "execution_time_ms": round(elapsed_ms, 2),
                    "slow": slow
                }
            )
            return result
        return wrapper
    return decorator


def log_confidence_decision(
    instrument: str,
    confidence: float,
    conviction: float,
    direction: str,
    reasons: Optional[list] = None,
    **kwargs
):
    """
    Record a scored instrument on the audit trail.

    Args:
        instrument: Instrument symbol
        confidence: Final (adjusted) confidence, 0-1
        conviction: Conviction score, 0-1
        direction: BULLISH / BEARISH / NEUTRAL
        reasons: Diagnostic strings collected during evaluation
        **kwargs: Additional context (levels, deltas, etc.)
    """
    get_audit_logger().info(
        f"CONFIDENCE: {instrument} {direction} {confidence:.3f}",
        extra={
            "instrument": instrument,
            "confidence": round(confidence, 4),
            "conviction": round(conviction, 4),
            "direction": direction,
            "reasons": reasons or [],
            "timestamp": datetime.now(timezone.utc).isoformat(),
            **kwargs
        }
    )


def log_error_with_context(
    logger: logging.Logger,
    message: str,
    error: Exception,
    **context
):
    """
    Log an error with full context and traceback.

    Args:
        logger: Logger instance
        message: Error message
        error: The exception
        **context: Additional context
    """
    logger.error(
        message,
        extra={
            "error_type": type(error).__name__,
            "error_message": str(error),
            "traceback": ''.join(traceback.format_exception(type(error), error, error.__traceback__)),
            **context
        }
    )


def log_data_quality_issue(
    logger: logging.Logger,
    issue_type: str,
    description: str,
    severity: str = "warning",
    **context
):
    """
    Log data quality issues (thin option chains, degenerate factor values...).

    Args:
        logger: Logger instance
        issue_type: insufficient_depth, invalid_value, config_rejected, ...
        description: Description of the issue
        severity: info, warning, error or critical
        **context: Additional context
    """
    level_map = {
        "info": logging.INFO,
        "warning": logging.WARNING,
        "error": logging.ERROR,
        "critical": logging.CRITICAL
    }
    level = level_map.get(severity, logging.WARNING)

    logger.log(
        level,
        f"DATA_QUALITY: {issue_type} - {description}",
        extra={
            "issue_type": issue_type,
            "severity": severity,
            **context
        }
    )


__all__ = [
    'LogConfig',
    'JSONFormatter',
    'ReadableFormatter',
    'setup_logging',
    'get_logger',
    'get_audit_logger',
    'LogContext',
    'log_execution_time',
    'log_confidence_decision',
    'log_error_with_context',
    'log_data_quality_issue',
]
