"""Logging helpers for AlphaConfluence."""

from .logging_config import (
    LogConfig,
    LogContext,
    get_logger,
    get_audit_logger,
    setup_logging,
    log_execution_time,
    log_confidence_decision,
    log_error_with_context,
    log_data_quality_issue,
)

__all__ = [
    'LogConfig',
    'LogContext',
    'get_logger',
    'get_audit_logger',
    'setup_logging',
    'log_execution_time',
    'log_confidence_decision',
    'log_error_with_context',
    'log_data_quality_issue',
]
