"""
Centralized error logging for skipped targets and fatal failures.

This module provides a fail-safe error logger that:
- Writes validated ErrorRecords as JSON lines, one file per UTC day
- Uses Pydantic validation for type safety
- Never raises; falls back to the standard logger
- Follows singleton pattern for global access
"""

import json
import os
from pathlib import Path
from typing import Optional, Dict, Any, List
from datetime import datetime, timezone

from src.core.logging import get_logger
from src.core.error_models import (
    ErrorRecord,
    ErrorComponent,
    ErrorSeverity,
    ErrorType,
)

logger = get_logger(__name__)

ERROR_LOG_DIR = Path(os.getenv("ERROR_LOG_DIR", "logs/errors"))

# Singleton instance
_error_logger: Optional["ErrorLogger"] = None


class ErrorLogger:
    """
    JSONL error logger.

    Usage:
        >>> error_logger = get_error_logger()
        >>> error_logger.log_error(
        ...     component=ErrorComponent.ENUMERATOR,
        ...     stage=ErrorStage.LIST_BOTS,
        ...     error_type=ErrorType.ENUMERATION_EMPTY,
        ...     target="Alpha",
        ...     message="No active bots",
        ... )
    """

    def __init__(self, log_dir: Optional[Path] = None):
        self._log_dir = Path(log_dir) if log_dir is not None else ERROR_LOG_DIR
        self._log_dir.mkdir(exist_ok=True, parents=True)
        self._records: List[ErrorRecord] = []

    @property
    def records(self) -> List[ErrorRecord]:
        """Records logged by this instance, in order."""
        return list(self._records)

    def log_error(
        self,
        component: ErrorComponent,
        stage: str,
        error_type: ErrorType,
        target: str,
        message: str,
        url: Optional[str] = None,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """
        Log an error record.

        This method never raises exceptions.

        Returns:
            True if logged successfully, False otherwise
        """
        try:
            record = ErrorRecord(
                component=component,
                stage=stage,
                error_type=error_type,
                severity=severity,
                target=target,
                url=url,
                message=message,
                metadata=metadata or {},
            )
            return self._write(record)
        except Exception as e:
            logger.error(f"Error logger failed: {e} - Original error: {message}")
            return False

    def log_exception(
        self,
        exc: Exception,
        component: ErrorComponent,
        stage: str,
        target: str,
        url: Optional[str] = None,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        error_type: Optional[ErrorType] = None,
        include_stack_trace: bool = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """
        Log an exception with automatic classification.

        Returns:
            True if logged successfully, False otherwise
        """
        try:
            record = ErrorRecord.from_exception(
                exc=exc,
                component=component,
                stage=stage,
                target=target,
                url=url,
                severity=severity,
                error_type=error_type,
                include_stack_trace=include_stack_trace,
                metadata=metadata,
            )
            return self._write(record)
        except Exception as e:
            logger.error(f"Error logger failed: {e} - Original exception: {type(exc).__name__}")
            return False

    def _write(self, record: ErrorRecord) -> bool:
        """Append a record to today's JSONL file."""
        self._records.append(record)
        try:
            date_str = datetime.now(timezone.utc).strftime("%Y%m%d")
            file_path = self._log_dir / f"errors_{date_str}.jsonl"
            with open(file_path, "a", encoding="utf-8") as f:
                json.dump(record.model_dump(), f, ensure_ascii=False)
                f.write("\n")
            return True
        except Exception as e:
            logger.error(f"File error write failed: {e}")
            return False


def get_error_logger(log_dir: Optional[Path] = None) -> ErrorLogger:
    """
    Get the global ErrorLogger instance.

    Args:
        log_dir: Directory for JSONL files (only used on first call)
    """
    global _error_logger
    if _error_logger is None:
        _error_logger = ErrorLogger(log_dir=log_dir)
    return _error_logger
