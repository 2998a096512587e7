"""
Pydantic models for structured error logging.

This module defines type-safe error record models with automatic validation
and classification to ensure consistency across the error logging system.
"""

import json
import traceback
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any
from pydantic import BaseModel, Field, field_validator, ConfigDict

from src.core.exceptions import (
    EmptyEnumerationError,
    RenderDelayError,
    SelectionError,
    SessionFatalError,
)


class ErrorComponent(str, Enum):
    """System components that can generate errors."""
    SESSION = "session"
    ENUMERATOR = "enumerator"
    TRAVERSAL = "traversal"
    SINK = "sink"
    CONFIG = "config"
    UNKNOWN = "unknown"


class ErrorSeverity(str, Enum):
    """Error severity levels matching logging standards."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorType(str, Enum):
    """
    Categorized error types for classification.

    The first four mirror the exception taxonomy in src.core.exceptions.
    """
    RENDER_DELAY = "render_delay"
    SELECTION_FAILURE = "selection_failure"
    ENUMERATION_EMPTY = "enumeration_empty"
    SESSION_FATAL = "session_fatal"

    # Browser errors
    TIMEOUT = "timeout"
    BROWSER_ERROR = "browser_error"
    NAVIGATION_ERROR = "navigation_error"
    ELEMENT_NOT_FOUND = "element_not_found"

    # File system errors
    FILE_ERROR = "file_error"

    # Configuration errors
    CONFIG_ERROR = "config_error"

    UNKNOWN = "unknown"


class ErrorStage:
    """
    Standardized stage names for error logging.

    Use these constants to ensure consistency across the codebase.
    """
    # Session stages
    NAVIGATE = "navigate"
    CHECK_AUTH = "check_auth"
    LOGIN = "login"
    SAVE_SESSION = "save_session"

    # Enumerator stages
    LIST_COMMUNITIES = "list_communities"
    LIST_SEGMENTS = "list_segments"
    LIST_BOTS = "list_bots"
    SELECT_COMMUNITY = "select_community"
    SELECT_SEGMENT = "select_segment"
    SELECT_BOT = "select_bot"
    APPLY_DATE_FILTER = "apply_date_filter"

    # Traversal stages
    AWAIT_READY = "await_ready"
    SHOW_RESULTS = "show_results"
    PAGINATE = "paginate"

    # Sink stages
    WRITE_ARTIFACT = "write_artifact"

    # Config stages
    LOAD_CONFIG = "load_config"


class ErrorRecord(BaseModel):
    """
    Structured error record for the JSONL error log.

    This model validates all error data before logging to ensure consistency
    and prevent logging errors from causing additional failures.
    """
    component: ErrorComponent = Field(..., description="System component")
    stage: str = Field(..., min_length=1, max_length=100, description="Processing stage")
    error_type: ErrorType = Field(..., description="Error category")
    severity: ErrorSeverity = Field(default=ErrorSeverity.ERROR, description="Severity level")
    target: str = Field(..., min_length=1, max_length=255, description="Target label")
    message: str = Field(..., min_length=1, description="Human-readable error message")

    url: Optional[str] = Field(None, max_length=2048, description="Page URL if known")
    exception_type: Optional[str] = Field(None, max_length=255, description="Exception class name")
    stack_trace: Optional[str] = Field(None, description="Stack trace for unexpected errors")

    metadata: Dict[str, Any] = Field(default_factory=dict, description="Additional context")

    created_at: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(),
        description="Error timestamp"
    )

    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=True,
        use_enum_values=True,
    )

    @field_validator("stage")
    @classmethod
    def validate_stage(cls, v: str) -> str:
        """Ensure stage is not empty and normalized."""
        if not v or not v.strip():
            return "unknown"
        return v.strip().lower().replace(" ", "_")

    @field_validator("target", mode="before")
    @classmethod
    def validate_target(cls, v: Any) -> str:
        """Fall back to a placeholder label and cap length."""
        if v is None or not str(v).strip():
            return "unknown"
        return str(v).strip()[:255]

    @field_validator("message")
    @classmethod
    def validate_message(cls, v: str) -> str:
        """Ensure message is not empty."""
        if not v or not v.strip():
            return "No error message provided"
        return v.strip()[:5000]

    @field_validator("metadata")
    @classmethod
    def sanitize_metadata(cls, v: Dict[str, Any]) -> Dict[str, Any]:
        """
        Sanitize metadata to ensure it's JSON-serializable.

        Converts non-serializable types to strings.
        """
        sanitized = {}
        for key, value in v.items():
            try:
                json.dumps(value)
                sanitized[key] = value
            except (TypeError, ValueError):
                sanitized[key] = str(value)
        return sanitized

    @classmethod
    def from_exception(
        cls,
        exc: Exception,
        component: ErrorComponent,
        stage: str,
        target: str,
        url: Optional[str] = None,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        error_type: Optional[ErrorType] = None,
        include_stack_trace: bool = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> "ErrorRecord":
        """
        Create ErrorRecord from an exception with automatic classification.

        Args:
            exc: The exception that occurred
            component: System component where error occurred
            stage: Processing stage
            target: Label of the target being processed
            url: Optional page URL
            severity: Error severity (default: ERROR)
            error_type: Optional explicit error type (auto-detected if None)
            include_stack_trace: Whether to include full stack trace (auto if None)
            metadata: Additional context

        Returns:
            ErrorRecord instance ready for logging

        Example:
            >>> try:
            ...     await enumerator.select_bot_and_step("Welcome bot")
            ... except SelectionError as e:
            ...     record = ErrorRecord.from_exception(
            ...         e,
            ...         component=ErrorComponent.ENUMERATOR,
            ...         stage=ErrorStage.SELECT_BOT,
            ...         target="Welcome bot",
            ...     )
        """
        if error_type is None:
            error_type = cls._classify_exception(exc)

        message = str(exc) or f"{type(exc).__name__} occurred"
        exception_type = f"{type(exc).__module__}.{type(exc).__name__}"

        if include_stack_trace is None:
            include_stack_trace = cls._should_include_stack(exc, severity)

        stack_trace = None
        if include_stack_trace:
            try:
                stack_trace = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
                # Truncate to 10KB
                if len(stack_trace) > 10000:
                    stack_trace = stack_trace[:10000] + "\n... (truncated)"
            except Exception:
                stack_trace = None

        return cls(
            component=component,
            stage=stage,
            error_type=error_type,
            severity=severity,
            target=target,
            url=url,
            message=message,
            exception_type=exception_type,
            stack_trace=stack_trace,
            metadata=metadata or {},
        )

    @staticmethod
    def _classify_exception(exc: Exception) -> ErrorType:
        """
        Automatically classify exception into ErrorType.

        Harvester exceptions map directly; anything else is classified from
        its type name and message.
        """
        if isinstance(exc, SessionFatalError):
            return ErrorType.SESSION_FATAL
        if isinstance(exc, SelectionError):
            return ErrorType.SELECTION_FAILURE
        if isinstance(exc, EmptyEnumerationError):
            return ErrorType.ENUMERATION_EMPTY
        if isinstance(exc, RenderDelayError):
            return ErrorType.RENDER_DELAY

        exc_name = type(exc).__name__.lower()
        exc_msg = str(exc).lower()

        if "timeout" in exc_name or "timeout" in exc_msg:
            return ErrorType.TIMEOUT
        if "navigation" in exc_msg or "net::" in exc_msg:
            return ErrorType.NAVIGATION_ERROR
        if "playwright" in exc_name or "browser" in exc_name or "target closed" in exc_msg:
            return ErrorType.BROWSER_ERROR
        if "element" in exc_name or "selector" in exc_msg:
            return ErrorType.ELEMENT_NOT_FOUND
        if isinstance(exc, OSError):
            return ErrorType.FILE_ERROR

        return ErrorType.UNKNOWN

    @staticmethod
    def _should_include_stack(exc: Exception, severity: ErrorSeverity) -> bool:
        """
        Determine if stack trace should be included based on exception type and severity.

        Expected errors (render delays, selection misses) don't need stacks.
        Unexpected errors do.
        """
        if severity == ErrorSeverity.CRITICAL:
            return True

        if severity in (ErrorSeverity.WARNING, ErrorSeverity.INFO, ErrorSeverity.DEBUG):
            return False

        if isinstance(exc, (RenderDelayError, SelectionError, EmptyEnumerationError)):
            return False

        EXPECTED_ERRORS = (
            'TimeoutError',
            'FileNotFoundError',
            'ValueError',
        )
        return type(exc).__name__ not in EXPECTED_ERRORS
