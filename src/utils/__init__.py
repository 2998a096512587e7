"""
Shared utility functions for the harvester.

This module contains reusable utilities used across components:
- Retry logic (exponential backoff, trigger-then-wait)
- Date formatting
- Label slugs and random suffixes
- Pacing delays
"""

from src.utils.date_utils import (
    format_date,
    filename_timestamp,
    yesterday,
    yesterday_range,
)
from src.utils.retry import (
    retry_async_with_backoff,
    perform_with_retries,
    RetryConfig,
    RetryAttempt,
    AttemptOutcome,
)
from src.utils.text_utils import slugify, random_suffix, first_label_line, normalize_text
from src.utils.pacing import Pacer

__all__ = [
    # Date utilities
    "format_date",
    "filename_timestamp",
    "yesterday",
    "yesterday_range",
    # Retry utilities
    "retry_async_with_backoff",
    "perform_with_retries",
    "RetryConfig",
    "RetryAttempt",
    "AttemptOutcome",
    # Text utilities
    "slugify",
    "random_suffix",
    "first_label_line",
    "normalize_text",
    # Pacing
    "Pacer",
]
