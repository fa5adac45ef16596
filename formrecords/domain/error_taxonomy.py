from __future__ import annotations

from typing import Literal

from formrecords.domain.errors import (
    ConfigurationError,
    StoreWriteError,
    UpstreamFetchError,
)

# Canonical error vocabulary for import runs.
ErrorCode = Literal[
    "configuration_error",
    "upstream_fetch_failed",
    "store_write_failed",
    "index_setup_failed",
    "malformed_answer",
    "empty_response",
    "internal_error",
]

ErrorSeverity = Literal["fatal", "degraded"]

CANONICAL_ERROR_CODES: tuple[ErrorCode, ...] = (
    "configuration_error",
    "upstream_fetch_failed",
    "store_write_failed",
    "index_setup_failed",
    "malformed_answer",
    "empty_response",
    "internal_error",
)

# Conditions the run logs and continues past.
DEGRADED_ERROR_CODES: frozenset[ErrorCode] = frozenset(
    {
        "index_setup_failed",
        "malformed_answer",
        "empty_response",
    }
)


def is_canonical_error_code(code: str) -> bool:
    return code in CANONICAL_ERROR_CODES


def classify_error(code: ErrorCode) -> ErrorSeverity:
    if code in DEGRADED_ERROR_CODES:
        return "degraded"
    return "fatal"


def error_code_for(exc: BaseException) -> ErrorCode:
    if isinstance(exc, ConfigurationError):
        return "configuration_error"
    if isinstance(exc, UpstreamFetchError):
        return "upstream_fetch_failed"
    if isinstance(exc, StoreWriteError):
        return "store_write_failed"
    return "internal_error"
