"""
Error Handling for the Location Model
=====================================

Error taxonomy for table loading and scoring, plus the standardized
response envelope used by the HTTP endpoint and the CLI summaries.

Error Codes
-----------
    INVALID_PARAMETER (400): Bad input parameter
    MISSING_PARAMETER (400): Required parameter missing
    MALFORMED_CELL (422): Cell identifier or cell/probability pair does not parse
    MALFORMED_RECORD (422): Table or accuracy line lacks required fields
    EMPTY_TABLE (409): No token retained after filtering
    DEGENERATE_DISTRIBUTION (409): Entropy values have zero variance
    TABLE_NOT_LOADED (503): No table bundle available to score against
    INTERNAL_ERROR (500): Unexpected internal error

Recovery Policy
---------------
    MalformedCellError / MalformedRecordError are recovered by the loader
    in lenient mode (the offending pair or line is skipped and counted).
    EmptyTableError / DegenerateDistributionError abort the build and
    propagate to the caller. A query without coverage is not an error.

Usage
-----
    from geolocator.model.errors import (
        ErrorCode, LocatorError, MalformedCellError, api_error, api_success
    )

    if not CELL_PATTERN.match(text):
        raise MalformedCellError(f"Invalid cell identifier: {text!r}")

    return api_success(estimate.to_dict())
    return api_error(ErrorCode.MISSING_PARAMETER, "tokens is required")
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Standard error codes for responses."""

    # Client errors (4xx)
    INVALID_PARAMETER = ("INVALID_PARAMETER", 400, "Invalid or malformed parameter")
    MISSING_PARAMETER = ("MISSING_PARAMETER", 400, "Required parameter missing")
    MALFORMED_CELL = ("MALFORMED_CELL", 422, "Cell identifier could not be parsed")
    MALFORMED_RECORD = ("MALFORMED_RECORD", 422, "Record lacks required fields")
    EMPTY_TABLE = ("EMPTY_TABLE", 409, "No tokens retained after filtering")
    DEGENERATE_DISTRIBUTION = (
        "DEGENERATE_DISTRIBUTION", 409, "Entropy distribution has zero variance"
    )

    # Server errors (5xx)
    INTERNAL_ERROR = ("INTERNAL_ERROR", 500, "An internal error occurred")
    TABLE_NOT_LOADED = ("TABLE_NOT_LOADED", 503, "Probability table is not loaded")

    def __init__(self, code: str, http_status: int, default_message: str):
        self.code = code
        self.http_status = http_status
        self.default_message = default_message


@dataclass
class LocatorError(Exception):
    """Exception with error code for responses."""

    error_code: ErrorCode
    message: str
    details: Optional[Dict[str, Any]] = None

    def __str__(self) -> str:
        return f"[{self.error_code.code}] {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to response dict."""
        result = {
            "success": False,
            "error": {
                "code": self.error_code.code,
                "message": self.message,
                "httpStatus": self.error_code.http_status,
            }
        }
        if self.details:
            result["error"]["details"] = self.details
        return result


class MalformedCellError(LocatorError):
    """A cell identifier or a cell>probability pair does not parse."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(ErrorCode.MALFORMED_CELL, message, details)


class MalformedRecordError(LocatorError):
    """A table or accuracy line lacks its required fields."""

    def __init__(
        self,
        message: str,
        line_number: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        if line_number is not None:
            details = dict(details or {}, line=line_number)
        super().__init__(ErrorCode.MALFORMED_RECORD, message, details)
        self.line_number = line_number


class EmptyTableError(LocatorError):
    """Zero tokens survived filtering, so no weight model can be fit."""

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            ErrorCode.EMPTY_TABLE,
            message or ErrorCode.EMPTY_TABLE.default_message,
            details,
        )


class DegenerateDistributionError(LocatorError):
    """The retained entropy values have zero (or undefined) spread."""

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            ErrorCode.DEGENERATE_DISTRIBUTION,
            message or ErrorCode.DEGENERATE_DISTRIBUTION.default_message,
            details,
        )


def api_success(data: Any, **kwargs) -> Dict[str, Any]:
    """
    Build a successful response.

    Args:
        data: The response data
        **kwargs: Additional top-level fields to include

    Returns:
        Dict with success=True and data

    Example:
        >>> api_success({"cell": "40.71_-74.01"}, tokens=3)
        {"success": True, "data": {"cell": "40.71_-74.01"}, "tokens": 3}
    """
    result = {"success": True, "data": data}
    result.update(kwargs)
    return result


def api_error(
    error_code: ErrorCode,
    message: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Build an error response.

    Args:
        error_code: The ErrorCode enum value
        message: Custom error message (uses default if not provided)
        details: Additional error details

    Returns:
        Dict with success=False and error info
    """
    msg = message or error_code.default_message

    result = {
        "success": False,
        "error": {
            "code": error_code.code,
            "message": msg,
            "httpStatus": error_code.http_status,
        }
    }

    if details:
        result["error"]["details"] = details

    return result


def api_error_from_exception(
    exc: Exception,
    default_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
) -> Dict[str, Any]:
    """
    Build error response from an exception.

    If the exception is a LocatorError, uses its error code.
    Otherwise, uses the default code with the exception message.
    """
    if isinstance(exc, LocatorError):
        return exc.to_dict()

    return api_error(default_code, str(exc))


def missing_param(param_name: str) -> Dict[str, Any]:
    """Shorthand for missing parameter errors."""
    return api_error(
        ErrorCode.MISSING_PARAMETER,
        f"Required parameter '{param_name}' is missing",
        details={"parameter": param_name}
    )
