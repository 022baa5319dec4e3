"""
Input Validation
================

Validation helpers for request parameters and loader options, with clear
error messages.

Usage
-----
    from geolocator.model.validation import validate_tokens, validate_window

    try:
        tokens = validate_tokens(tokens_param)
        window = validate_window(window_param)
    except ValidationError as e:
        return e.to_response()

Error Response Format
--------------------
All validation errors use the same envelope as errors.py:

    {
        "success": False,
        "error": {
            "code": "INVALID_PARAMETER",
            "message": "...",
            "httpStatus": 400,
            "details": { "parameter": "...", "value": "..." }
        }
    }
"""

import math
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from .settings import Config
from .errors import ErrorCode, api_error

# Tokens may be separated by commas and/or whitespace in query strings
_TOKEN_SPLIT = re.compile(r"[,\s]+")


@dataclass
class ValidationError(Exception):
    """
    Validation error with details for responses.

    Uses the same response format as errors.api_error() for consistency.
    """

    parameter: str
    message: str
    value: Any = None

    def to_response(self) -> Dict[str, Any]:
        """Convert to error response dict."""
        return api_error(
            ErrorCode.INVALID_PARAMETER,
            self.message,
            details={
                "parameter": self.parameter,
                "value": str(self.value) if self.value is not None else None,
            }
        )

    def __str__(self) -> str:
        return f"Invalid '{self.parameter}': {self.message}"


def validate_positive_int(
    value: Any,
    name: str,
    default: Optional[int] = None,
    min_value: int = 1,
    max_value: Optional[int] = None,
) -> int:
    """
    Validate a whole-number setting such as a worker count.

    Strings from YAML or the command line are converted; booleans and
    fractional numbers are rejected rather than truncated.

    Raises:
        ValidationError: If value is invalid or outside the allowed range
    """
    if value is None or value == "":
        if default is not None:
            return default
        raise ValidationError(name, f"'{name}' is required", value)

    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise ValidationError(name, f"must be a whole number, got '{value}'", value)

    try:
        int_val = int(value)
    except (ValueError, TypeError):
        raise ValidationError(name, f"must be a whole number, got '{value}'", value)

    if int_val < min_value or (max_value is not None and int_val > max_value):
        bound = f"between {min_value} and {max_value}" if max_value is not None else f"at least {min_value}"
        raise ValidationError(name, f"must be {bound}, got {int_val}", value)

    return int_val


def validate_positive_float(
    value: Any,
    name: str,
    default: Optional[float] = None,
    min_value: float = 0.0,
    max_value: Optional[float] = None,
) -> float:
    """
    Validate and convert value to a finite non-negative float.

    Raises:
        ValidationError: If value is invalid
    """
    if value is None or value == "":
        if default is not None:
            return default
        raise ValidationError(name, f"'{name}' is required", value)

    try:
        float_val = float(value)
    except (ValueError, TypeError):
        raise ValidationError(name, f"must be a number, got '{value}'", value)

    if not math.isfinite(float_val):
        raise ValidationError(name, f"must be finite, got '{value}'", value)

    if float_val < min_value:
        raise ValidationError(name, f"must be at least {min_value}, got {float_val}", value)

    if max_value is not None and float_val > max_value:
        raise ValidationError(name, f"must be at most {max_value}, got {float_val}", value)

    return float_val


def validate_window(value: Any, default: Optional[float] = None) -> float:
    """
    Validate the confidence window half-width (degrees).

    Uses Config.SCORING.CONFIDENCE_WINDOW when no value is given.
    """
    _default = default if default is not None else Config.SCORING.CONFIDENCE_WINDOW

    return validate_positive_float(
        value,
        "window",
        default=_default,
        min_value=0.0,
        max_value=360.0,
    )


def validate_tokens(
    value: Any,
    name: str = "tokens",
    max_tokens: Optional[int] = None,
) -> List[str]:
    """
    Validate a token list parameter.

    Accepts a comma/whitespace separated string or a sequence of strings.
    Order and duplicates are preserved; empty fragments are dropped.

    Args:
        value: Raw parameter value
        name: Parameter name for error messages
        max_tokens: Override max (uses Config.API.MAX_TOKENS if None)

    Returns:
        List of tokens

    Raises:
        ValidationError: If the parameter is missing, empty or too long
    """
    _max = max_tokens if max_tokens is not None else Config.API.MAX_TOKENS

    if value is None or value == "":
        raise ValidationError(name, f"'{name}' is required", value)

    if isinstance(value, str):
        tokens = [t for t in _TOKEN_SPLIT.split(value) if t]
    elif isinstance(value, Sequence):
        tokens = []
        for item in value:
            tokens.extend(t for t in _TOKEN_SPLIT.split(str(item)) if t)
    else:
        raise ValidationError(name, f"must be a string or list, got '{value}'", value)

    if not tokens:
        raise ValidationError(name, "must contain at least one token", value)

    if len(tokens) > _max:
        raise ValidationError(
            name,
            f"must contain at most {_max} tokens, got {len(tokens)}",
            value
        )

    return tokens


def validate_string_choice(
    value: Any,
    name: str,
    choices: list,
    default: Optional[str] = None,
    case_sensitive: bool = False,
) -> str:
    """
    Validate string is one of allowed choices.

    Raises:
        ValidationError: If value is not in choices
    """
    if value is None or value == "":
        if default is not None:
            return default
        raise ValidationError(name, f"'{name}' is required", value)

    str_val = str(value)

    if case_sensitive:
        if str_val in choices:
            return str_val
    else:
        lower_val = str_val.lower()
        for choice in choices:
            if choice.lower() == lower_val:
                return choice

    choices_str = ", ".join(f"'{c}'" for c in choices)
    raise ValidationError(
        name,
        f"must be one of [{choices_str}], got '{value}'",
        value
    )
