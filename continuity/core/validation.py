"""Input validation helpers for continuity operations.

Shared by the core operations, the MCP adapter and the CLI so every entry
point rejects bad input the same way, before anything is mutated.

- ``sanitize_string`` - string validation + control-char stripping
- ``sanitize_list`` - array-of-strings validation + null-item rejection
- ``sanitize_number`` - numeric validation + NaN/Infinity rejection
- ``validate_enum`` - membership check with an optional default
"""

import math
import re
from typing import Any, List, Optional

from continuity.errors import ValidationError

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def sanitize_string(
    value: Any, field_name: str, max_length: int = 1000, required: bool = True
) -> str:
    """Sanitize and validate string inputs.

    Args:
        value: The value to sanitize.
        field_name: Name of the field for error messages.
        max_length: Maximum allowed string length.
        required: If True, missing or blank values are rejected.

    Returns:
        Sanitized string ("" for an absent optional value).

    Raises:
        ValidationError: If validation fails.
    """
    if value is None:
        if required:
            raise ValidationError(f"{field_name} is required")
        return ""

    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be a string, got {type(value).__name__}")

    if required and not value.strip():
        raise ValidationError(f"{field_name} cannot be empty")

    if len(value) > max_length:
        raise ValidationError(
            f"{field_name} too long (max {max_length} characters, got {len(value)})"
        )

    return _CONTROL_CHARS.sub("", value)


def sanitize_list(
    value: Any,
    field_name: str,
    item_max_length: int = 500,
    max_items: int = 100,
) -> Optional[List[str]]:
    """Validate and sanitize list-of-string inputs.

    Returns None when the field is absent so callers can tell "not given"
    apart from "given and empty" (replace-semantics fields depend on it).
    Blank items are dropped.

    Raises:
        ValidationError: If validation fails.
    """
    if value is None:
        return None

    if not isinstance(value, list):
        raise ValidationError(f"{field_name} must be an array, got {type(value).__name__}")

    if len(value) > max_items:
        raise ValidationError(f"{field_name} too many items (max {max_items}, got {len(value)})")

    if any(item is None for item in value):
        raise ValidationError(f"{field_name} must not contain null items")

    sanitized = []
    for i, item in enumerate(value):
        cleaned = sanitize_string(item, f"{field_name}[{i}]", item_max_length, required=False)
        if cleaned.strip():
            sanitized.append(cleaned)
    return sanitized


def sanitize_number(
    value: Any,
    field_name: str,
    min_val: Optional[float] = None,
    max_val: Optional[float] = None,
    default: Optional[float] = None,
) -> float:
    """Validate numeric inputs, rejecting NaN and Infinity.

    Raises:
        ValidationError: If validation fails.
    """
    if value is None:
        if default is not None:
            return default
        raise ValidationError(f"{field_name} is required")

    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{field_name} must be a number, got {type(value).__name__}")

    if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
        raise ValidationError(f"{field_name} must be a finite number, got {value}")

    if min_val is not None and value < min_val:
        raise ValidationError(f"{field_name} must be >= {min_val}, got {value}")

    if max_val is not None and value > max_val:
        raise ValidationError(f"{field_name} must be <= {max_val}, got {value}")

    return float(value)


def validate_enum(
    value: Any,
    field_name: str,
    valid_values: List[str],
    default: Optional[str] = None,
) -> str:
    """Validate an enum value, falling back to ``default`` when absent.

    Raises:
        ValidationError: If the value is missing with no default, or invalid.
    """
    if value is None:
        if default is not None:
            return default
        raise ValidationError(f"{field_name} is required")

    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be a string")

    if value not in valid_values:
        raise ValidationError(f"{field_name} must be one of {valid_values}, got '{value}'")

    return value
