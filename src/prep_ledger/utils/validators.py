"""
Data validation utilities for Prep Ledger.

Field-level validators return (is_valid, error_message) tuples so callers
can collect every problem before raising ValidationError. Quantities on the
costing path are checked by the services themselves, which raise
InvalidQuantity.
"""

import math
from typing import Any, Optional, Tuple

from .constants import (
    ERROR_INVALID_NON_NEGATIVE,
    ERROR_INVALID_NUMBER,
    ERROR_INVALID_POSITIVE,
    ERROR_REQUIRED_FIELD,
    MAX_NAME_LENGTH,
    MAX_UNIT_LENGTH,
)


def validate_required_string(value: Optional[str], field_name: str = "Field") -> Tuple[bool, str]:
    """
    Validate that a string field is not empty.

    Args:
        value: The string value to validate
        field_name: Name of the field for error messages

    Returns:
        Tuple of (is_valid, error_message)
    """
    if value is None or (isinstance(value, str) and value.strip() == ""):
        return False, f"{field_name}: {ERROR_REQUIRED_FIELD}"
    return True, ""


def validate_string_length(
    value: Optional[str], max_length: int, field_name: str = "Field"
) -> Tuple[bool, str]:
    """Validate that a string doesn't exceed maximum length."""
    if value and len(value) > max_length:
        return False, f"{field_name}: Must be {max_length} characters or less"
    return True, ""


def _as_finite_float(value: Any) -> Optional[float]:
    try:
        num_value = float(value)
    except (ValueError, TypeError):
        return None
    if not math.isfinite(num_value):
        return None
    return num_value


def validate_positive_number(value: Any, field_name: str = "Field") -> Tuple[bool, str]:
    """
    Validate that a value is a finite positive number (> 0).

    Args:
        value: The value to validate
        field_name: Name of the field for error messages

    Returns:
        Tuple of (is_valid, error_message)
    """
    num_value = _as_finite_float(value)
    if num_value is None:
        return False, f"{field_name}: {ERROR_INVALID_NUMBER}"
    if num_value <= 0:
        return False, f"{field_name}: {ERROR_INVALID_POSITIVE}"
    return True, ""


def validate_non_negative_number(value: Any, field_name: str = "Field") -> Tuple[bool, str]:
    """Validate that a value is a finite number >= 0."""
    num_value = _as_finite_float(value)
    if num_value is None:
        return False, f"{field_name}: {ERROR_INVALID_NUMBER}"
    if num_value < 0:
        return False, f"{field_name}: {ERROR_INVALID_NON_NEGATIVE}"
    return True, ""


def validate_unit(unit: Optional[str], field_name: str = "Unit") -> Tuple[bool, str]:
    """
    Validate that a unit string is present and of sane length.

    Any unit text is accepted: unknown units fall back to 1:1 during
    conversion rather than being rejected here.
    """
    is_valid, error = validate_required_string(unit, field_name)
    if not is_valid:
        return is_valid, error
    return validate_string_length(unit, MAX_UNIT_LENGTH, field_name)


def validate_product_data(data: dict) -> Tuple[bool, list]:
    """
    Validate all fields for a catalog product.

    Required fields:
        - restaurant_id (str)
        - name (str)
        - purchase_unit (str)

    Optional fields:
        - size_value (float, > 0) and size_unit (str), given together
        - cost_per_unit (float, >= 0)
        - current_stock (float, >= 0)

    Returns:
        Tuple of (is_valid, list_of_errors)
    """
    errors = []

    for field, label in (("restaurant_id", "Restaurant"), ("name", "Name")):
        is_valid, error = validate_required_string(data.get(field), label)
        if not is_valid:
            errors.append(error)

    is_valid, error = validate_string_length(data.get("name"), MAX_NAME_LENGTH, "Name")
    if not is_valid:
        errors.append(error)

    is_valid, error = validate_unit(data.get("purchase_unit"), "Purchase Unit")
    if not is_valid:
        errors.append(error)

    size_value = data.get("size_value")
    size_unit = data.get("size_unit")
    if (size_value is None) != (size_unit is None):
        errors.append("Size: size_value and size_unit must be given together")
    elif size_value is not None:
        is_valid, error = validate_positive_number(size_value, "Size Value")
        if not is_valid:
            errors.append(error)
        is_valid, error = validate_unit(size_unit, "Size Unit")
        if not is_valid:
            errors.append(error)

    for field, label in (("cost_per_unit", "Cost Per Unit"), ("current_stock", "Current Stock")):
        if data.get(field) is not None:
            is_valid, error = validate_non_negative_number(data.get(field), label)
            if not is_valid:
                errors.append(error)

    return len(errors) == 0, errors


def validate_prep_recipe_data(data: dict) -> Tuple[bool, list]:
    """
    Validate a prep recipe blueprint.

    Required fields:
        - restaurant_id, name
        - default_yield (> 0), default_yield_unit
        - ingredients: non-empty list of {product_id, quantity > 0, unit},
          each product listed at most once

    Returns:
        Tuple of (is_valid, list_of_errors)
    """
    errors = []

    for field, label in (("restaurant_id", "Restaurant"), ("name", "Name")):
        is_valid, error = validate_required_string(data.get(field), label)
        if not is_valid:
            errors.append(error)

    is_valid, error = validate_positive_number(data.get("default_yield"), "Default Yield")
    if not is_valid:
        errors.append(error)
    is_valid, error = validate_unit(data.get("default_yield_unit"), "Default Yield Unit")
    if not is_valid:
        errors.append(error)

    ingredients = data.get("ingredients") or []
    if not ingredients:
        errors.append(f"Ingredients: {ERROR_REQUIRED_FIELD}")

    seen_products = set()
    for index, line in enumerate(ingredients, start=1):
        product_id = line.get("product_id")
        if product_id is None:
            errors.append(f"Ingredient {index} product: {ERROR_REQUIRED_FIELD}")
        elif product_id in seen_products:
            errors.append(
                f"Ingredient {index} product: Product {product_id} is already listed; "
                f"combine the quantities into one line"
            )
        else:
            seen_products.add(product_id)
        is_valid, error = validate_positive_number(
            line.get("quantity"), f"Ingredient {index} quantity"
        )
        if not is_valid:
            errors.append(error)
        is_valid, error = validate_unit(line.get("unit"), f"Ingredient {index} unit")
        if not is_valid:
            errors.append(error)

    return len(errors) == 0, errors
