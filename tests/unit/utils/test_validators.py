"""
Tests for input validation functions.

Validators return (is_valid, error) tuples; the data-level validators
collect every error before the service raises ValidationError.
"""

import math

import pytest

from prep_ledger.utils import validators
from prep_ledger.utils.constants import MAX_NAME_LENGTH, MAX_UNIT_LENGTH


class TestFieldValidation:
    """Single field validators."""

    def test_required_string(self):
        assert validators.validate_required_string("Onion", "Name") == (True, "")
        is_valid, error = validators.validate_required_string("   ", "Name")
        assert not is_valid
        assert "required" in error.lower()

    def test_string_length(self):
        assert validators.validate_string_length("x" * MAX_NAME_LENGTH, MAX_NAME_LENGTH)[0]
        assert not validators.validate_string_length("x" * (MAX_NAME_LENGTH + 1), MAX_NAME_LENGTH)[0]

    @pytest.mark.parametrize("value", [0, -1, math.nan, math.inf, "abc", None])
    def test_positive_number_rejects(self, value):
        assert not validators.validate_positive_number(value)[0]

    def test_non_negative_number(self):
        assert validators.validate_non_negative_number(0)[0]
        assert validators.validate_non_negative_number("2.5")[0]
        assert not validators.validate_non_negative_number(-0.01)[0]

    def test_unit_accepts_free_text(self):
        """Unknown units are valid input; conversion falls back later."""
        assert validators.validate_unit("pinch")[0]
        assert not validators.validate_unit("")[0]
        assert not validators.validate_unit("u" * (MAX_UNIT_LENGTH + 1))[0]


class TestProductData:
    """validate_product_data collects all product errors."""

    def test_valid(self):
        data = {
            "restaurant_id": "bistro-1",
            "name": "Jasmine Rice",
            "purchase_unit": "bag",
            "size_value": 25,
            "size_unit": "lb",
            "cost_per_unit": 31.5,
        }
        assert validators.validate_product_data(data) == (True, [])

    def test_collects_errors(self):
        is_valid, errors = validators.validate_product_data(
            {"name": "", "purchase_unit": "", "size_value": -1, "size_unit": "lb", "current_stock": -3}
        )
        assert not is_valid
        assert len(errors) == 5


class TestPrepRecipeData:
    """validate_prep_recipe_data checks the blueprint and each line."""

    def test_valid(self):
        data = {
            "restaurant_id": "bistro-1",
            "name": "Soup Base",
            "default_yield": 10,
            "default_yield_unit": "L",
            "ingredients": [{"product_id": 1, "quantity": 2, "unit": "lb"}],
        }
        assert validators.validate_prep_recipe_data(data) == (True, [])

    def test_line_errors_are_numbered(self):
        data = {
            "restaurant_id": "bistro-1",
            "name": "Soup Base",
            "default_yield": 10,
            "default_yield_unit": "L",
            "ingredients": [
                {"product_id": 1, "quantity": 2, "unit": "lb"},
                {"product_id": None, "quantity": 0, "unit": ""},
            ],
        }
        is_valid, errors = validators.validate_prep_recipe_data(data)
        assert not is_valid
        assert all(error.startswith("Ingredient 2") for error in errors)
        assert len(errors) == 3

    def test_duplicate_product_rejected(self):
        data = {
            "restaurant_id": "bistro-1",
            "name": "Soup Base",
            "default_yield": 10,
            "default_yield_unit": "L",
            "ingredients": [
                {"product_id": 1, "quantity": 2, "unit": "lb"},
                {"product_id": 2, "quantity": 1, "unit": "each"},
                {"product_id": 1, "quantity": 3, "unit": "lb"},
            ],
        }
        is_valid, errors = validators.validate_prep_recipe_data(data)
        assert not is_valid
        assert len(errors) == 1
        assert errors[0].startswith("Ingredient 3 product")
