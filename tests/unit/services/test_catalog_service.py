"""Tests for the product catalog and prep recipe blueprints."""

import pytest

from prep_ledger.services import catalog_service
from prep_ledger.services.exceptions import (
    InvalidQuantity,
    PrepRecipeNotFound,
    ProductNotFound,
    ValidationError,
)


class TestProducts:
    """Product creation and lookup."""

    def test_create_product(self, test_db, make_product):
        product = make_product(
            "All-Purpose Flour", "bag", size_value=25, size_unit="lb", cost_per_unit=18.0,
            density_volume_value=1.0, density_volume_unit="cup",
            density_weight_value=120.0, density_weight_unit="g",
        )

        assert product["id"] is not None
        assert product["uuid"]
        assert product["size_display"] == "bag (25 lb)"
        assert product["density_g_per_ml"] == pytest.approx(120 / 236.588)
        assert product["current_stock"] == 0

    def test_opening_stock(self, test_db, make_product):
        product = make_product("Eggs", "case", size_value=180, size_unit="each", current_stock=2)
        assert catalog_service.get_product(product["id"])["current_stock"] == 2

    def test_validation_errors(self, test_db):
        with pytest.raises(ValidationError) as exc_info:
            catalog_service.create_product(
                {"restaurant_id": "bistro-1", "name": "", "purchase_unit": "bag", "size_value": 5}
            )
        errors = exc_info.value.errors
        assert any("Name" in e for e in errors)
        assert any("size_unit" in e for e in errors)

    def test_negative_cost_rejected(self, test_db):
        with pytest.raises(ValidationError):
            catalog_service.create_product(
                {"restaurant_id": "bistro-1", "name": "Salt", "purchase_unit": "kg", "cost_per_unit": -1}
            )

    def test_get_product_not_found(self, test_db):
        with pytest.raises(ProductNotFound):
            catalog_service.get_product(404)

    def test_get_product_other_restaurant(self, test_db, make_product):
        product = make_product("Salt", "kg")
        assert catalog_service.get_product(product["id"], restaurant_id="bistro-1")["name"] == "Salt"
        with pytest.raises(ProductNotFound):
            catalog_service.get_product(product["id"], restaurant_id="bistro-2")


class TestPrepRecipes:
    """Blueprint creation and lookup."""

    def test_create_prep_recipe_keeps_line_order(self, test_db, make_product, make_recipe):
        stock = make_product("Chicken Stock", "L")
        onion = make_product("Onion", "bag", size_value=50, size_unit="lb")
        celery = make_product("Celery", "case", size_value=24, size_unit="each")

        recipe = make_recipe(
            "Soup Base",
            [(onion["id"], 2, "lb"), (celery["id"], 3, "each")],
            default_yield=10,
            default_yield_unit="L",
            output_product_id=stock["id"],
        )

        fetched = catalog_service.get_prep_recipe(recipe["id"])
        assert fetched["name"] == "Soup Base"
        assert fetched["output_product_id"] == stock["id"]
        assert fetched["output_product"]["name"] == "Chicken Stock"
        assert [line["product_id"] for line in fetched["ingredients"]] == [onion["id"], celery["id"]]
        assert [line["sort_order"] for line in fetched["ingredients"]] == [0, 1]

    def test_recipe_requires_ingredients(self, test_db):
        with pytest.raises(ValidationError):
            catalog_service.create_prep_recipe(
                {
                    "restaurant_id": "bistro-1",
                    "name": "Nothing",
                    "default_yield": 1,
                    "default_yield_unit": "L",
                    "ingredients": [],
                }
            )

    def test_recipe_rejects_non_positive_quantity(self, test_db, make_product, make_recipe):
        onion = make_product("Onion", "kg")
        with pytest.raises(ValidationError):
            make_recipe("Bad", [(onion["id"], 0, "kg")], default_yield=1, default_yield_unit="L")

    def test_recipe_rejects_repeated_product(self, test_db, make_product, make_recipe):
        """Each product appears on one line, so actuals and ledger references stay unambiguous."""
        onion = make_product("Onion", "lb")
        with pytest.raises(ValidationError) as exc_info:
            make_recipe(
                "Double Onion", [(onion["id"], 2, "lb"), (onion["id"], 3, "lb")],
                default_yield=10, default_yield_unit="L",
            )
        assert any("already listed" in e for e in exc_info.value.errors)

    def test_recipe_rejects_unknown_product(self, test_db, make_recipe):
        with pytest.raises(ProductNotFound):
            make_recipe("Bad", [(999, 1, "kg")], default_yield=1, default_yield_unit="L")

    def test_recipe_rejects_other_restaurant_product(self, test_db, make_recipe):
        foreign = catalog_service.create_product(
            {"restaurant_id": "bistro-2", "name": "Onion", "purchase_unit": "kg"}
        )
        with pytest.raises(ProductNotFound):
            make_recipe("Bad", [(foreign["id"], 1, "kg")], default_yield=1, default_yield_unit="L")

    def test_get_prep_recipe_not_found(self, test_db):
        with pytest.raises(PrepRecipeNotFound):
            catalog_service.get_prep_recipe(404)


class TestInventoryImpactPreview:
    """Conversion preview against a stored product."""

    def test_preview_converts_without_posting(self, test_db, make_product):
        bottle = make_product("Olive Oil", "bottle", size_value=750, size_unit="ml", current_stock=3)

        converted = catalog_service.calculate_inventory_impact_for_product(
            bottle["id"], 1, "fl oz", "bistro-1"
        )

        assert converted == pytest.approx(29.5735 / 750)
        assert catalog_service.get_product(bottle["id"])["current_stock"] == 3

    def test_preview_with_injected_density(self, test_db, make_product):
        oil = make_product("Canola Oil", "jug", size_value=1, size_unit="gal")
        converted = catalog_service.calculate_inventory_impact_for_product(
            oil["id"], 920, "g", "bistro-1", density_lookup=lambda product: 0.92
        )
        assert converted == pytest.approx(1000 / 3785.41)

    def test_preview_unknown_product(self, test_db):
        with pytest.raises(ProductNotFound):
            catalog_service.calculate_inventory_impact_for_product(404, 1, "kg", "bistro-1")

    def test_preview_other_restaurant(self, test_db, make_product):
        product = make_product("Salt", "kg")
        with pytest.raises(ProductNotFound):
            catalog_service.calculate_inventory_impact_for_product(product["id"], 1, "kg", "bistro-2")

    def test_preview_negative_quantity(self, test_db, make_product):
        product = make_product("Salt", "kg")
        with pytest.raises(InvalidQuantity):
            catalog_service.calculate_inventory_impact_for_product(product["id"], -1, "kg", "bistro-1")
