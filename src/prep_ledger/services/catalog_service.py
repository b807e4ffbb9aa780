"""
Product catalog and prep recipe blueprints.

This module provides functions for:
- Creating products and reading them back (scoped to a restaurant)
- Creating prep recipes with ordered ingredient lines
- Previewing how much of a product a recorded quantity represents

Opening stock given at product creation is posted to the inventory ledger
as an adjustment, so stock on hand always equals the sum of the product's
ledger entries.
"""

from contextlib import nullcontext
from typing import Any, Dict, Optional

from prep_ledger.models import PrepRecipe, PrepRecipeIngredient, Product, TransactionType
from prep_ledger.utils.validators import validate_prep_recipe_data, validate_product_data
from prep_ledger.services import ledger_service
from prep_ledger.services.database import session_scope
from prep_ledger.services.exceptions import PrepRecipeNotFound, ProductNotFound, ValidationError
from prep_ledger.services.logging_utils import get_service_logger, log_operation
from prep_ledger.services.unit_converter import DensityLookup, convert

logger = get_service_logger(__name__)

OPENING_STOCK_REFERENCE_PREFIX = "opening_stock"


def _load_product(session, product_id: int, restaurant_id: Optional[str] = None) -> Product:
    product = session.query(Product).filter_by(id=product_id).first()
    if not product:
        raise ProductNotFound(product_id)
    # Another restaurant's product is indistinguishable from a missing one
    if restaurant_id is not None and product.restaurant_id != restaurant_id:
        raise ProductNotFound(product_id)
    return product


def create_product(data: Dict[str, Any], *, performed_by: Optional[str] = None, session=None) -> Dict[str, Any]:
    """
    Create a catalog product.

    Args:
        data: Product fields. Required: restaurant_id, name, purchase_unit.
            Optional: size_value/size_unit, cost_per_unit, current_stock
            (opening stock, posted as a ledger adjustment), the four density
            fields and notes.
        performed_by: Identity recorded on the opening stock entry
        session: Optional database session

    Returns:
        Dict of the created product

    Raises:
        ValidationError: If the data is invalid
    """
    is_valid, errors = validate_product_data(data)
    if not is_valid:
        raise ValidationError(errors)

    opening_stock = float(data.get("current_stock") or 0.0)

    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        product = Product(
            restaurant_id=data["restaurant_id"],
            name=data["name"].strip(),
            purchase_unit=data["purchase_unit"].strip(),
            size_value=data.get("size_value"),
            size_unit=data.get("size_unit"),
            cost_per_unit=float(data.get("cost_per_unit") or 0.0),
            current_stock=0.0,
            density_volume_value=data.get("density_volume_value"),
            density_volume_unit=data.get("density_volume_unit"),
            density_weight_value=data.get("density_weight_value"),
            density_weight_unit=data.get("density_weight_unit"),
            notes=data.get("notes"),
        )
        session.add(product)
        session.flush()

        if opening_stock > 0:
            ledger_service.post_transaction(
                product.id,
                opening_stock,
                TransactionType.ADJUSTMENT,
                product.cost_per_unit,
                f"{OPENING_STOCK_REFERENCE_PREFIX}:{product.uuid}",
                reason="Opening stock",
                performed_by=performed_by,
                session=session,
            )

        log_operation(
            logger,
            operation="create_product",
            outcome="success",
            product_id=product.id,
            restaurant_id=product.restaurant_id,
        )
        return product.to_dict()


def get_product(product_id: int, restaurant_id: Optional[str] = None, session=None) -> Dict[str, Any]:
    """
    Get a product by ID.

    Args:
        product_id: Product ID
        restaurant_id: If given, a product of another restaurant is not found
        session: Optional database session

    Raises:
        ProductNotFound: If the product does not exist (for this restaurant)
    """
    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        return _load_product(session, product_id, restaurant_id).to_dict()


def create_prep_recipe(data: Dict[str, Any], session=None) -> Dict[str, Any]:
    """
    Create a prep recipe blueprint.

    Args:
        data: restaurant_id, name, default_yield, default_yield_unit,
            optional output_product_id and notes, and "ingredients": a list
            of {product_id, quantity, unit} in recipe order
        session: Optional database session

    Returns:
        Dict of the created recipe including its ingredient lines

    Raises:
        ValidationError: If the data is invalid
        ProductNotFound: If a referenced product is missing or belongs to
            another restaurant
    """
    is_valid, errors = validate_prep_recipe_data(data)
    if not is_valid:
        raise ValidationError(errors)

    restaurant_id = data["restaurant_id"]

    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        output_product_id = data.get("output_product_id")
        if output_product_id is not None:
            _load_product(session, output_product_id, restaurant_id)

        recipe = PrepRecipe(
            restaurant_id=restaurant_id,
            name=data["name"].strip(),
            default_yield=float(data["default_yield"]),
            default_yield_unit=data["default_yield_unit"].strip(),
            output_product_id=output_product_id,
            notes=data.get("notes"),
        )

        for sort_order, line in enumerate(data["ingredients"]):
            _load_product(session, line["product_id"], restaurant_id)
            recipe.ingredients.append(
                PrepRecipeIngredient(
                    product_id=line["product_id"],
                    quantity=float(line["quantity"]),
                    unit=line["unit"].strip(),
                    sort_order=sort_order,
                )
            )

        session.add(recipe)
        session.flush()

        log_operation(
            logger,
            operation="create_prep_recipe",
            outcome="success",
            prep_recipe_id=recipe.id,
            ingredient_count=len(recipe.ingredients),
        )
        return recipe.to_dict(include_relationships=True)


def get_prep_recipe(prep_recipe_id: int, session=None) -> Dict[str, Any]:
    """
    Get a prep recipe with its ordered ingredient lines.

    Raises:
        PrepRecipeNotFound: If the recipe does not exist
    """
    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        recipe = session.query(PrepRecipe).filter_by(id=prep_recipe_id).first()
        if not recipe:
            raise PrepRecipeNotFound(prep_recipe_id)
        return recipe.to_dict(include_relationships=True)


def calculate_inventory_impact_for_product(
    product_id: int,
    quantity: float,
    unit: str,
    restaurant_id: str,
    *,
    density_lookup: Optional[DensityLookup] = None,
    session=None,
) -> float:
    """
    Preview how many purchase units a recorded quantity represents.

    Nothing is posted; stock is unchanged.

    Args:
        product_id: Product to convert into
        quantity: Recorded quantity (>= 0)
        unit: Unit the quantity was recorded in
        restaurant_id: Restaurant the caller works in
        density_lookup: Optional grams-per-milliliter lookup
        session: Optional database session

    Returns:
        Quantity in the product's purchase unit

    Raises:
        ProductNotFound: If the product is missing or belongs to another restaurant
        InvalidQuantity: If quantity is negative or not finite
    """
    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        product = _load_product(session, product_id, restaurant_id)
        return convert(quantity, unit, product, density_lookup)
