"""
Unit conversion resolver for Prep Ledger.

Turns a quantity recorded in whatever unit the cook used ("cups",
"each", "oz") into the product's purchase unit ("bag", "bottle", "kg").

Conversion Strategy (first match wins):
1. Direct match: source unit is the purchase unit -> unchanged
2. Same dimension: mass via grams, volume via milliliters, divided by
   the capacity of one purchase unit
3. Density-mediated: mass <-> volume through the injected density lookup
4. Count-to-container: count units divided by the count size of the
   purchase unit
5. Fallback: unchanged, with a warning logged

Unknown units never raise. Negative or non-finite quantities do.
"""

from dataclasses import dataclass
import logging
import math
from typing import Callable, Optional, Tuple

from prep_ledger.utils.constants import COUNT_UNITS, UNIT_ALIASES, VOLUME_TO_ML, WEIGHT_TO_GRAMS
from prep_ledger.services.exceptions import InvalidQuantity
from prep_ledger.services.logging_utils import get_service_logger, log_operation

logger = get_service_logger(__name__)

# Density lookup collaborator: product -> grams per milliliter (or None)
DensityLookup = Callable[[object], Optional[float]]

METHOD_DIRECT = "1:1"
METHOD_WEIGHT = "weight_to_weight"
METHOD_VOLUME = "volume_to_volume"
METHOD_DENSITY_TO_WEIGHT = "density_to_weight"
METHOD_DENSITY_TO_VOLUME = "density_to_volume"
METHOD_COUNT = "count_to_container"
METHOD_FALLBACK = "fallback_1:1"


@dataclass(frozen=True)
class ConversionResult:
    """Outcome of one conversion.

    Attributes:
        quantity: Quantity in the product's purchase unit
        method: Which rule produced the quantity
        warning: Set when the fallback rule was used
    """

    quantity: float
    method: str
    warning: Optional[str] = None


# ============================================================================
# Unit Type Detection
# ============================================================================


def normalize_unit(unit: Optional[str]) -> str:
    """
    Normalize a unit string for comparison.

    Lowercases, collapses whitespace and maps common spellings to the
    canonical unit ("Cups" -> "cup", "LBS" -> "lb").
    """
    if not unit:
        return ""
    cleaned = " ".join(str(unit).lower().split())
    return UNIT_ALIASES.get(cleaned, cleaned)


def get_unit_type(unit: Optional[str]) -> str:
    """
    Determine the type of a unit.

    Args:
        unit: Unit string

    Returns:
        Unit type: "weight", "volume", "count", or "unknown"
    """
    unit_lower = normalize_unit(unit)

    if unit_lower in WEIGHT_TO_GRAMS:
        return "weight"
    elif unit_lower in VOLUME_TO_ML:
        return "volume"
    elif unit_lower in COUNT_UNITS:
        return "count"

    return "unknown"


def to_grams(value: float, unit: str) -> Optional[float]:
    """Convert a mass to grams. Returns None for a non-mass unit."""
    factor = WEIGHT_TO_GRAMS.get(normalize_unit(unit))
    if factor is None:
        return None
    return value * factor


def to_milliliters(value: float, unit: str) -> Optional[float]:
    """Convert a volume to milliliters. Returns None for a non-volume unit."""
    unit_lower = normalize_unit(unit)
    if unit_lower == "oz":
        unit_lower = "fl oz"
    factor = VOLUME_TO_ML.get(unit_lower)
    if factor is None:
        return None
    return value * factor


# ============================================================================
# Purchase Unit Capacity
# ============================================================================


def get_purchase_capacity(product) -> Optional[Tuple[str, float]]:
    """
    Describe what one purchase unit of a product holds.

    Returns:
        ("weight", grams), ("volume", ml), ("count", items), or None when
        the product declares no usable size.

    Example:
        Rice bought by the "bag", sized 25 lb -> ("weight", 11339.8)
        Stock counted in "kg" with no size -> ("weight", 1000.0)
    """
    size_value = product.size_value
    size_unit = product.size_unit

    if size_value is not None and size_unit and size_value > 0:
        unit_type = get_unit_type(size_unit)
        if unit_type == "weight":
            return "weight", to_grams(size_value, size_unit)
        if unit_type == "volume":
            return "volume", to_milliliters(size_value, size_unit)
        if unit_type == "count":
            return "count", float(size_value)
        return None

    # A purchase unit that is itself a measure holds one of itself
    purchase_type = get_unit_type(product.purchase_unit)
    if purchase_type == "weight":
        return "weight", to_grams(1.0, product.purchase_unit)
    if purchase_type == "volume":
        return "volume", to_milliliters(1.0, product.purchase_unit)
    return None


def _source_type(source_unit: str, capacity_type: Optional[str]) -> str:
    """Unit type of the source, reading a bare "oz" as fl oz against a volume."""
    unit_type = get_unit_type(source_unit)
    if unit_type == "weight" and normalize_unit(source_unit) == "oz" and capacity_type == "volume":
        return "volume"
    return unit_type


def _validate_quantity(quantity) -> float:
    if isinstance(quantity, bool):
        raise InvalidQuantity(quantity, "conversion")
    try:
        value = float(quantity)
    except (TypeError, ValueError):
        raise InvalidQuantity(quantity, "conversion")
    if not math.isfinite(value) or value < 0:
        raise InvalidQuantity(quantity, "conversion")
    return value


def default_density_lookup(product) -> Optional[float]:
    """Density from the product's own four-field specification."""
    return product.get_density_g_per_ml()


# ============================================================================
# Conversion
# ============================================================================


def resolve_conversion(
    quantity: float,
    source_unit: str,
    product,
    density_lookup: Optional[DensityLookup] = None,
) -> ConversionResult:
    """
    Convert a quantity into the product's purchase unit.

    Args:
        quantity: Non-negative quantity in source_unit
        source_unit: Unit the quantity was recorded in
        product: Product (or any object with purchase_unit, size_value,
            size_unit and get_density_g_per_ml)
        density_lookup: Optional callable returning grams per milliliter
            for the product; defaults to the product's own density

    Returns:
        ConversionResult with the converted quantity and the rule used

    Raises:
        InvalidQuantity: If quantity is negative or not finite
    """
    value = _validate_quantity(quantity)
    source = normalize_unit(source_unit)

    # 1. Direct match
    if source and source == normalize_unit(product.purchase_unit):
        return ConversionResult(value, METHOD_DIRECT)

    capacity = get_purchase_capacity(product)
    capacity_type, capacity_amount = capacity if capacity else (None, None)
    source_type = _source_type(source, capacity_type)

    # 2. Same dimension
    if capacity_type == "weight" and source_type == "weight":
        return ConversionResult(to_grams(value, source) / capacity_amount, METHOD_WEIGHT)
    if capacity_type == "volume" and source_type == "volume":
        return ConversionResult(to_milliliters(value, source) / capacity_amount, METHOD_VOLUME)

    # 3. Density-mediated
    if capacity_type in ("weight", "volume") and source_type in ("weight", "volume"):
        lookup = density_lookup or default_density_lookup
        density = lookup(product)
        if density and density > 0:
            if capacity_type == "weight":
                grams = to_milliliters(value, source) * density
                return ConversionResult(grams / capacity_amount, METHOD_DENSITY_TO_WEIGHT)
            ml = to_grams(value, source) / density
            return ConversionResult(ml / capacity_amount, METHOD_DENSITY_TO_VOLUME)

    # 4. Count-to-container
    if capacity_type == "count" and source_type == "count":
        return ConversionResult(value / capacity_amount, METHOD_COUNT)

    # 5. Fallback
    warning = (
        f"No conversion from '{source_unit}' to '{product.purchase_unit}' "
        f"for product {getattr(product, 'id', None)}; using quantity unchanged"
    )
    log_operation(
        logger,
        operation="convert",
        outcome=METHOD_FALLBACK,
        level=logging.WARNING,
        product_id=getattr(product, "id", None),
        source_unit=source_unit,
        purchase_unit=product.purchase_unit,
        quantity=value,
    )
    return ConversionResult(value, METHOD_FALLBACK, warning)


def convert(
    quantity: float,
    source_unit: str,
    product,
    density_lookup: Optional[DensityLookup] = None,
) -> float:
    """
    Convert a quantity into the product's purchase unit.

    Example:
        >>> convert(1, "fl oz", bottle_750ml)
        0.039431...
    """
    return resolve_conversion(quantity, source_unit, product, density_lookup).quantity
