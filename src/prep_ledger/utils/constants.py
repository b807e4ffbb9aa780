"""
Constants for the Prep Ledger costing engine.

This module defines all system-wide constants including:
- Unit conversion tables (mass, volume, count)
- Unit aliases accepted from operators
- Ledger reference prefixes and validation limits
- Application metadata
"""

from typing import Dict, List

# ============================================================================
# Application Metadata
# ============================================================================

APP_NAME = "Prep Ledger"
APP_VERSION = "0.1.0"
DATABASE_FILENAME = "prep_ledger.db"

# ============================================================================
# Unit Conversion Tables
# ============================================================================

# Mass conversions to grams (base unit)
WEIGHT_TO_GRAMS: Dict[str, float] = {
    "g": 1.0,
    "kg": 1000.0,
    "oz": 28.3495,
    "lb": 453.592,
}

# Volume conversions to milliliters (base unit)
VOLUME_TO_ML: Dict[str, float] = {
    "ml": 1.0,
    "l": 1000.0,
    "tsp": 4.92892,
    "tbsp": 14.7868,
    "fl oz": 29.5735,
    "cup": 236.588,
    "pint": 473.176,
    "qt": 946.353,
    "gal": 3785.41,
}

# Discrete count units (one item each)
COUNT_UNITS: List[str] = [
    "each",
    "ea",
    "piece",
    "unit",
    "count",
]

# Spellings operators actually type, mapped to the canonical unit
UNIT_ALIASES: Dict[str, str] = {
    "gram": "g",
    "grams": "g",
    "kilogram": "kg",
    "kilograms": "kg",
    "ounce": "oz",
    "ounces": "oz",
    "pound": "lb",
    "pounds": "lb",
    "lbs": "lb",
    "milliliter": "ml",
    "milliliters": "ml",
    "millilitre": "ml",
    "liter": "l",
    "liters": "l",
    "litre": "l",
    "teaspoon": "tsp",
    "teaspoons": "tsp",
    "tablespoon": "tbsp",
    "tablespoons": "tbsp",
    "floz": "fl oz",
    "fl. oz": "fl oz",
    "fluid ounce": "fl oz",
    "fluid ounces": "fl oz",
    "cups": "cup",
    "pt": "pint",
    "pints": "pint",
    "quart": "qt",
    "quarts": "qt",
    "gallon": "gal",
    "gallons": "gal",
    "pieces": "piece",
    "units": "unit",
}

# ============================================================================
# Inventory Ledger
# ============================================================================

# Reference prefix shared by every ledger entry of a production run
PRODUCTION_RUN_REFERENCE_PREFIX = "production_run"

# ============================================================================
# Validation Limits
# ============================================================================

MAX_NAME_LENGTH = 200
MAX_UNIT_LENGTH = 50
MAX_NOTES_LENGTH = 2000

# Relative tolerance for cost conservation checks
COST_TOLERANCE = 1e-6

# ============================================================================
# Error Messages
# ============================================================================

ERROR_REQUIRED_FIELD = "This field is required"
ERROR_INVALID_NUMBER = "Must be a valid number"
ERROR_INVALID_POSITIVE = "Must be a positive number"
ERROR_INVALID_NON_NEGATIVE = "Must be zero or greater"
