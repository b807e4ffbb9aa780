"""Prep Ledger: unit conversion and production run costing for restaurant inventory."""

from prep_ledger.utils.constants import APP_VERSION

__version__ = APP_VERSION
