"""
Database models package.

This package contains all SQLAlchemy ORM models for the application.
"""

from .base import Base, BaseModel
from .enums import ProductionRunStatus, TransactionType
from .product import Product
from .prep_recipe import PrepRecipe, PrepRecipeIngredient
from .production_run import ProductionRun, ProductionRunIngredient
from .inventory_transaction import InventoryTransaction

__all__ = [
    "Base",
    "BaseModel",
    # Enums
    "ProductionRunStatus",
    "TransactionType",
    # Catalog
    "Product",
    "PrepRecipe",
    "PrepRecipeIngredient",
    # Production
    "ProductionRun",
    "ProductionRunIngredient",
    # Ledger
    "InventoryTransaction",
]
