"""
Enumerations for production tracking.

This module contains enums used across production-related models:
- ProductionRunStatus: Lifecycle state of a production run
- TransactionType: Kind of inventory ledger movement
"""

from enum import Enum


class ProductionRunStatus(str, Enum):
    """
    Production run lifecycle state.

    A run is created IN_PROGRESS and moves to COMPLETED exactly once.
    COMPLETED is terminal; corrections are new compensating runs.
    """

    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class TransactionType(str, Enum):
    """
    Inventory ledger movement types.

    Values:
        USAGE: Ingredient consumed by production
        TRANSFER: Intra-kitchen movement, e.g. a production run's output
        ADJUSTMENT: Manual correction posted alongside a completion
        WASTE: Stock discarded (spoilage, spills)
    """

    USAGE = "usage"
    TRANSFER = "transfer"
    ADJUSTMENT = "adjustment"
    WASTE = "waste"
