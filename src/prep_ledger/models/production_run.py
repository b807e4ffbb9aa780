"""
ProductionRun model for tracking prep production.

This module contains the ProductionRun model, one execution of a prep
recipe, and ProductionRunIngredient, its per-ingredient line items.

A run is created in_progress with expected ingredient quantities scaled to
its target yield. Completing the run posts the inventory ledger, snapshots
ingredient costs onto the lines, and records cost_per_unit exactly once.
"""

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    event,
    inspect,
)
from sqlalchemy.orm import relationship

from .base import BaseModel
from .enums import ProductionRunStatus
from prep_ledger.utils.datetime_utils import isoformat_utc


class ProductionRun(BaseModel):
    """
    ProductionRun model for one execution of a prep recipe.

    Attributes:
        prep_recipe_id: Blueprint being produced
        restaurant_id: Restaurant the run belongs to (authorization scope)
        status: in_progress or completed (terminal)
        target_yield / target_yield_unit: Planned output
        actual_yield / actual_yield_unit: Recorded output, set on completion
        actual_total_cost: Batch cost, set on completion
        cost_per_unit: Batch cost per output purchase unit. Null until
            completion, never changed afterwards.
        variance_percent: (actual - target) / target * 100
        created_by / completed_by: Identities of the operators
        completed_at: Completion timestamp
        notes: Optional production notes
    """

    __tablename__ = "production_runs"

    prep_recipe_id = Column(
        Integer, ForeignKey("prep_recipes.id", ondelete="RESTRICT"), nullable=False
    )
    restaurant_id = Column(String(64), nullable=False)

    status = Column(
        String(20), nullable=False, default=ProductionRunStatus.IN_PROGRESS.value
    )

    # Yield data
    target_yield = Column(Float, nullable=True)
    target_yield_unit = Column(String(50), nullable=True)
    actual_yield = Column(Float, nullable=True)
    actual_yield_unit = Column(String(50), nullable=True)
    variance_percent = Column(Float, nullable=True)

    # Cost snapshot
    actual_total_cost = Column(Float, nullable=True)
    cost_per_unit = Column(Float, nullable=True)

    # Audit
    created_by = Column(String(100), nullable=True)
    completed_by = Column(String(100), nullable=True)
    completed_at = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)

    # Relationships
    prep_recipe = relationship("PrepRecipe", back_populates="production_runs")
    ingredients = relationship(
        "ProductionRunIngredient",
        back_populates="production_run",
        cascade="all, delete-orphan",
        order_by="ProductionRunIngredient.id",
    )

    __table_args__ = (
        Index("idx_production_run_recipe", "prep_recipe_id"),
        Index("idx_production_run_restaurant_status", "restaurant_id", "status"),
        CheckConstraint(
            "status IN ('in_progress', 'completed')", name="ck_production_run_status"
        ),
        CheckConstraint(
            "actual_total_cost IS NULL OR actual_total_cost >= 0",
            name="ck_production_run_total_cost_non_negative",
        ),
    )

    @property
    def is_completed(self) -> bool:
        return self.status == ProductionRunStatus.COMPLETED.value

    def __repr__(self) -> str:
        """String representation of production run."""
        return (
            f"ProductionRun(id={self.id}, prep_recipe_id={self.prep_recipe_id}, "
            f"status='{self.status}', cost_per_unit={self.cost_per_unit})"
        )

    def to_dict(self, include_relationships: bool = False) -> dict:
        """
        Convert production run to dictionary.

        Args:
            include_relationships: If True, include recipe name and ingredient lines

        Returns:
            Dictionary representation with formatted fields
        """
        result = super().to_dict(include_relationships=False)
        result["completed_at"] = isoformat_utc(self.completed_at)

        if include_relationships:
            if self.prep_recipe:
                result["prep_recipe_name"] = self.prep_recipe.name
                result["output_product_id"] = self.prep_recipe.output_product_id
            result["ingredients"] = [line.to_dict() for line in self.ingredients]

        return result


# Snapshot columns frozen once a run is completed
COST_SNAPSHOT_FIELDS = ("cost_per_unit", "actual_total_cost")


@event.listens_for(ProductionRun, "before_update")
def _reject_cost_change_after_completion(mapper, connection, target):
    from prep_ledger.services.exceptions import InvalidState

    state = inspect(target)
    status_history = state.attrs.status.history
    previous = (status_history.deleted or status_history.unchanged or [None])[0]
    if previous != ProductionRunStatus.COMPLETED.value:
        return

    if any(getattr(state.attrs, field).history.has_changes() for field in COST_SNAPSHOT_FIELDS):
        raise InvalidState(
            target.id, ProductionRunStatus.COMPLETED.value, ProductionRunStatus.IN_PROGRESS.value
        )


class ProductionRunIngredient(BaseModel):
    """
    Ingredient line of a production run.

    Expected figures come from the blueprint scaled to the target yield;
    actual figures are what the operator really used and are authoritative
    for costing. The snapshot columns are written once, on completion.

    Attributes:
        production_run_id: Parent run
        product_id: Ingredient product
        expected_quantity: Blueprint quantity scaled to target yield
        actual_quantity: Operator-entered quantity (None = use expected)
        unit: Unit of expected_quantity
        actual_unit: Unit of actual_quantity (None = same as unit)
        converted_quantity: Actual quantity in purchase units (snapshot)
        unit_cost_snapshot: Product cost per purchase unit at completion
        total_cost_snapshot: converted_quantity * unit_cost_snapshot
        variance_percent: (actual - expected) / expected * 100
    """

    __tablename__ = "production_run_ingredients"

    production_run_id = Column(
        Integer, ForeignKey("production_runs.id", ondelete="CASCADE"), nullable=False
    )
    product_id = Column(
        Integer, ForeignKey("products.id", ondelete="RESTRICT"), nullable=False
    )

    expected_quantity = Column(Float, nullable=True)
    actual_quantity = Column(Float, nullable=True)
    unit = Column(String(50), nullable=False)
    actual_unit = Column(String(50), nullable=True)

    # Completion snapshot
    converted_quantity = Column(Float, nullable=True)
    unit_cost_snapshot = Column(Float, nullable=True)
    total_cost_snapshot = Column(Float, nullable=True)
    variance_percent = Column(Float, nullable=True)

    # Relationships
    production_run = relationship("ProductionRun", back_populates="ingredients")
    product = relationship("Product", lazy="joined")

    __table_args__ = (
        Index("idx_production_run_ingredient_run", "production_run_id"),
        Index("idx_production_run_ingredient_product", "product_id"),
        CheckConstraint(
            "expected_quantity IS NULL OR expected_quantity >= 0",
            name="ck_run_ingredient_expected_non_negative",
        ),
        CheckConstraint(
            "actual_quantity IS NULL OR actual_quantity >= 0",
            name="ck_run_ingredient_actual_non_negative",
        ),
    )

    @property
    def effective_quantity(self) -> float:
        """Quantity used for costing: actual if recorded, else expected."""
        if self.actual_quantity is not None:
            return self.actual_quantity
        if self.expected_quantity is not None:
            return self.expected_quantity
        return 0.0

    @property
    def effective_unit(self) -> str:
        """Unit of effective_quantity."""
        if self.actual_quantity is not None and self.actual_unit:
            return self.actual_unit
        return self.unit

    def __repr__(self) -> str:
        return (
            f"ProductionRunIngredient(id={self.id}, product_id={self.product_id}, "
            f"expected={self.expected_quantity}, actual={self.actual_quantity} {self.unit})"
        )
