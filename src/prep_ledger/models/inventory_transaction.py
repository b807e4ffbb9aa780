"""
InventoryTransaction model: the append-only inventory ledger.

Every change to a product's current_stock is recorded here, together with
the cost it carried. Entries are never updated or deleted; a correction is
a new offsetting entry.

Entries of one production run share a reference_id prefix
("production_run:<run uuid>:") rather than a foreign key, so the ledger
stands on its own regardless of what later happens to the run row.
"""

from sqlalchemy import (
    CheckConstraint,
    Column,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    event,
)
from sqlalchemy.orm import relationship

from .base import BaseModel


class InventoryTransaction(BaseModel):
    """
    One immutable inventory ledger entry.

    Attributes:
        restaurant_id: Restaurant the movement belongs to
        product_id: Product whose stock moved
        quantity: Signed quantity in purchase units
            (negative = consumed, positive = produced/received)
        transaction_type: usage, transfer, adjustment or waste
        unit_cost: Cost per purchase unit applied to this movement
        total_cost: quantity * unit_cost (same sign as quantity)
        reference_id: Groups the entries of one business operation
        reason: Human-readable description
        performed_by: Identity that caused the movement
    """

    __tablename__ = "inventory_transactions"

    restaurant_id = Column(String(64), nullable=False)
    product_id = Column(
        Integer, ForeignKey("products.id", ondelete="RESTRICT"), nullable=False
    )

    quantity = Column(Float, nullable=False)
    transaction_type = Column(String(20), nullable=False)
    unit_cost = Column(Float, nullable=False, default=0.0)
    total_cost = Column(Float, nullable=False, default=0.0)

    reference_id = Column(String(200), nullable=False)
    reason = Column(Text, nullable=True)
    performed_by = Column(String(100), nullable=True)

    # Relationships
    product = relationship("Product")

    __table_args__ = (
        Index("idx_inventory_transaction_reference", "reference_id"),
        Index("idx_inventory_transaction_product", "product_id"),
        Index("idx_inventory_transaction_restaurant_type", "restaurant_id", "transaction_type"),
        CheckConstraint(
            "transaction_type IN ('usage', 'transfer', 'adjustment', 'waste')",
            name="ck_inventory_transaction_type",
        ),
        CheckConstraint("unit_cost >= 0", name="ck_inventory_transaction_unit_cost"),
    )

    def __repr__(self) -> str:
        return (
            f"InventoryTransaction(id={self.id}, product_id={self.product_id}, "
            f"quantity={self.quantity}, type='{self.transaction_type}', "
            f"reference='{self.reference_id}')"
        )


@event.listens_for(InventoryTransaction, "before_update")
def _reject_ledger_update(mapper, connection, target):
    from prep_ledger.services.exceptions import LedgerImmutableError

    raise LedgerImmutableError(target.id, "update")


@event.listens_for(InventoryTransaction, "before_delete")
def _reject_ledger_delete(mapper, connection, target):
    from prep_ledger.services.exceptions import LedgerImmutableError

    raise LedgerImmutableError(target.id, "delete")
