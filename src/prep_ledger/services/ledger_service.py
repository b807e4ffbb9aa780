"""
Inventory ledger writer for Prep Ledger.

This module is the only code path that changes Product.current_stock.
Every change is recorded as one InventoryTransaction, and the stock column
is moved by a single UPDATE ... SET current_stock = current_stock + :delta
in the same transaction as the entry insert, so concurrent postings never
lose an update.

Reference scheme for production runs:
    production_run:<run uuid>:<role>:<product id>
with role one of "ingredient", "output", "adjustment".
"""

from contextlib import nullcontext
import logging
import math
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from prep_ledger.models import InventoryTransaction, Product, TransactionType
from prep_ledger.utils.constants import PRODUCTION_RUN_REFERENCE_PREFIX
from prep_ledger.utils.datetime_utils import isoformat_utc
from prep_ledger.services.database import session_scope
from prep_ledger.services.exceptions import DatabaseError, InvalidQuantity, ProductNotFound, ValidationError
from prep_ledger.services.logging_utils import get_service_logger, log_operation

logger = get_service_logger(__name__)

ROLE_INGREDIENT = "ingredient"
ROLE_OUTPUT = "output"
ROLE_ADJUSTMENT = "adjustment"

REFERENCE_ROLES = (ROLE_INGREDIENT, ROLE_OUTPUT, ROLE_ADJUSTMENT)


def run_reference_prefix(run_uuid: str) -> str:
    """Prefix shared by every ledger entry of one production run."""
    return f"{PRODUCTION_RUN_REFERENCE_PREFIX}:{run_uuid}:"


def build_reference(run_uuid: str, role: str, product_id: int) -> str:
    """
    Build the reference of one production run posting.

    Example:
        >>> build_reference("5f1c...", "ingredient", 12)
        'production_run:5f1c...:ingredient:12'
    """
    if role not in REFERENCE_ROLES:
        raise ValueError(f"Unknown reference role: {role}")
    return f"{run_reference_prefix(run_uuid)}{role}:{product_id}"


def _transaction_to_dict(entry: InventoryTransaction) -> Dict[str, Any]:
    """Convert an InventoryTransaction to a dictionary representation."""
    return {
        "id": entry.id,
        "uuid": entry.uuid,
        "restaurant_id": entry.restaurant_id,
        "product_id": entry.product_id,
        "quantity": entry.quantity,
        "transaction_type": entry.transaction_type,
        "unit_cost": entry.unit_cost,
        "total_cost": entry.total_cost,
        "reference_id": entry.reference_id,
        "reason": entry.reason,
        "performed_by": entry.performed_by,
        "created_at": isoformat_utc(entry.created_at),
    }


def _validate_posting(signed_quantity, transaction_type, unit_cost):
    try:
        quantity = float(signed_quantity)
    except (TypeError, ValueError):
        raise InvalidQuantity(signed_quantity, "ledger posting")
    if not math.isfinite(quantity):
        raise InvalidQuantity(signed_quantity, "ledger posting")

    try:
        transaction_type = TransactionType(transaction_type).value
    except ValueError:
        raise ValidationError([f"Unknown transaction type: {transaction_type}"])

    try:
        cost = float(unit_cost or 0.0)
    except (TypeError, ValueError):
        raise ValidationError([f"Invalid unit cost: {unit_cost}"])
    if not math.isfinite(cost) or cost < 0:
        raise ValidationError([f"Unit cost must be a finite number >= 0, got {unit_cost}"])

    return quantity, transaction_type, cost


def post_transaction(
    product_id: int,
    signed_quantity: float,
    transaction_type,
    unit_cost: float,
    reference_id: str,
    *,
    reason: Optional[str] = None,
    performed_by: Optional[str] = None,
    session=None,
) -> Dict[str, Any]:
    """
    Append one ledger entry and move the product's stock by the same quantity.

    Args:
        product_id: Product whose stock moves
        signed_quantity: Quantity in purchase units (negative = consumed)
        transaction_type: TransactionType or its value
        unit_cost: Cost per purchase unit (>= 0)
        reference_id: Reference grouping the entries of one operation
        reason: Optional description
        performed_by: Optional identity of the operator
        session: Optional database session (uses session_scope if not provided).
            Pass the caller's session to keep the posting in its transaction.

    Returns:
        Dict of the new entry, plus "current_stock" after the posting

    Raises:
        InvalidQuantity: If signed_quantity is not a finite number
        ValidationError: If transaction_type or unit_cost is invalid
        ProductNotFound: If the product does not exist
        DatabaseError: If the insert or the stock update fails
    """
    quantity, transaction_type, cost = _validate_posting(
        signed_quantity, transaction_type, unit_cost
    )

    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        product = session.query(Product).filter_by(id=product_id).first()
        if not product:
            raise ProductNotFound(product_id)

        entry = InventoryTransaction(
            restaurant_id=product.restaurant_id,
            product_id=product_id,
            quantity=quantity,
            transaction_type=transaction_type,
            unit_cost=cost,
            total_cost=quantity * cost,
            reference_id=reference_id,
            reason=reason,
            performed_by=performed_by,
        )

        try:
            session.add(entry)
            session.query(Product).filter(Product.id == product_id).update(
                {Product.current_stock: Product.current_stock + quantity},
                synchronize_session=False,
            )
            session.flush()
        except SQLAlchemyError as e:
            log_operation(
                logger,
                operation="post_transaction",
                outcome="error",
                level=logging.ERROR,
                product_id=product_id,
                reference_id=reference_id,
                error=str(e),
            )
            raise DatabaseError(f"Failed to post ledger entry {reference_id}", e) from e

        # The UPDATE bypassed the identity map
        session.refresh(product, attribute_names=["current_stock"])

        log_operation(
            logger,
            operation="post_transaction",
            outcome="success",
            level=logging.DEBUG,
            product_id=product_id,
            reference_id=reference_id,
            transaction_type=transaction_type,
            signed_quantity=quantity,
            total_cost=entry.total_cost,
        )

        result = _transaction_to_dict(entry)
        result["current_stock"] = product.current_stock
        return result


def get_transactions(
    reference_prefix: Optional[str] = None,
    product_id: Optional[int] = None,
    transaction_type=None,
    session=None,
) -> List[Dict[str, Any]]:
    """
    Query ledger entries, oldest first.

    Args:
        reference_prefix: Only entries whose reference starts with this
        product_id: Only entries of this product
        transaction_type: Only entries of this type
        session: Optional database session

    Returns:
        List of entry dicts
    """
    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        query = session.query(InventoryTransaction)
        if reference_prefix:
            query = query.filter(
                InventoryTransaction.reference_id.startswith(reference_prefix, autoescape=True)
            )
        if product_id is not None:
            query = query.filter(InventoryTransaction.product_id == product_id)
        if transaction_type is not None:
            query = query.filter(
                InventoryTransaction.transaction_type == TransactionType(transaction_type).value
            )
        entries = query.order_by(InventoryTransaction.id).all()
        return [_transaction_to_dict(entry) for entry in entries]


def get_stock_delta(reference_prefix: str, session=None) -> Dict[int, float]:
    """
    Net stock movement per product for the entries under a reference prefix.

    Used to reconcile a run's postings against product stock.

    Returns:
        Dict mapping product_id to the summed signed quantity
    """
    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        rows = (
            session.query(InventoryTransaction.product_id, func.sum(InventoryTransaction.quantity))
            .filter(InventoryTransaction.reference_id.startswith(reference_prefix, autoescape=True))
            .group_by(InventoryTransaction.product_id)
            .all()
        )
        return {product_id: float(total or 0.0) for product_id, total in rows}
