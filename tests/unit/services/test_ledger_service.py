"""Tests for the inventory ledger writer.

Covers posting, stock projection, immutability of entries and the
read-only ledger queries.
"""

import math

import pytest

from prep_ledger.models import InventoryTransaction, Product
from prep_ledger.services import ledger_service
from prep_ledger.services.exceptions import (
    DatabaseError,
    InvalidQuantity,
    LedgerImmutableError,
    ProductNotFound,
    ValidationError,
)


RUN_UUID = "0b0f2d9e-6a51-4c1e-9a3e-5a2f9c1d7e11"


@pytest.fixture
def rice(make_product):
    """Rice bought by the 25 lb bag at $31.50, 4 bags on hand."""
    return make_product("Jasmine Rice", "bag", size_value=25, size_unit="lb",
                        cost_per_unit=31.50, current_stock=4)


@pytest.fixture
def oil(make_product):
    return make_product("Canola Oil", "bottle", size_value=1, size_unit="l", cost_per_unit=8.0)


def stock_of(test_db, product_id):
    session = test_db()
    session.expire_all()
    return session.query(Product).filter_by(id=product_id).one().current_stock


class TestReferences:
    """Reference scheme of production run postings."""

    def test_build_reference(self):
        reference = ledger_service.build_reference(RUN_UUID, "ingredient", 12)
        assert reference == f"production_run:{RUN_UUID}:ingredient:12"
        assert reference.startswith(ledger_service.run_reference_prefix(RUN_UUID))

    def test_unknown_role_rejected(self):
        with pytest.raises(ValueError):
            ledger_service.build_reference(RUN_UUID, "refund", 12)


class TestPostTransaction:
    """Posting appends an entry and moves stock by the same quantity."""

    def test_usage_decreases_stock(self, test_db, rice):
        result = ledger_service.post_transaction(
            rice["id"], -0.5, "usage", 31.50, "manual:1", reason="Staff meal"
        )

        assert result["quantity"] == -0.5
        assert result["total_cost"] == pytest.approx(-15.75)
        assert result["transaction_type"] == "usage"
        assert result["restaurant_id"] == "bistro-1"
        assert result["current_stock"] == pytest.approx(3.5)
        assert stock_of(test_db, rice["id"]) == pytest.approx(3.5)

    def test_accepts_enum_type(self, test_db, oil):
        from prep_ledger.models import TransactionType

        result = ledger_service.post_transaction(
            oil["id"], 2, TransactionType.TRANSFER, 8.0, "manual:2"
        )
        assert result["transaction_type"] == "transfer"

    def test_repeated_postings_accumulate(self, test_db, oil):
        """Stock moves by an in-database increment, never a stale copy."""
        session = test_db()
        stale = session.query(Product).filter_by(id=oil["id"]).one()
        assert stale.current_stock == 0

        for delta in (5, -1.25, -0.75, 3):
            ledger_service.post_transaction(oil["id"], delta, "adjustment", 8.0, "manual:3")

        assert stock_of(test_db, oil["id"]) == pytest.approx(6.0)

    def test_stock_equals_ledger_sum(self, test_db, rice):
        ledger_service.post_transaction(rice["id"], -1, "usage", 31.5, "manual:4")
        ledger_service.post_transaction(rice["id"], -0.25, "waste", 31.5, "manual:5")

        entries = ledger_service.get_transactions(product_id=rice["id"])
        assert sum(e["quantity"] for e in entries) == pytest.approx(stock_of(test_db, rice["id"]))

    def test_unknown_product(self, test_db):
        with pytest.raises(ProductNotFound):
            ledger_service.post_transaction(999, -1, "usage", 1.0, "manual:6")

    def test_unknown_transaction_type(self, test_db, rice):
        with pytest.raises(ValidationError):
            ledger_service.post_transaction(rice["id"], -1, "theft", 1.0, "manual:7")

    def test_negative_unit_cost(self, test_db, rice):
        with pytest.raises(ValidationError):
            ledger_service.post_transaction(rice["id"], -1, "usage", -2.0, "manual:8")

    @pytest.mark.parametrize("quantity", [math.nan, math.inf, "lots"])
    def test_non_finite_quantity(self, test_db, rice, quantity):
        with pytest.raises(InvalidQuantity):
            ledger_service.post_transaction(rice["id"], quantity, "usage", 1.0, "manual:9")

    def test_database_failure_is_wrapped_and_rolled_back(self, test_db, rice):
        with pytest.raises(DatabaseError) as exc_info:
            ledger_service.post_transaction(rice["id"], -1, "usage", 31.5, None)

        assert exc_info.value.original_error is not None
        assert stock_of(test_db, rice["id"]) == pytest.approx(4.0)


class TestImmutability:
    """Ledger entries refuse updates and deletes."""

    def test_update_rejected(self, test_db, rice):
        session = test_db()
        entry = session.query(InventoryTransaction).filter_by(product_id=rice["id"]).one()
        entry.quantity = 100

        with pytest.raises(LedgerImmutableError):
            session.flush()
        session.rollback()

    def test_delete_rejected(self, test_db, rice):
        session = test_db()
        entry = session.query(InventoryTransaction).filter_by(product_id=rice["id"]).one()
        session.delete(entry)

        with pytest.raises(LedgerImmutableError):
            session.flush()
        session.rollback()


class TestLedgerQueries:
    """Read-only queries by reference prefix, product and type."""

    @pytest.fixture
    def postings(self, test_db, rice, oil):
        for role, product, qty, ttype in (
            ("ingredient", rice, -1.0, "usage"),
            ("ingredient", oil, -0.5, "usage"),
            ("adjustment", oil, -0.25, "waste"),
        ):
            ledger_service.post_transaction(
                product["id"], qty, ttype, product["cost_per_unit"],
                ledger_service.build_reference(RUN_UUID, role, product["id"]),
            )
        ledger_service.post_transaction(oil["id"], -2, "usage", 8.0, "production_run:other:ingredient:1")

    def test_by_reference_prefix(self, postings):
        entries = ledger_service.get_transactions(
            reference_prefix=ledger_service.run_reference_prefix(RUN_UUID)
        )
        assert [e["quantity"] for e in entries] == [-1.0, -0.5, -0.25]

    def test_by_product_and_type(self, postings, oil):
        entries = ledger_service.get_transactions(product_id=oil["id"], transaction_type="usage")
        assert [e["quantity"] for e in entries] == [-0.5, -2]

    def test_prefix_wildcards_are_literal(self, postings):
        assert ledger_service.get_transactions(reference_prefix="production_run:%") == []

    def test_stock_delta(self, postings, rice, oil):
        delta = ledger_service.get_stock_delta(ledger_service.run_reference_prefix(RUN_UUID))
        assert delta == {rice["id"]: pytest.approx(-1.0), oil["id"]: pytest.approx(-0.75)}

    def test_opening_stock_is_a_ledger_adjustment(self, test_db, rice):
        entries = ledger_service.get_transactions(reference_prefix="opening_stock:")
        assert len(entries) == 1
        assert entries[0]["transaction_type"] == "adjustment"
        assert entries[0]["quantity"] == 4
        assert entries[0]["total_cost"] == pytest.approx(126.0)
