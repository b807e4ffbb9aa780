"""
Integration tests for concurrent production run completion.

Runs against a SQLite file so each thread gets its own connection and the
completions really contend for the database write lock.
"""

from concurrent.futures import ThreadPoolExecutor
import threading

import pytest

from prep_ledger.services import catalog_service, ledger_service, production_run_service
from prep_ledger.services.access import membership_access_check
from prep_ledger.services.database import initialize_app_database
from prep_ledger.services.exceptions import InvalidState

CHEF = "chef@bistro"
RESTAURANT_ID = "bistro-1"


@pytest.fixture
def kitchen(file_database):
    """Onions (1000 lb on hand) and a recipe turning 5 lb into 10 L of stock."""
    initialize_app_database()

    onion = catalog_service.create_product(
        {
            "restaurant_id": RESTAURANT_ID,
            "name": "Yellow Onion",
            "purchase_unit": "lb",
            "cost_per_unit": 4.99,
            "current_stock": 1000,
        }
    )
    soup_stock = catalog_service.create_product(
        {"restaurant_id": RESTAURANT_ID, "name": "Onion Soup Stock", "purchase_unit": "L"}
    )
    recipe = catalog_service.create_prep_recipe(
        {
            "restaurant_id": RESTAURANT_ID,
            "name": "Onion Soup Stock",
            "default_yield": 10,
            "default_yield_unit": "L",
            "output_product_id": soup_stock["id"],
            "ingredients": [{"product_id": onion["id"], "quantity": 5, "unit": "lb"}],
        }
    )
    return {
        "onion": onion,
        "soup_stock": soup_stock,
        "recipe": recipe,
        "access_check": membership_access_check({CHEF: [RESTAURANT_ID]}),
    }


def start_run(kitchen):
    return production_run_service.create_production_run(
        kitchen["recipe"]["id"], identity=CHEF, access_check=kitchen["access_check"]
    )


def complete_all(kitchen, run_ids):
    """Complete run_ids from one thread each, released together."""
    barrier = threading.Barrier(len(run_ids))

    def worker(run_id):
        barrier.wait()
        try:
            production_run_service.complete_production_run(
                run_id, 10, "L", identity=CHEF, access_check=kitchen["access_check"]
            )
        except InvalidState:
            return "InvalidState"
        return "ok"

    with ThreadPoolExecutor(max_workers=len(run_ids)) as pool:
        return list(pool.map(worker, run_ids))


def current_stock(product):
    return catalog_service.get_product(product["id"])["current_stock"]


class TestConcurrentCompletion:
    """Completions from several threads at once."""

    def test_racing_completions_of_one_run(self, kitchen):
        run = start_run(kitchen)

        outcomes = complete_all(kitchen, [run["id"]] * 6)

        assert sorted(outcomes) == ["InvalidState"] * 5 + ["ok"]
        entries = ledger_service.get_transactions(
            reference_prefix=ledger_service.run_reference_prefix(run["uuid"])
        )
        assert len(entries) == 2
        assert current_stock(kitchen["onion"]) == pytest.approx(995)
        assert current_stock(kitchen["soup_stock"]) == pytest.approx(10)

    def test_parallel_runs_on_one_product_lose_no_stock(self, kitchen):
        runs = [start_run(kitchen) for _ in range(8)]

        outcomes = complete_all(kitchen, [run["id"] for run in runs])

        assert outcomes == ["ok"] * 8
        assert current_stock(kitchen["onion"]) == pytest.approx(960)
        assert current_stock(kitchen["soup_stock"]) == pytest.approx(80)

        for key in ("onion", "soup_stock"):
            entries = ledger_service.get_transactions(product_id=kitchen[key]["id"])
            assert sum(e["quantity"] for e in entries) == pytest.approx(
                current_stock(kitchen[key])
            )
