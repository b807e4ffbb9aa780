"""
Prep Ledger command-line interface.

Usage Examples:
    # Create the database and tables
    prep-ledger init-db

    # Preview how many purchase units 3 cups of product 12 are
    prep-ledger convert 12 3 cup --restaurant bistro-1

    # Print the ledger entries of production run 7
    prep-ledger ledger 7
"""

import argparse
import sys

from prep_ledger.services.catalog_service import calculate_inventory_impact_for_product
from prep_ledger.services.database import initialize_app_database
from prep_ledger.services.exceptions import ServiceError
from prep_ledger.services.logging_utils import configure_logging
from prep_ledger.services.production_run_service import get_production_run
from prep_ledger.utils.config import get_config
from prep_ledger.utils.constants import APP_NAME, APP_VERSION


def init_db() -> int:
    """Create the database tables."""
    config = get_config()
    print(f"Initializing database at {config.database_url}...")
    initialize_app_database()
    print("Database ready")
    return 0


def convert_cmd(product_id: int, quantity: float, unit: str, restaurant_id: str) -> int:
    """Print a conversion preview."""
    try:
        converted = calculate_inventory_impact_for_product(
            product_id, quantity, unit, restaurant_id
        )
    except ServiceError as e:
        print(f"ERROR: {e}")
        return 1

    print(f"{quantity:g} {unit} = {converted:.6g} purchase units of product {product_id}")
    return 0


def ledger_cmd(run_id: int) -> int:
    """Print the ledger entries of a production run."""
    try:
        run = get_production_run(run_id)
    except ServiceError as e:
        print(f"ERROR: {e}")
        return 1

    print(
        f"Production run {run['id']} ({run.get('prep_recipe_name', '?')}): "
        f"{run['status']}, cost per unit {run['cost_per_unit']}"
    )
    transactions = run.get("transactions", [])
    if not transactions:
        print("  No ledger entries")
        return 0

    for entry in transactions:
        print(
            f"  {entry['transaction_type']:<10} product {entry['product_id']:<6} "
            f"qty {entry['quantity']:>12.6f}  unit cost {entry['unit_cost']:>10.4f}  "
            f"total {entry['total_cost']:>12.4f}"
        )
    total = sum(entry["total_cost"] for entry in transactions)
    print(f"  Net cost: {total:.6f}")
    return 0


def main(argv=None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="prep-ledger",
        description=f"{APP_NAME} {APP_VERSION}: prep production costing and inventory ledger",
    )
    parser.add_argument("--log-level", help="Override PREP_LEDGER_LOG_LEVEL (e.g. DEBUG)")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    subparsers.add_parser("init-db", help="Create the database and tables")

    convert_parser = subparsers.add_parser(
        "convert", help="Preview a quantity in a product's purchase unit"
    )
    convert_parser.add_argument("product_id", type=int, help="Product ID")
    convert_parser.add_argument("quantity", type=float, help="Recorded quantity")
    convert_parser.add_argument("unit", help="Recorded unit (e.g. cup, oz, each)")
    convert_parser.add_argument(
        "--restaurant", required=True, dest="restaurant_id", help="Restaurant ID"
    )

    ledger_parser = subparsers.add_parser("ledger", help="Print a production run's ledger")
    ledger_parser.add_argument("run_id", type=int, help="Production run ID")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    configure_logging(args.log_level.upper() if args.log_level else None)

    if args.command == "init-db":
        return init_db()

    initialize_app_database()

    if args.command == "convert":
        return convert_cmd(args.product_id, args.quantity, args.unit, args.restaurant_id)
    elif args.command == "ledger":
        return ledger_cmd(args.run_id)
    else:
        print(f"Unknown command: {args.command}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
