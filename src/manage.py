"""ShopStream checkout management CLI.

Creates and drops the checkout tables and seeds or inspects stock levels.
The database is taken from DATABASE_URL.

Usage:
    python src/manage.py setup-db                       # Create all tables
    python src/manage.py drop-db                        # Drop all tables
    python src/manage.py set-stock prod-001 25 --threshold 5
    python src/manage.py low-stock                      # List products to reorder
"""

import argparse
import sys

from ordering.config import CheckoutSettings
from ordering.utils.logging import configure_logging


def _sql_storage():
    from ordering.storage.sql import SQLStorage

    settings = CheckoutSettings.from_env()
    return SQLStorage.from_url(
        settings.database_url,
        default_low_stock_threshold=settings.default_low_stock_threshold,
    )


def setup_database():
    storage = _sql_storage()
    print(f"Creating checkout schema on {storage.engine.url!r}...")
    storage.setup()
    print("Done.")


def drop_database():
    from ordering.storage.sql import drop_db

    storage = _sql_storage()
    print(f"Dropping checkout schema on {storage.engine.url!r}...")
    drop_db(storage.engine)
    print("Done.")


def set_stock(product_id, quantity, threshold=None):
    from inventory.stock.levels import StockLevels

    record = StockLevels(_sql_storage()).set(product_id, quantity, threshold)
    print(f"{record.product_id}: {record.available_quantity} available (low stock at {record.low_stock_threshold})")


def show_low_stock():
    from inventory.stock.levels import StockLevels

    records = StockLevels(_sql_storage()).low_stock()
    if not records:
        print("No products at or below their low-stock threshold.")
        return
    for record in records:
        print(f"{record.product_id:<40} {record.available_quantity:>6} (threshold {record.low_stock_threshold})")


def main():
    parser = argparse.ArgumentParser(description="ShopStream checkout management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all checkout tables")
    subparsers.add_parser("drop-db", help="Drop all checkout tables")

    stock_parser = subparsers.add_parser("set-stock", help="Set the available quantity of a product")
    stock_parser.add_argument("product_id")
    stock_parser.add_argument("quantity", type=int)
    stock_parser.add_argument("--threshold", type=int, default=None, help="Low-stock threshold")

    subparsers.add_parser("low-stock", help="List products at or below their low-stock threshold")

    args = parser.parse_args()
    configure_logging()

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    elif args.command == "set-stock":
        set_stock(args.product_id, args.quantity, args.threshold)
    elif args.command == "low-stock":
        show_low_stock()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
