"""Persistence gateways for receipts, budgets and shopping lists."""

from .gateway import COLUMNS, PersistenceGateway, SQLiteGateway, create_gateway
from .schema import TABLES, ensure_schema

__all__ = [
    "COLUMNS",
    "TABLES",
    "PersistenceGateway",
    "SQLiteGateway",
    "create_gateway",
    "ensure_schema",
]
