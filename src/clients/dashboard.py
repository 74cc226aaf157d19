"""Dashboard aggregate statistics, assembled from four NL-SQL questions."""

import asyncio
import logging
import math
from datetime import UTC, datetime

from pydantic import BaseModel

from src.clients.nl_sql import NlSqlResponse, execute_nl_query

logger = logging.getLogger(__name__)

DASHBOARD_STATS_KEY = "dashboardStats"

PRICE_QUESTION = "What is the average unit price from all contracts?"
SUPPLIERS_QUESTION = "How many customers are in the database?"
TRANSACTIONS_QUESTION = "How many shipments are there?"
INVENTORY_QUESTION = "How many inventory movements are there?"


class DashboardStats(BaseModel):
    current_price: float = 0.0
    # No dated price series is queried, so there is nothing to compare against
    price_change: float = 0.0
    total_inventory: int = 0
    active_suppliers: int = 0
    recent_transactions: int = 0
    last_updated: str = ""


def _first_cell(response: NlSqlResponse) -> object:
    """Return the first column of the first row, or None when there is nothing usable."""
    if not response.get("success"):
        return None
    rows = response.get("results") or []
    if not rows or not isinstance(rows[0], dict) or not rows[0]:
        return None
    return next(iter(rows[0].values()))


def _as_float(value: object) -> float:
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def _as_int(value: object) -> int:
    return int(_as_float(value))


async def get_dashboard_stats() -> DashboardStats:
    """Fetch the market overview figures. Any service failure propagates."""
    price, suppliers, transactions, inventory = await asyncio.gather(
        execute_nl_query(PRICE_QUESTION),
        execute_nl_query(SUPPLIERS_QUESTION),
        execute_nl_query(TRANSACTIONS_QUESTION),
        execute_nl_query(INVENTORY_QUESTION),
    )
    stats = DashboardStats(
        current_price=_as_float(_first_cell(price)),
        active_suppliers=_as_int(_first_cell(suppliers)),
        recent_transactions=_as_int(_first_cell(transactions)),
        total_inventory=_as_int(_first_cell(inventory)),
        last_updated=datetime.now(UTC).strftime("%Y-%m-%d %H:%M:%S UTC"),
    )
    logger.info(
        "Dashboard stats refreshed (price=%.2f, suppliers=%d, transactions=%d, inventory=%d)",
        stats.current_price,
        stats.active_suppliers,
        stats.recent_transactions,
        stats.total_inventory,
    )
    return stats
