"""Flat row types read from the money-movement source tables."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass(slots=True, frozen=True)
class LedgerEntry:
    """One money movement, flattened from whichever table it came from.

    ``method`` is the raw free-text label as stored; normalization happens in
    the aggregation layer. ``movement_type`` is only set for drawer
    movements (``IN``/``OUT``). ``actor_id`` is the employee who recorded
    the row, when the source table tracks one.
    """

    id: int
    amount: Decimal
    method: str | None
    occurred_at: datetime
    note: str | None = None
    movement_type: str | None = None
    actor_id: int | None = None


@dataclass(slots=True, frozen=True)
class SaleItemRow:
    """Product line joined with its sale transaction id."""

    sale_id: int
    product_id: int | None
    product_name: str
    quantity: int
    line_total: Decimal
