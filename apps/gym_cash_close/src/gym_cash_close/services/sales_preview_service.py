"""Product sales summary for the close screen."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Protocol

from gym_cash_close.domain.ledger import SaleItemRow
from gym_cash_close.domain.money import ZERO, round_money
from gym_cash_close.domain.periods import DateRange

logger = logging.getLogger(__name__)

TOP_PRODUCTS_LIMIT = 5


class SaleItemsRepositoryProtocol(Protocol):
    """Sale item reads consumed by service."""

    def list_sale_items(
        self, date_range: DateRange, *, actor_id: int | None = None
    ) -> list[SaleItemRow]: ...


@dataclass(slots=True, frozen=True)
class ProductSales:
    product_id: int | None
    name: str
    quantity: int
    revenue: Decimal


@dataclass(slots=True, frozen=True)
class SalesPreview:
    total_revenue: Decimal = ZERO
    total_units: int = 0
    transactions_count: int = 0
    top_products: list[ProductSales] = field(default_factory=list)


class SalesPreviewService:
    """Aggregates sale lines by product; degrades to an empty preview."""

    def __init__(self, *, sales_repository: SaleItemsRepositoryProtocol) -> None:
        self._sales_repository = sales_repository

    def preview(
        self,
        date_range: DateRange,
        actor_id: int | None = None,
    ) -> SalesPreview:
        try:
            items = self._sales_repository.list_sale_items(
                date_range, actor_id=actor_id
            )
        except Exception:
            logger.warning(
                "preview_degraded",
                extra={"part": "sales"},
                exc_info=True,
            )
            return SalesPreview()
        return summarize_sale_items(items)


def summarize_sale_items(items: list[SaleItemRow]) -> SalesPreview:
    total_revenue = ZERO
    total_units = 0
    sale_ids: set[int] = set()
    by_product: dict[int | str | None, list] = {}

    for item in items:
        revenue = round_money(item.line_total)
        total_revenue = round_money(total_revenue + revenue)
        total_units += item.quantity
        sale_ids.add(item.sale_id)

        key = item.product_id if item.product_id is not None else item.product_name
        entry = by_product.setdefault(key, [item.product_id, item.product_name, 0, ZERO])
        entry[2] += item.quantity
        entry[3] = round_money(entry[3] + revenue)

    ranked = sorted(by_product.values(), key=lambda entry: entry[3], reverse=True)
    return SalesPreview(
        total_revenue=total_revenue,
        total_units=total_units,
        transactions_count=len(sale_ids),
        top_products=[
            ProductSales(
                product_id=product_id,
                name=name or "Unknown",
                quantity=quantity,
                revenue=revenue,
            )
            for product_id, name, quantity, revenue in ranked[:TOP_PRODUCTS_LIMIT]
        ],
    )
