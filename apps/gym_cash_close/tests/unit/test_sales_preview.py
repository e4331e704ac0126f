from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal

from gym_cash_close.domain.ledger import SaleItemRow
from gym_cash_close.domain.periods import DateRange
from gym_cash_close.services.sales_preview_service import (
    TOP_PRODUCTS_LIMIT,
    SalesPreview,
    SalesPreviewService,
    summarize_sale_items,
)

RANGE = DateRange(
    start_at=datetime(2026, 3, 2, 8, 0, tzinfo=UTC),
    end_at=datetime(2026, 3, 2, 20, 0, tzinfo=UTC),
)


def item(sale_id: int, product_id: int | None, name: str, qty: int, total: str):
    return SaleItemRow(
        sale_id=sale_id,
        product_id=product_id,
        product_name=name,
        quantity=qty,
        line_total=Decimal(total),
    )


def test_summarize_groups_by_product_and_ranks_by_revenue() -> None:
    preview = summarize_sale_items(
        [
            item(1, 10, "Water", 2, "6.00"),
            item(1, 11, "Protein bar", 1, "9.50"),
            item(2, 10, "Water", 1, "3.00"),
            item(3, None, "Towel rental", 1, "4.00"),
        ]
    )

    assert preview.total_revenue == Decimal("22.50")
    assert preview.total_units == 5
    assert preview.transactions_count == 3
    assert [(p.name, p.quantity, p.revenue) for p in preview.top_products] == [
        ("Protein bar", 1, Decimal("9.50")),
        ("Water", 3, Decimal("9.00")),
        ("Towel rental", 1, Decimal("4.00")),
    ]


def test_summarize_keeps_only_top_products() -> None:
    rows = [item(n, n, f"Product {n}", 1, f"{n}.00") for n in range(1, 9)]

    preview = summarize_sale_items(rows)

    assert len(preview.top_products) == TOP_PRODUCTS_LIMIT
    assert preview.top_products[0].name == "Product 8"


class BrokenSalesRepository:
    def list_sale_items(self, date_range, *, actor_id=None):
        raise RuntimeError("sales table unavailable")


def test_preview_degrades_to_empty_result() -> None:
    service = SalesPreviewService(sales_repository=BrokenSalesRepository())

    assert service.preview(RANGE) == SalesPreview()
