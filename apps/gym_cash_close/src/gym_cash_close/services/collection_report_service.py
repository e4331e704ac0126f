"""Per-employee collection reports that do not depend on a closed period."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Protocol

from gym_cash_close.db.models.payment import Payment
from gym_cash_close.domain.ledger import LedgerEntry
from gym_cash_close.domain.money import ZERO, round_money
from gym_cash_close.domain.payment_methods import PaymentMethod, normalize_method
from gym_cash_close.domain.periods import DateRange, month_range


class CollectionsRepositoryProtocol(Protocol):
    """Payment and refund reads consumed by service."""

    def list_payments(
        self, date_range: DateRange, *, actor_id: int | None = None
    ) -> list[LedgerEntry]: ...

    def list_refunds(
        self, date_range: DateRange, *, actor_id: int | None = None
    ) -> list[LedgerEntry]: ...

    def list_employee_payments(
        self, employee_id: int, date_range: DateRange
    ) -> list[Payment]: ...


@dataclass(slots=True)
class EmployeeCollection:
    employee_id: int
    payments_count: int = 0
    cash_total: Decimal = ZERO
    non_cash_total: Decimal = ZERO
    total: Decimal = ZERO
    refunds_total: Decimal = ZERO


@dataclass(slots=True, frozen=True)
class CollectionTotals:
    payments_count: int
    cash_total: Decimal
    non_cash_total: Decimal
    gross_total: Decimal
    refunds_total: Decimal
    net_revenue: Decimal


@dataclass(slots=True, frozen=True)
class MonthlyCollections:
    month: str
    date_range: DateRange
    grand_total: CollectionTotals
    employees: list[EmployeeCollection] = field(default_factory=list)


def summarize_collections(
    month: str,
    date_range: DateRange,
    payments: list[LedgerEntry],
    refunds: list[LedgerEntry],
) -> MonthlyCollections:
    """Group payments by the employee who took them.

    Payments without an employee still count towards the grand total. Refunds
    are credited to the employee who issued them, adding a row for employees
    who only refunded.
    """

    by_employee: dict[int, EmployeeCollection] = {}
    payments_count = 0
    cash_total = ZERO
    non_cash_total = ZERO

    for payment in payments:
        amount = round_money(payment.amount)
        if amount <= ZERO:
            continue
        is_cash = normalize_method(payment.method) is PaymentMethod.CASH
        payments_count += 1
        if is_cash:
            cash_total = round_money(cash_total + amount)
        else:
            non_cash_total = round_money(non_cash_total + amount)

        if payment.actor_id is None:
            continue
        employee = by_employee.setdefault(
            payment.actor_id, EmployeeCollection(employee_id=payment.actor_id)
        )
        employee.payments_count += 1
        if is_cash:
            employee.cash_total = round_money(employee.cash_total + amount)
        else:
            employee.non_cash_total = round_money(employee.non_cash_total + amount)
        employee.total = round_money(employee.total + amount)

    refunds_total = ZERO
    for refund in refunds:
        amount = round_money(refund.amount)
        if amount <= ZERO:
            continue
        refunds_total = round_money(refunds_total + amount)
        if refund.actor_id is None:
            continue
        employee = by_employee.setdefault(
            refund.actor_id, EmployeeCollection(employee_id=refund.actor_id)
        )
        employee.refunds_total = round_money(employee.refunds_total + amount)

    gross_total = round_money(cash_total + non_cash_total)
    return MonthlyCollections(
        month=month,
        date_range=date_range,
        employees=sorted(
            by_employee.values(),
            key=lambda item: (-item.total, item.employee_id),
        ),
        grand_total=CollectionTotals(
            payments_count=payments_count,
            cash_total=cash_total,
            non_cash_total=non_cash_total,
            gross_total=gross_total,
            refunds_total=refunds_total,
            net_revenue=round_money(gross_total - refunds_total),
        ),
    )


class CollectionReportService:
    """Reads collections per employee; storage errors propagate."""

    def __init__(
        self,
        *,
        collections_repository: CollectionsRepositoryProtocol,
        timezone_name: str = "UTC",
    ) -> None:
        self._collections_repository = collections_repository
        self._timezone_name = timezone_name

    def list_monthly_collections(self, month: str) -> MonthlyCollections:
        date_range = month_range(month, self._timezone_name)
        return summarize_collections(
            month,
            date_range,
            self._collections_repository.list_payments(date_range),
            self._collections_repository.list_refunds(date_range),
        )

    def list_employee_payments(
        self,
        employee_id: int,
        date_range: DateRange,
    ) -> list[Payment]:
        return self._collections_repository.list_employee_payments(
            employee_id, date_range
        )
