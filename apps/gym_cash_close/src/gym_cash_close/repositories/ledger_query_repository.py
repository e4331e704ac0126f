"""Read-only queries over payments, refunds, sales, drawer and trainer tables."""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import func, or_, select, true
from sqlalchemy.orm import Session

from gym_cash_close.db.models.appointment import Appointment
from gym_cash_close.db.models.cash_movement import CashMovement
from gym_cash_close.db.models.payment import Payment, Refund
from gym_cash_close.db.models.pos_sale import SaleItem, SaleTransaction
from gym_cash_close.db.models.trainer import TrainerEarning, TrainerPayout
from gym_cash_close.domain.ledger import LedgerEntry, SaleItemRow
from gym_cash_close.domain.money import quantize_money
from gym_cash_close.domain.periods import DateRange, ensure_utc

COMPLETED_PAYMENT_STATUSES = (
    "completed",
    "paid",
    "refunded",
    "partial",
    "partial_refund",
    "partial refund",
)


class LedgerQueryRepository:
    """Repository returning flat ledger rows scoped by an inclusive range."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def list_payments(
        self,
        date_range: DateRange,
        *,
        actor_id: int | None = None,
    ) -> list[LedgerEntry]:
        statement = select(Payment).where(
            Payment.paid_at >= date_range.start_at,
            Payment.paid_at <= date_range.end_at,
            func.lower(Payment.status).in_(COMPLETED_PAYMENT_STATUSES),
        )
        if actor_id is not None:
            statement = statement.where(Payment.created_by == actor_id)
        statement = statement.order_by(Payment.paid_at, Payment.id)
        return [
            LedgerEntry(
                id=payment.id,
                amount=Decimal(payment.amount),
                method=payment.method,
                occurred_at=ensure_utc(payment.paid_at),
                note=payment.note or payment.member_name,
                actor_id=payment.created_by,
            )
            for payment in self._session.scalars(statement)
        ]

    def list_refunds(
        self,
        date_range: DateRange,
        *,
        actor_id: int | None = None,
    ) -> list[LedgerEntry]:
        """Refunds carry the method of the payment they reverse."""

        statement = (
            select(Refund, Payment.method)
            .join(Payment, Refund.payment_id == Payment.id)
            .where(
                Refund.created_at >= date_range.start_at,
                Refund.created_at <= date_range.end_at,
            )
        )
        if actor_id is not None:
            statement = statement.where(Refund.created_by == actor_id)
        statement = statement.order_by(Refund.created_at, Refund.id)
        return [
            LedgerEntry(
                id=refund.id,
                amount=Decimal(refund.amount),
                method=method,
                occurred_at=ensure_utc(refund.created_at),
                note=refund.reason,
                actor_id=refund.created_by,
            )
            for refund, method in self._session.execute(statement).all()
        ]

    def list_cash_movements(
        self,
        date_range: DateRange,
        *,
        actor_id: int | None = None,
    ) -> list[LedgerEntry]:
        statement = select(CashMovement).where(
            CashMovement.created_at >= date_range.start_at,
            CashMovement.created_at <= date_range.end_at,
        )
        if actor_id is not None:
            statement = statement.where(CashMovement.employee_id == actor_id)
        statement = statement.order_by(CashMovement.created_at, CashMovement.id)
        return [
            LedgerEntry(
                id=movement.id,
                amount=Decimal(movement.amount),
                method="cash",
                occurred_at=ensure_utc(movement.created_at),
                note=movement.reason or movement.notes,
                movement_type=str(movement.type),
            )
            for movement in self._session.scalars(statement)
        ]

    def list_trainer_payouts(
        self,
        date_range: DateRange,
        *,
        actor_id: int | None = None,
    ) -> list[LedgerEntry]:
        statement = select(TrainerPayout).where(
            TrainerPayout.paid_at >= date_range.start_at,
            TrainerPayout.paid_at <= date_range.end_at,
        )
        if actor_id is not None:
            statement = statement.where(
                TrainerPayout.paid_by_employee_id == actor_id
            )
        statement = statement.order_by(TrainerPayout.paid_at, TrainerPayout.id)
        return [
            LedgerEntry(
                id=payout.id,
                amount=Decimal(payout.total_amount),
                method=payout.method,
                occurred_at=ensure_utc(payout.paid_at),
                note=payout.note,
            )
            for payout in self._session.scalars(statement)
        ]

    def list_sales(
        self,
        date_range: DateRange,
        *,
        actor_id: int | None = None,
    ) -> list[LedgerEntry]:
        statement = select(SaleTransaction).where(
            SaleTransaction.created_at >= date_range.start_at,
            SaleTransaction.created_at <= date_range.end_at,
        )
        if actor_id is not None:
            statement = statement.where(SaleTransaction.employee_id == actor_id)
        statement = statement.order_by(SaleTransaction.created_at, SaleTransaction.id)
        return [
            LedgerEntry(
                id=sale.id,
                amount=Decimal(sale.total_amount),
                method=sale.payment_method,
                occurred_at=ensure_utc(sale.created_at),
                note=sale.notes,
            )
            for sale in self._session.scalars(statement)
        ]

    def list_sale_items(
        self,
        date_range: DateRange,
        *,
        actor_id: int | None = None,
    ) -> list[SaleItemRow]:
        statement = (
            select(SaleItem)
            .join(SaleTransaction, SaleItem.sale_id == SaleTransaction.id)
            .where(
                SaleTransaction.created_at >= date_range.start_at,
                SaleTransaction.created_at <= date_range.end_at,
            )
        )
        if actor_id is not None:
            statement = statement.where(SaleTransaction.employee_id == actor_id)
        statement = statement.order_by(SaleItem.id)
        return [
            SaleItemRow(
                sale_id=item.sale_id,
                product_id=item.product_id,
                product_name=item.product_name,
                quantity=int(item.quantity or 0),
                line_total=Decimal(item.line_total),
            )
            for item in self._session.scalars(statement)
        ]

    def count_completed_sessions(self, date_range: DateRange) -> int:
        """Count completed appointments by completion time, else schedule time."""

        occurred_at = func.coalesce(Appointment.completed_at, Appointment.scheduled_at)
        statement = (
            select(func.count())
            .select_from(Appointment)
            .where(
                or_(
                    func.lower(Appointment.status) == "completed",
                    Appointment.is_completed == true(),
                ),
                occurred_at >= date_range.start_at,
                occurred_at <= date_range.end_at,
            )
        )
        return int(self._session.scalar(statement) or 0)

    def sum_trainer_commissions(self, date_range: DateRange) -> Decimal:
        statement = select(
            func.coalesce(func.sum(TrainerEarning.commission_amount), Decimal("0.00"))
        ).where(
            TrainerEarning.created_at >= date_range.start_at,
            TrainerEarning.created_at <= date_range.end_at,
        )
        total = self._session.scalar(statement)
        return quantize_money(Decimal(total or Decimal("0")))

    def list_employee_payments(
        self,
        employee_id: int,
        date_range: DateRange,
    ) -> list[Payment]:
        """Completed payments taken by one employee, newest first."""

        statement = (
            select(Payment)
            .where(
                Payment.created_by == employee_id,
                Payment.paid_at >= date_range.start_at,
                Payment.paid_at <= date_range.end_at,
                func.lower(Payment.status) == "completed",
            )
            .order_by(Payment.paid_at.desc(), Payment.id.desc())
        )
        return list(self._session.scalars(statement).all())
