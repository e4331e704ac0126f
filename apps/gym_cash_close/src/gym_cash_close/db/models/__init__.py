"""ORM models for the gym_cash_close domain."""

from gym_cash_close.db.models.appointment import Appointment
from gym_cash_close.db.models.audit_log import AuditLog
from gym_cash_close.db.models.cash_movement import CashMovement, CashMovementType
from gym_cash_close.db.models.cash_period import (
    AdjustmentType,
    CashCloseAdjustment,
    CashPeriod,
    PeriodStatus,
    PeriodType,
)
from gym_cash_close.db.models.payment import Payment, Refund
from gym_cash_close.db.models.pos_sale import SaleItem, SaleTransaction
from gym_cash_close.db.models.trainer import TrainerEarning, TrainerPayout

__all__ = [
    "AdjustmentType",
    "Appointment",
    "AuditLog",
    "CashCloseAdjustment",
    "CashMovement",
    "CashMovementType",
    "CashPeriod",
    "Payment",
    "PeriodStatus",
    "PeriodType",
    "Refund",
    "SaleItem",
    "SaleTransaction",
    "TrainerEarning",
    "TrainerPayout",
]
