"""SQLAlchemy base metadata and model registration utilities."""

from importlib import import_module

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for ORM models."""


def import_orm_models() -> None:
    """Import ORM models so metadata is fully populated."""

    modules = (
        "gym_cash_close.db.models.payment",
        "gym_cash_close.db.models.cash_movement",
        "gym_cash_close.db.models.pos_sale",
        "gym_cash_close.db.models.trainer",
        "gym_cash_close.db.models.appointment",
        "gym_cash_close.db.models.audit_log",
        "gym_cash_close.db.models.cash_period",
    )
    for module_name in modules:
        import_module(module_name)
