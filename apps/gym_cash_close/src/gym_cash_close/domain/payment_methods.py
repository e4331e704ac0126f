"""Normalization of free-text payment method labels."""

from __future__ import annotations

import enum


class PaymentMethod(enum.StrEnum):
    """Reconciliation buckets every money movement falls into."""

    CASH = "cash"
    CARD = "card"
    TRANSFER = "transfer"


# Checked in order; the first bucket with a matching keyword wins.
METHOD_KEYWORDS: tuple[tuple[PaymentMethod, tuple[str, ...]], ...] = (
    (PaymentMethod.CARD, ("card", "visa", "master", "credit", "debit")),
    (PaymentMethod.TRANSFER, ("transfer", "bank")),
)


def normalize_method(raw: str | None) -> PaymentMethod:
    """Map a raw method string to cash, card or transfer.

    Matching is case-insensitive and substring based. Unknown, empty and
    missing labels fall back to cash.
    """

    label = (raw or "").strip().lower()
    if not label:
        return PaymentMethod.CASH
    for method, keywords in METHOD_KEYWORDS:
        if any(keyword in label for keyword in keywords):
            return method
    return PaymentMethod.CASH
