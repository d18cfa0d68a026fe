"""Parsing of additional charge and discount rows into typed charges.

Charge rows arrive loosely shaped from the landlord's billing form. They are
turned into Additional / Discount values here; rows without a label, or whose
amount is not a number a money column can hold, are dropped with a warning
instead of failing the save.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, ClassVar, Iterable, NamedTuple

from leasebill.models.billing import ChargeCategory

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Additional:
    """Extra amount added to a statement."""

    charge_type: str
    amount: Decimal

    category: ClassVar[ChargeCategory] = ChargeCategory.ADDITIONAL


@dataclass(frozen=True)
class Discount:
    """Amount taken off a statement.

    The stored amount keeps whatever sign the landlord entered; a discount
    always reduces the total by its absolute value.
    """

    charge_type: str
    amount: Decimal

    category: ClassVar[ChargeCategory] = ChargeCategory.DISCOUNT


Charge = Additional | Discount


class ParsedCharges(NamedTuple):
    """Result of parsing a batch of charge rows."""

    charges: list[Charge]
    skipped: int


def _first_present(row: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in row and row[key] is not None:
            return row[key]
    return None


# Largest amount a Numeric(10, 2) money column holds
MAX_AMOUNT = Decimal("99999999.99")


def within_amount_limit(amount: Decimal) -> bool:
    """True for finite amounts that fit a money column."""
    return amount.is_finite() and abs(amount) <= MAX_AMOUNT


def _parse_amount(raw: Any) -> Decimal | None:
    if raw is None or isinstance(raw, bool):
        return None
    try:
        amount = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError):
        return None
    if not within_amount_limit(amount):
        return None
    return amount


def parse_charge(row: Any, default_category: ChargeCategory = ChargeCategory.ADDITIONAL) -> Charge | None:
    """Parse a single charge row.

    Accepts both the short keys (category, type) and the column names
    (charge_category, charge_type). Any category other than "discount" is an
    additional charge.

    Returns:
        Additional or Discount, or None when the row is malformed
    """
    if not isinstance(row, dict):
        return None

    label = _first_present(row, "type", "charge_type")
    if not isinstance(label, str) or not label.strip():
        return None

    amount = _parse_amount(row.get("amount"))
    if amount is None:
        return None

    category = _first_present(row, "category", "charge_category") or default_category
    if isinstance(category, ChargeCategory):
        category = category.value
    if str(category).strip().lower() == ChargeCategory.DISCOUNT.value:
        return Discount(charge_type=label.strip(), amount=amount)
    return Additional(charge_type=label.strip(), amount=amount)


def parse_charges(
    rows: Iterable[Any] | None,
    default_category: ChargeCategory = ChargeCategory.ADDITIONAL,
) -> ParsedCharges:
    """Parse charge rows, skipping malformed ones.

    Args:
        rows: Raw rows ({category, type, amount} dicts), in submission order
        default_category: Category for rows that carry none

    Returns:
        ParsedCharges with the valid charges (order kept) and the skipped count
    """
    charges: list[Charge] = []
    skipped = 0

    for index, row in enumerate(rows or []):
        charge = parse_charge(row, default_category)
        if charge is None:
            skipped += 1
            logger.warning("Skipping malformed charge row #%d: %r", index, row)
            continue
        charges.append(charge)

    return ParsedCharges(charges=charges, skipped=skipped)


def sum_charges(charges: Iterable[Charge]) -> tuple[Decimal, Decimal]:
    """Return (additional total, discount total); discounts as a positive magnitude."""
    additional = Decimal("0")
    discounts = Decimal("0")
    for charge in charges:
        if isinstance(charge, Discount):
            discounts += abs(charge.amount)
        else:
            additional += charge.amount
    return additional, discounts


__all__ = [
    "Additional",
    "Charge",
    "Discount",
    "MAX_AMOUNT",
    "ParsedCharges",
    "parse_charge",
    "parse_charges",
    "sum_charges",
    "within_amount_limit",
]
