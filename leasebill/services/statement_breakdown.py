"""Statement total derivation and settlement of rent credits."""

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, NamedTuple, Sequence

from leasebill.services.charges import Charge, sum_charges

CENT = Decimal("0.01")
ZERO = Decimal("0")

# Rent credit sources, in the order they settle rent
CREDIT_PDC = "post_dated_check"
CREDIT_ADVANCE = "advance_payment"


def money(value: Decimal | int | str | None) -> Decimal:
    """Round an amount half-up to cents (None counts as zero)."""
    if value is None:
        return ZERO.quantize(CENT)
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


class RentCredit(NamedTuple):
    """Amount of one credit source actually applied against rent."""

    source: str
    amount: Decimal


class StatementBreakdown(NamedTuple):
    """Components of a statement and the total derived from them."""

    base_rent: Decimal
    rent_credits: list[RentCredit]
    rent_due: Decimal
    assoc_dues: Decimal
    water_cost: Decimal
    electricity_cost: Decimal
    additional_total: Decimal
    discount_total: Decimal
    total: Decimal

    @property
    def rent_credit_total(self) -> Decimal:
        return sum((credit.amount for credit in self.rent_credits), ZERO)


def settle_rent(
    rent: Decimal,
    credits: Sequence[tuple[str, Decimal]],
) -> tuple[Decimal, list[RentCredit]]:
    """Apply credits against rent in the given order.

    Each credit is capped at the rent still outstanding when its turn comes, so
    the credits never settle more than the rent itself and a later credit is only
    used for what an earlier one left open.

    Args:
        rent: Base rent of the period
        credits: (source, available amount) pairs, in settlement order

    Returns:
        (rent still due, applied credits with zero-amount credits omitted)
    """
    outstanding = max(money(rent), ZERO)
    applied: list[RentCredit] = []

    for source, available in credits:
        available = max(money(available), ZERO)
        used = min(available, outstanding)
        if used > ZERO:
            applied.append(RentCredit(source=source, amount=used))
            outstanding -= used

    return outstanding, applied


def compute_breakdown(
    *,
    rent: Decimal,
    water_cost: Decimal = ZERO,
    electricity_cost: Decimal = ZERO,
    assoc_dues: Decimal = ZERO,
    charges: Iterable[Charge] = (),
    credits: Sequence[tuple[str, Decimal]] = (),
) -> StatementBreakdown:
    """Derive a statement total from its components.

    Formula:
        total = (rent - credits) + dues + water + electricity + Σ additional - Σ |discounts|

    Component costs are clamped to zero; the total itself is not, a discount larger
    than everything else yields a negative balance the landlord can see.
    """
    rent_due, applied = settle_rent(rent, credits)
    additional_total, discount_total = sum_charges(charges)

    water = max(money(water_cost), ZERO)
    electricity = max(money(electricity_cost), ZERO)
    dues = max(money(assoc_dues), ZERO)
    additional_total = money(additional_total)
    discount_total = money(discount_total)

    total = rent_due + dues + water + electricity + additional_total - discount_total

    return StatementBreakdown(
        base_rent=max(money(rent), ZERO),
        rent_credits=applied,
        rent_due=rent_due,
        assoc_dues=dues,
        water_cost=water,
        electricity_cost=electricity,
        additional_total=additional_total,
        discount_total=discount_total,
        total=money(total),
    )


__all__ = [
    "CREDIT_ADVANCE",
    "CREDIT_PDC",
    "RentCredit",
    "StatementBreakdown",
    "compute_breakdown",
    "money",
    "settle_rent",
]
