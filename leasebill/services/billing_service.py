"""Billing statement assembly: save-or-update of a unit's monthly statement.

One save runs in a single transaction:

1. resolve the unit's active or completed lease
2. upsert the statement of the billing month (unique per unit + month)
3. upsert the submitted meter readings (unique per unit + utility + month)
4. replace the statement's charge list
5. persist the total according to the configured total policy

Any failure rolls the whole save back.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from functools import partial
from typing import Any, Callable, NamedTuple

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from leasebill.models.billing import BillingCharge, BillingStatement, BillingStatus, ChargeCategory
from leasebill.models.meter_reading import MeterReading
from leasebill.models.property import BillingType, Property
from leasebill.models.utility_rate import UtilityType
from leasebill.services.audit_service import AuditService
from leasebill.services.charges import MAX_AMOUNT, Charge, parse_charges, within_amount_limit
from leasebill.services.config import BillingConfig, ReopenPolicy, TotalPolicy, load_config
from leasebill.services.dates import month_end, month_start
from leasebill.services.errors import (
    BillingError,
    DuplicateIdentifierError,
    NoActiveLeaseError,
    PersistenceError,
    ValidationError,
)
from leasebill.services.id_generator import generate_bill_id
from leasebill.services.lease_service import LeaseService
from leasebill.services.rate_service import RateService
from leasebill.services.statement_breakdown import compute_breakdown, money
from leasebill.services.usage_calculator import UsageCost, compute_usage_cost

logger = logging.getLogger(__name__)

OUTCOME_CREATED = "created"
OUTCOME_UPDATED = "updated"

# Largest reading a Numeric(12, 3) meter column holds
MAX_READING = Decimal("999999999.999")


@dataclass
class SubmeteredBillingRequest:
    """Landlord's monthly billing submission for a submetered unit."""

    unit_id: int | None
    reading_date: date | None
    due_date: date | None
    water_prev_reading: Decimal | None = None
    water_current_reading: Decimal | None = None
    electricity_prev_reading: Decimal | None = None
    electricity_current_reading: Decimal | None = None
    total_water_amount: Decimal | None = None
    total_electricity_amount: Decimal | None = None
    total_amount_due: Decimal | None = None
    additional_charges: list[Any] = field(default_factory=list)
    actor_id: int | None = None


@dataclass
class FlatBillingRequest:
    """Monthly billing submission for a unit without meters."""

    unit_id: int | None
    lease_id: int | None
    total: Decimal | None
    additional_charges: list[Any] = field(default_factory=list)
    discounts: list[Any] = field(default_factory=list)
    billing_period: date | None = None
    due_date: date | None = None
    actor_id: int | None = None


class SaveResult(NamedTuple):
    """Outcome of a billing save."""

    billing_id: str
    outcome: str
    """"created" or "updated"."""
    status: str
    total_due: Decimal
    derived_total: Decimal
    skipped_charges: int
    readings: dict[str, UsageCost]


class _UtilityInput(NamedTuple):
    utility_type: UtilityType
    previous: Decimal | None
    current: Decimal | None
    caller_amount: Decimal | None


class _UtilityResult(NamedTuple):
    utility_type: UtilityType
    previous: Decimal
    current: Decimal
    rate: Decimal | None
    usage_cost: UsageCost


def _check_amounts(**amounts: Decimal | None) -> None:
    for name, value in amounts.items():
        if value is not None and not within_amount_limit(value):
            raise ValidationError(f"{name} must be a number between -{MAX_AMOUNT} and {MAX_AMOUNT}")


def _billing_type(property_obj: Property, utility_type: UtilityType) -> str:
    if utility_type == UtilityType.WATER:
        return property_obj.water_billing_type
    return property_obj.electricity_billing_type


def _dialect_insert(session: Session) -> Callable:
    """INSERT construct supporting ON CONFLICT for the session's database."""
    dialect = session.get_bind().dialect.name
    if dialect == "sqlite":
        return sqlite.insert
    if dialect == "postgresql":
        return postgresql.insert
    raise PersistenceError(f"Atomic upsert is not supported on {dialect}")


class BillingService:
    """Service for saving billing statements.

    Encapsulates statement upsert, meter reading upsert and charge replacement.
    Used by the landlord billing API endpoints.
    """

    def __init__(
        self,
        db_session: Session,
        config: BillingConfig | None = None,
        id_generator: Callable[[], str] | None = None,
    ):
        """Initialize with database session.

        Args:
            db_session: SQLAlchemy session; the service commits or rolls it back
            config: Billing configuration (default: load_config())
            id_generator: Produces candidate billing ids (default: generate_bill_id)
        """
        self.db = db_session
        self.config = config or load_config()
        self.id_generator = id_generator or partial(generate_bill_id, self.config.bill_id_prefix)
        self.leases = LeaseService(db_session)
        self.rates = RateService(db_session)

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def save_or_update_billing(self, request: SubmeteredBillingRequest) -> SaveResult:
        """Create or update the billing statement of a submetered unit for the month.

        Args:
            request: Billing submission (readings, caller totals, charges)

        Returns:
            SaveResult with billing_id and whether the statement was created or updated

        Raises:
            ValidationError: Required field missing, reading or amount out of
                range, or total mismatch under the strict total policy
            NoActiveLeaseError: Unit has no active or completed lease
            PersistenceError: Database failure (transaction rolled back)
        """
        self._validate_submetered(request)
        return self._in_transaction(lambda: self._save_submetered(request), request.unit_id)

    def save_flat_billing(self, request: FlatBillingRequest) -> SaveResult:
        """Create or update the statement of a non-submetered unit for the month.

        billing_period defaults to today and due_date to the last day of that month.

        Raises:
            ValidationError: unit_id, lease_id or total missing, total out of
                range, or the property submeters a utility
            NoActiveLeaseError: The lease does not belong to the unit
            PersistenceError: Database failure (transaction rolled back)
        """
        if request.unit_id is None or request.lease_id is None or request.total is None:
            raise ValidationError("Missing required fields (unit_id, agreement_id, total)")
        _check_amounts(total=request.total)
        return self._in_transaction(lambda: self._save_flat(request), request.unit_id)

    # ------------------------------------------------------------------
    # Transaction handling
    # ------------------------------------------------------------------

    def _in_transaction(self, operation: Callable[[], SaveResult], unit_id: int) -> SaveResult:
        try:
            result = operation()
            self.db.commit()
        except BillingError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            detail = str(getattr(e, "orig", None) or e)
            logger.error("Billing save for unit %s rolled back: %s", unit_id, detail)
            raise PersistenceError(f"Failed to save billing record: {detail}") from e
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            "Billing %s %s for unit %s (total=%s, status=%s)",
            result.billing_id,
            result.outcome,
            unit_id,
            result.total_due,
            result.status,
        )
        return result

    # ------------------------------------------------------------------
    # Submetered save
    # ------------------------------------------------------------------

    def _validate_submetered(self, request: SubmeteredBillingRequest) -> None:
        if not request.unit_id or not request.reading_date or not request.due_date:
            raise ValidationError("Missing required fields (unit_id, readingDate, dueDate)")
        if request.total_amount_due is None and self.config.total_policy != TotalPolicy.DERIVE:
            raise ValidationError("Missing required field (total_amount_due)")

        readings = (
            request.water_prev_reading,
            request.water_current_reading,
            request.electricity_prev_reading,
            request.electricity_current_reading,
        )
        for value in readings:
            if value is None:
                continue
            if not value.is_finite() or value > MAX_READING:
                raise ValidationError(f"Meter readings must be numbers up to {MAX_READING}")
            if value < 0:
                raise ValidationError("Meter readings cannot be negative")

        _check_amounts(
            total_amount_due=request.total_amount_due,
            total_water_amount=request.total_water_amount,
            total_electricity_amount=request.total_electricity_amount,
        )

    def _compute_utilities(
        self,
        request: SubmeteredBillingRequest,
        property_obj: Property,
    ) -> tuple[list[_UtilityResult], dict[UtilityType, Decimal]]:
        """Usage and statement cost per utility; no writes.

        Readings of a utility the property does not submeter are ignored and the
        caller's amount is kept.
        """
        inputs = [
            _UtilityInput(
                UtilityType.WATER,
                request.water_prev_reading,
                request.water_current_reading,
                request.total_water_amount,
            ),
            _UtilityInput(
                UtilityType.ELECTRICITY,
                request.electricity_prev_reading,
                request.electricity_current_reading,
                request.total_electricity_amount,
            ),
        ]

        results: list[_UtilityResult] = []
        costs: dict[UtilityType, Decimal] = {}
        billing_month = month_start(request.reading_date)

        for utility in inputs:
            if _billing_type(property_obj, utility.utility_type) != BillingType.SUBMETERED:
                if utility.previous is not None or utility.current is not None:
                    logger.warning(
                        "Unit %s: ignoring %s readings, property %s bills it flat",
                        request.unit_id,
                        utility.utility_type.value,
                        property_obj.id,
                    )
                costs[utility.utility_type] = money(utility.caller_amount)
                continue

            previous = utility.previous
            if previous is None and utility.current is not None:
                previous = self._stored_previous_reading(request.unit_id, utility.utility_type, billing_month)

            if previous is None or utility.current is None:
                costs[utility.utility_type] = money(utility.caller_amount)
                continue

            rate = self.rates.get_rate(property_obj.id, utility.utility_type, request.reading_date)
            usage_cost = compute_usage_cost(previous, utility.current, rate)
            if not within_amount_limit(usage_cost.cost):
                raise ValidationError(
                    f"Computed {utility.utility_type.value} cost {usage_cost.cost} exceeds {MAX_AMOUNT}"
                )
            results.append(
                _UtilityResult(utility.utility_type, previous, utility.current, rate, usage_cost)
            )

            if not rate:
                # No rate for the period yet: keep what the landlord entered
                costs[utility.utility_type] = money(utility.caller_amount)
                continue

            computed = money(usage_cost.cost)
            if utility.caller_amount is not None and money(utility.caller_amount) != computed:
                logger.warning(
                    "Unit %s %s amount %s differs from computed %s (usage %s × rate %s)",
                    request.unit_id,
                    utility.utility_type.value,
                    money(utility.caller_amount),
                    computed,
                    usage_cost.usage,
                    rate,
                )
            costs[utility.utility_type] = computed

        return results, costs

    def _stored_previous_reading(
        self,
        unit_id: int,
        utility_type: UtilityType,
        billing_month: date,
    ) -> Decimal | None:
        """Previous reading to measure a lone current reading against.

        The previous reading already stored for this period wins; otherwise the
        current reading of the latest earlier period carries forward.
        """
        same_period = self.db.execute(
            select(MeterReading.previous_reading).where(
                MeterReading.unit_id == unit_id,
                MeterReading.utility_type == utility_type.value,
                MeterReading.period_month == billing_month,
            )
        ).scalar_one_or_none()
        if same_period is not None:
            return same_period

        return self.db.execute(
            select(MeterReading.current_reading)
            .where(
                MeterReading.unit_id == unit_id,
                MeterReading.utility_type == utility_type.value,
                MeterReading.period_month < billing_month,
            )
            .order_by(MeterReading.period_month.desc())
            .limit(1)
        ).scalar_one_or_none()

    def _save_submetered(self, request: SubmeteredBillingRequest) -> SaveResult:
        lease = self.leases.resolve_billable_lease(request.unit_id)
        if lease is None:
            raise NoActiveLeaseError()

        unit = lease.unit
        property_obj = unit.property
        billing_month = month_start(request.reading_date)

        utilities, costs = self._compute_utilities(request, property_obj)
        parsed = parse_charges(request.additional_charges)

        breakdown = compute_breakdown(
            rent=self.leases.effective_rent(lease, unit),
            water_cost=costs[UtilityType.WATER],
            electricity_cost=costs[UtilityType.ELECTRICITY],
            assoc_dues=property_obj.assoc_dues,
            charges=parsed.charges,
            credits=self.leases.rent_credits(lease, property_obj, billing_month),
        )
        total = self._resolve_total(request.total_amount_due, breakdown.total, request.unit_id)

        statement, created = self._upsert_statement(
            unit_id=unit.id,
            lease_id=lease.id,
            billing_period=request.reading_date,
            billing_month=billing_month,
            values={
                "due_date": request.due_date,
                "rent_amount": breakdown.base_rent,
                "rent_credit_amount": breakdown.rent_credit_total,
                "assoc_dues_amount": breakdown.assoc_dues,
                "total_water_amount": breakdown.water_cost,
                "total_electricity_amount": breakdown.electricity_cost,
                "total_amount_due": total,
            },
        )

        for utility in utilities:
            self._upsert_meter_reading(
                unit_id=unit.id,
                reading_date=request.reading_date,
                billing_month=billing_month,
                utility=utility,
            )

        self._replace_charges(statement, parsed.charges)
        self._audit(statement, created, request.actor_id, parsed.skipped)

        return SaveResult(
            billing_id=statement.billing_id,
            outcome=OUTCOME_CREATED if created else OUTCOME_UPDATED,
            status=statement.status,
            total_due=total,
            derived_total=breakdown.total,
            skipped_charges=parsed.skipped,
            readings={u.utility_type.value: u.usage_cost for u in utilities},
        )

    # ------------------------------------------------------------------
    # Flat save
    # ------------------------------------------------------------------

    def _save_flat(self, request: FlatBillingRequest) -> SaveResult:
        lease = self.leases.get_unit_lease(request.unit_id, request.lease_id)
        if lease is None:
            raise NoActiveLeaseError(
                f"Lease {request.lease_id} not found for unit {request.unit_id}."
            )

        unit = lease.unit
        property_obj = unit.property
        submetered = [
            utility.value
            for utility in UtilityType
            if _billing_type(property_obj, utility) == BillingType.SUBMETERED
        ]
        if submetered:
            raise ValidationError(
                f"Property {property_obj.id} submeters {', '.join(submetered)}; use submetered billing"
            )
        billing_period = request.billing_period or date.today()
        billing_month = month_start(billing_period)

        additional = parse_charges(request.additional_charges, ChargeCategory.ADDITIONAL)
        discounts = parse_charges(request.discounts, ChargeCategory.DISCOUNT)
        charges = additional.charges + discounts.charges
        skipped = additional.skipped + discounts.skipped

        breakdown = compute_breakdown(
            rent=self.leases.effective_rent(lease, unit),
            assoc_dues=property_obj.assoc_dues,
            charges=charges,
            credits=self.leases.rent_credits(lease, property_obj, billing_month),
        )
        total = self._resolve_total(request.total, breakdown.total, request.unit_id)

        statement, created = self._upsert_statement(
            unit_id=unit.id,
            lease_id=lease.id,
            billing_period=billing_period,
            billing_month=billing_month,
            values={
                "due_date": request.due_date or month_end(billing_period),
                "rent_amount": breakdown.base_rent,
                "rent_credit_amount": breakdown.rent_credit_total,
                "assoc_dues_amount": breakdown.assoc_dues,
                "total_amount_due": total,
            },
        )

        self._replace_charges(statement, charges)
        self._audit(statement, created, request.actor_id, skipped)

        return SaveResult(
            billing_id=statement.billing_id,
            outcome=OUTCOME_CREATED if created else OUTCOME_UPDATED,
            status=statement.status,
            total_due=total,
            derived_total=breakdown.total,
            skipped_charges=skipped,
            readings={},
        )

    # ------------------------------------------------------------------
    # Shared steps
    # ------------------------------------------------------------------

    def _resolve_total(self, caller_total: Decimal | None, derived: Decimal, unit_id: int) -> Decimal:
        """Pick the total to persist according to the total policy."""
        policy = self.config.total_policy

        if policy == TotalPolicy.DERIVE:
            if not within_amount_limit(derived):
                raise ValidationError(f"Computed total {derived} exceeds {MAX_AMOUNT}")
            if caller_total is not None and money(caller_total) != derived:
                logger.info(
                    "Unit %s: ignoring caller total %s, persisting derived %s",
                    unit_id,
                    money(caller_total),
                    derived,
                )
            return derived

        caller = money(caller_total)
        if caller != derived:
            if policy == TotalPolicy.STRICT:
                raise ValidationError(
                    f"total_amount_due {caller} does not match computed total {derived}"
                )
            logger.warning(
                "Unit %s: caller total %s differs from derived total %s",
                unit_id,
                caller,
                derived,
            )
        return caller

    def _upsert_statement(
        self,
        *,
        unit_id: int,
        lease_id: int,
        billing_period: date,
        billing_month: date,
        values: dict[str, Any],
    ) -> tuple[BillingStatement, bool]:
        """Insert the month's statement or update the existing one.

        The insert carries a fresh billing id and does nothing on conflict. If it
        inserted, the statement is new; if the unit already has a statement this
        month, that one is updated; otherwise the id itself collided and a new
        one is generated.

        Returns:
            (statement, created)
        """
        insert = _dialect_insert(self.db)
        attempts = self.config.bill_id_max_attempts
        last_error: DuplicateIdentifierError | None = None

        for attempt in range(1, attempts + 1):
            candidate = self.id_generator()
            try:
                statement, created = self._insert_or_fetch_statement(
                    insert,
                    candidate=candidate,
                    unit_id=unit_id,
                    lease_id=lease_id,
                    billing_period=billing_period,
                    billing_month=billing_month,
                    values=values,
                )
            except DuplicateIdentifierError as e:
                last_error = e
                logger.warning(
                    "Billing id %s already taken (attempt %d/%d), regenerating",
                    candidate,
                    attempt,
                    attempts,
                )
                continue

            if not created:
                self._update_statement(statement, values)
            return statement, created

        raise PersistenceError(
            f"Failed to generate unique billing_id after {attempts} attempts"
        ) from last_error

    def _insert_or_fetch_statement(
        self,
        insert: Callable,
        *,
        candidate: str,
        unit_id: int,
        lease_id: int,
        billing_period: date,
        billing_month: date,
        values: dict[str, Any],
    ) -> tuple[BillingStatement, bool]:
        stmt = (
            insert(BillingStatement)
            .values(
                billing_id=candidate,
                unit_id=unit_id,
                lease_id=lease_id,
                billing_period=billing_period,
                billing_month=billing_month,
                status=BillingStatus.UNPAID.value,
                **values,
            )
            .on_conflict_do_nothing()
        )
        result = self.db.execute(stmt)

        statement = self.db.execute(
            select(BillingStatement)
            .where(
                BillingStatement.unit_id == unit_id,
                BillingStatement.billing_month == billing_month,
            )
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

        if result.rowcount == 1 and statement is not None:
            return statement, True
        if statement is None:
            raise DuplicateIdentifierError(candidate)
        return statement, False

    def _update_statement(self, statement: BillingStatement, values: dict[str, Any]) -> None:
        """Apply new amounts to an existing statement and the reopen policy."""
        was_paid = statement.status == BillingStatus.PAID
        previous_total = money(statement.total_amount_due)

        for key, value in values.items():
            setattr(statement, key, value)

        keep_paid = (
            was_paid
            and self.config.reopen_policy == ReopenPolicy.ON_TOTAL_CHANGE
            and previous_total == money(values["total_amount_due"])
        )
        if keep_paid:
            logger.info("Statement %s stays paid, total unchanged", statement.billing_id)
            return

        if was_paid:
            logger.warning(
                "Reopening paid statement %s for payment (total %s -> %s)",
                statement.billing_id,
                previous_total,
                values["total_amount_due"],
            )
        statement.status = BillingStatus.UNPAID.value
        statement.paid_at = None

    def _upsert_meter_reading(
        self,
        *,
        unit_id: int,
        reading_date: date,
        billing_month: date,
        utility: _UtilityResult,
    ) -> None:
        insert = _dialect_insert(self.db)
        stmt = insert(MeterReading).values(
            unit_id=unit_id,
            utility_type=utility.utility_type.value,
            reading_date=reading_date,
            period_month=billing_month,
            previous_reading=utility.previous,
            current_reading=utility.current,
            consumption=utility.usage_cost.usage,
            rate_per_unit=utility.rate,
            cost=money(utility.usage_cost.cost),
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["unit_id", "utility_type", "period_month"],
            set_={
                "reading_date": stmt.excluded.reading_date,
                "previous_reading": stmt.excluded.previous_reading,
                "current_reading": stmt.excluded.current_reading,
                "consumption": stmt.excluded.consumption,
                "rate_per_unit": stmt.excluded.rate_per_unit,
                "cost": stmt.excluded.cost,
                "updated_at": datetime.now(timezone.utc),
            },
        )
        self.db.execute(stmt)

    def _replace_charges(self, statement: BillingStatement, charges: list[Charge]) -> None:
        """Delete the stored charge rows, then insert the submitted ones."""
        statement.charges.clear()
        self.db.flush()

        for charge in charges:
            statement.charges.append(
                BillingCharge(
                    category=charge.category.value,
                    charge_type=charge.charge_type,
                    amount=money(charge.amount),
                )
            )
        self.db.flush()

    def _audit(
        self,
        statement: BillingStatement,
        created: bool,
        actor_id: int | None,
        skipped_charges: int,
    ) -> None:
        AuditService.log_statement(
            self.db,
            statement,
            "create" if created else "update",
            actor_id,
            total_amount_due=str(statement.total_amount_due),
            status=statement.status,
            charge_count=len(statement.charges),
            skipped_charges=skipped_charges,
        )


__all__ = [
    "BillingService",
    "FlatBillingRequest",
    "OUTCOME_CREATED",
    "OUTCOME_UPDATED",
    "SaveResult",
    "SubmeteredBillingRequest",
]
