"""Amortization schedule computation.

Pure functions: Decimal in, dataclass out. No I/O.

Every emitted amount is rounded half-up to the cent in the period that
produces it, and the following period accrues interest on that rounded
balance. Summing a schedule therefore reproduces exactly what a borrower
would be billed.
"""

from decimal import Decimal, ROUND_HALF_UP

from src.models.loan import (
    AmortizationType,
    LoanRecord,
    LoanTerms,
    ScheduleEntry,
    ScheduleTotals,
)

TWO_PLACES = Decimal("0.01")
ZERO = Decimal("0.00")
DUST = Decimal("0.01")  # Residual balance treated as paid off
PAYMENTS_PER_YEAR = (1, 4, 12)


class InvalidInputError(ValueError):
    """Loan terms that cannot produce a finite schedule."""

    def __init__(self, field: str, message: str):
        super().__init__(f"{field} {message}")
        self.field = field


def _money(value: Decimal) -> Decimal:
    return value.quantize(TWO_PLACES, ROUND_HALF_UP)


def _as_decimal(value, field: str) -> Decimal:
    if isinstance(value, bool):
        raise InvalidInputError(field, "must be a number")
    if isinstance(value, float):
        value = Decimal(str(value))
    elif isinstance(value, int):
        value = Decimal(value)
    elif not isinstance(value, Decimal):
        raise InvalidInputError(field, "must be a number")
    if not value.is_finite():
        raise InvalidInputError(field, "must be finite")
    return value


def validate_terms(terms: LoanTerms) -> tuple[Decimal, Decimal, int, int]:
    """Check terms and return (principal, annual_rate_percent, term_payments, payments_per_year)."""
    principal = _as_decimal(terms.principal, "principal")
    if principal <= 0:
        raise InvalidInputError("principal", "must be greater than 0")

    rate = _as_decimal(terms.annual_rate_percent, "annual_rate_percent")
    if rate < 0:
        raise InvalidInputError("annual_rate_percent", "must not be negative")

    if isinstance(terms.term_payments, bool) or not isinstance(terms.term_payments, int):
        raise InvalidInputError("term_payments", "must be an integer")
    if terms.term_payments <= 0:
        raise InvalidInputError("term_payments", "must be greater than 0")

    if terms.payments_per_year not in PAYMENTS_PER_YEAR:
        raise InvalidInputError("payments_per_year", "must be one of 1, 4 or 12")

    if not isinstance(terms.amortization_type, AmortizationType):
        raise InvalidInputError("amortization_type", "is not a known amortization type")

    return principal, rate, terms.term_payments, terms.payments_per_year


def period_rate(annual_rate_percent: Decimal, payments_per_year: int) -> Decimal:
    return annual_rate_percent / 100 / payments_per_year


def level_payment(
    principal: Decimal,
    annual_rate_percent: Decimal,
    term_payments: int,
    payments_per_year: int = 12,
) -> Decimal:
    """Scheduled payment that retires the principal over term_payments periods."""
    r = period_rate(annual_rate_percent, payments_per_year)
    if r == 0:
        return _money(principal / term_payments)

    # PMT = P * [r(1+r)^n] / [(1+r)^n - 1]
    factor = (1 + r) ** term_payments
    return _money(principal * r * factor / (factor - 1))


def compute_schedule(terms: LoanTerms) -> list[ScheduleEntry]:
    """Generate the payment-by-payment schedule for a loan.

    Raises:
        InvalidInputError: principal or term not positive, negative rate,
            or an unsupported payment frequency.
    """
    principal, rate, n_periods, payments_per_year = validate_terms(terms)
    r = period_rate(rate, payments_per_year)
    balance = _money(principal)

    if terms.amortization_type is AmortizationType.INTEREST_ONLY:
        interest = _money(balance * r)
        return [
            ScheduleEntry(
                period=period,
                payment_amount=interest,
                principal_portion=ZERO,
                interest_portion=interest,
                remaining_balance=balance,
            )
            for period in range(1, n_periods + 1)
        ]

    pmt = level_payment(principal, rate, n_periods, payments_per_year)
    payments: list[ScheduleEntry] = []

    for period in range(1, n_periods + 1):
        interest = _money(balance * r)
        principal_paid = pmt - interest
        residual = balance - principal_paid

        # Final payment adjustment: retire whatever is left, including
        # cent drift from rounding, and stop once only dust would remain.
        if period == n_periods or residual <= DUST:
            payments.append(ScheduleEntry(
                period=period,
                payment_amount=balance + interest,
                principal_portion=balance,
                interest_portion=interest,
                remaining_balance=ZERO,
            ))
            break

        balance = residual
        payments.append(ScheduleEntry(
            period=period,
            payment_amount=pmt,
            principal_portion=principal_paid,
            interest_portion=interest,
            remaining_balance=balance,
        ))

    return payments


def schedule_totals(entries: list[ScheduleEntry]) -> ScheduleTotals:
    return ScheduleTotals(
        payment_count=len(entries),
        total_paid=sum((e.payment_amount for e in entries), ZERO),
        total_interest=sum((e.interest_portion for e in entries), ZERO),
        total_principal=sum((e.principal_portion for e in entries), ZERO),
    )


def annual_summary(entries: list[ScheduleEntry], payments_per_year: int = 12) -> list[dict]:
    """Aggregate a schedule by loan year.

    Returns list of dicts with keys: year, principal, interest, debt_service, ending_balance
    """
    yearly: list[dict] = []
    year_principal = ZERO
    year_interest = ZERO
    year_debt_service = ZERO

    for e in entries:
        year_principal += e.principal_portion
        year_interest += e.interest_portion
        year_debt_service += e.payment_amount

        if e.period % payments_per_year == 0 or e.period == len(entries):
            yearly.append({
                "year": (e.period - 1) // payments_per_year + 1,
                "principal": year_principal,
                "interest": year_interest,
                "debt_service": year_debt_service,
                "ending_balance": e.remaining_balance,
            })
            year_principal = ZERO
            year_interest = ZERO
            year_debt_service = ZERO

    return yearly


def terms_from_loan(loan: LoanRecord) -> LoanTerms:
    """Build schedule inputs for a stored loan, amortizing its original balance."""
    payments_per_year = loan.payment_frequency.payments_per_year
    return LoanTerms(
        principal=loan.original_balance,
        annual_rate_percent=loan.interest_rate_percent,
        term_payments=loan.amortization_period_months * payments_per_year // 12,
        payments_per_year=payments_per_year,
        amortization_type=loan.amortization_type,
    )
