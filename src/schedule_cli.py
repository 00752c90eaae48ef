"""CLI for printing an amortization schedule.

Usage:
    python -m src.schedule_cli 30500000 4.2 360
    python -m src.schedule_cli 85000000 5.5 100 --frequency quarterly --annual
    python -m src.schedule_cli 175000000 4.5 60 --interest-only
"""

import argparse
import sys
from decimal import Decimal, InvalidOperation

from src.engine.amortization import (
    InvalidInputError,
    annual_summary,
    compute_schedule,
    schedule_totals,
)
from src.models.loan import AmortizationType, LoanTerms, PaymentFrequency


def _decimal(value: str) -> Decimal:
    try:
        return Decimal(value)
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"not a number: {value}")


def print_schedule(entries) -> None:
    print(f"\n{'=' * 72}")
    print(f"  {'Period':>6}  {'Payment':>16}  {'Principal':>16}  {'Interest':>14}  {'Balance':>16}")
    print(f"{'=' * 72}")
    for e in entries:
        print(
            f"  {e.period:>6}  {e.payment_amount:>16,.2f}  {e.principal_portion:>16,.2f}"
            f"  {e.interest_portion:>14,.2f}  {e.remaining_balance:>16,.2f}"
        )


def print_annual(entries, payments_per_year: int) -> None:
    print(f"\n{'=' * 72}")
    print(f"  {'Year':>6}  {'Debt Service':>16}  {'Principal':>16}  {'Interest':>14}  {'Balance':>16}")
    print(f"{'=' * 72}")
    for y in annual_summary(entries, payments_per_year):
        print(
            f"  {y['year']:>6}  {y['debt_service']:>16,.2f}  {y['principal']:>16,.2f}"
            f"  {y['interest']:>14,.2f}  {y['ending_balance']:>16,.2f}"
        )


def print_totals(entries) -> None:
    totals = schedule_totals(entries)
    print()
    print(f"  Payments:         {totals.payment_count}")
    print(f"  Total paid:       ${totals.total_paid:,.2f}")
    print(f"  Total interest:   ${totals.total_interest:,.2f}")
    print(f"  Total principal:  ${totals.total_principal:,.2f}")
    print()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Loan amortization schedule")
    parser.add_argument("principal", type=_decimal, help="Original loan balance")
    parser.add_argument("rate", type=_decimal, help="Annual interest rate in percent (4.5 = 4.5%%)")
    parser.add_argument("term_payments", type=int, help="Number of scheduled payments")
    parser.add_argument(
        "--frequency",
        choices=[f.value for f in PaymentFrequency],
        default=PaymentFrequency.MONTHLY.value,
        help="Payment frequency (default: monthly)",
    )
    parser.add_argument("--interest-only", action="store_true", help="Interest-only loan")
    parser.add_argument("--annual", action="store_true", help="Print yearly rollup instead of every period")

    args = parser.parse_args(argv)
    payments_per_year = PaymentFrequency(args.frequency).payments_per_year
    terms = LoanTerms(
        principal=args.principal,
        annual_rate_percent=args.rate,
        term_payments=args.term_payments,
        payments_per_year=payments_per_year,
        amortization_type=(
            AmortizationType.INTEREST_ONLY if args.interest_only else AmortizationType.FULLY_AMORTIZING
        ),
    )

    try:
        entries = compute_schedule(terms)
    except InvalidInputError as e:
        print(f"Invalid loan terms: {e}", file=sys.stderr)
        return 2

    if args.annual:
        print_annual(entries, payments_per_year)
    else:
        print_schedule(entries)
    print_totals(entries)
    return 0


if __name__ == "__main__":
    sys.exit(main())
