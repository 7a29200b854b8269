"""Output helpers for the deposit calculator.

This module provides simple functions to render the interest ledger, the
tier breakdown and summaries in a tabular text format. Currency totals are
shown with two decimals; per-tier and per-day interest get more places
because they are often fractions of a cent.
"""

from __future__ import annotations

from decimal import Context, Decimal, MAX_EMAX, MIN_EMIN, ROUND_HALF_UP, localcontext
from typing import Iterable, List, Optional, Sequence, Tuple

from .data_models import CalculationResult, DailyEntry, MonthlyLedgerEntry, TierResult
from .utils import DEFAULT_PRECISION

APPLY_LABELS = {
    "daily": "Daily",
    "monthly": "Monthly",
    "biannually": "Every 6 months (June/December)",
    "annually": "Annually (December)",
}


def format_number(value: Decimal, decimals: int = 2) -> str:
    """Round half-up to ``decimals`` places and group thousands with commas."""
    value = Decimal(value)
    # quantize needs room for every integer digit plus the decimals
    precision = max(value.adjusted() + decimals + 2, DEFAULT_PRECISION)
    with localcontext(Context(prec=precision, rounding=ROUND_HALF_UP, Emax=MAX_EMAX, Emin=MIN_EMIN)):
        rounded = value.quantize(Decimal(1).scaleb(-decimals))
        return f"{rounded:,.{decimals}f}"


def tier_range(min_value: Decimal, max_value: Optional[Decimal]) -> str:
    if max_value is None:
        return f"{format_number(min_value)}+"
    return f"{format_number(min_value)} - {format_number(max_value)}"


def print_summary(principal: Decimal, result: CalculationResult, interest_type: str, apply_type: str) -> None:
    """Print the headline numbers of a calculation."""
    print("Summary")
    print("-" * 72)
    print(f"Deposit amount     : {format_number(principal)}")
    print(f"Number of days     : {result.total_days}")
    print(f"Interest type      : {interest_type.capitalize()}")
    print(f"Interest applied   : {APPLY_LABELS.get(apply_type, apply_type)}")
    print(f"Total interest     : {format_number(result.total_interest)}")
    if result.accrued_interest:
        print(f"Not yet applied    : {format_number(result.accrued_interest)}")
    print(f"Final amount       : {format_number(result.final_amount)}")
    print("-" * 72)


def print_tier_results(tier_results: Iterable[TierResult]) -> None:
    """Print how the original principal splits across tiers."""
    print("Breakdown by interest rate tier")
    print(f"{'Amount range':32s} {'Rate %':>8s} {'Amount':>20s} {'Interest':>18s}")
    for tier in tier_results:
        print(
            f"{tier_range(tier.min, tier.max):32s} "
            f"{format_number(tier.rate):>8s} "
            f"{format_number(tier.amount):>20s} "
            f"{format_number(tier.interest, 4):>18s}"
        )


def print_ledger(breakdown: Iterable[MonthlyLedgerEntry]) -> None:
    """Print the monthly ledger as a simple table."""
    headers = [
        "Period",
        "Month",
        "Days",
        "Balance",
        "Interest",
        "Cumulative",
        "Accrued",
        "Applied",
    ]
    print("\t".join(headers))
    for entry in breakdown:
        row = [
            str(entry.period),
            entry.label,
            str(entry.days),
            format_number(entry.balance),
            format_number(entry.interest, 4),
            format_number(entry.cumulative),
            format_number(entry.accrued),
            "Yes" if entry.applied else "No",
        ]
        print("\t".join(row))


def print_daily(daily: Sequence[DailyEntry], breakdown: Sequence[MonthlyLedgerEntry]) -> None:
    """Print the day-by-day view, grouped under a month heading.

    Columns follow the tier allocations of each month; months where the
    balance reaches more tiers show more columns.
    """
    current_label = None
    for day in daily:
        if day.label != current_label:
            current_label = day.label
            print()
            print(current_label)
            columns = [f"Tier {i}" for i in range(1, len(day.tier_interests) + 1)]
            print("\t".join(["Date"] + columns + ["Interest", "Balance"]))
        row = [day.date.isoformat()]
        row.extend(format_number(i, 10) for i in day.tier_interests)
        row.append(format_number(day.interest, 10))
        row.append(format_number(day.balance))
        print("\t".join(row))
    widest = max((entry.allocations for entry in breakdown), key=len, default=[])
    if widest:
        print()
        print("Tiers: " + ", ".join(
            f"Tier {i} = {tier_range(t.min, t.max)} @ {format_number(t.rate)}%"
            for i, t in enumerate(widest, start=1)
        ))


def print_comparison(scenarios: List[Tuple[str, Decimal, CalculationResult]]) -> None:
    """Print several scenarios side by side.

    The difference column compares each scenario with the first one; a
    positive difference means the scenario earns more.
    """
    print("Comparison")
    print("=" * 88)
    print(f"{'Scenario':20s} {'Deposit':>16s} {'Interest':>16s} {'Final amount':>18s} {'Difference':>14s}")
    baseline = scenarios[0][2].total_interest if scenarios else Decimal(0)
    for name, principal, result in scenarios:
        diff = result.total_interest - baseline
        print(
            f"{name:20s} {format_number(principal):>16s} "
            f"{format_number(result.total_interest):>16s} "
            f"{format_number(result.final_amount):>18s} "
            f"{format_number(diff):>14s}"
        )
    print("=" * 88)
