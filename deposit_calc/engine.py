"""Core calculation engine for the deposit calculator.

This module implements the financial logic for tiered deposits: it walks
the requested date range one calendar month at a time, splits the running
balance across interest tiers, accrues simple or compound interest for each
month and folds accrued interest into the balance according to the chosen
application cadence. Results are returned as a ``CalculationResult`` holding
the monthly ledger, a per-tier breakdown of the original principal and,
on request, a day-by-day view derived from the same tier allocations.

Every calculation runs under an explicit ``decimal.Context`` (see
``utils.make_context``) applied with ``localcontext``.
"""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Context, Decimal, localcontext
import logging
from typing import Any, Dict, Iterable, List, Optional

from .data_models import (
    CalculationResult,
    DailyEntry,
    DepositConfig,
    MonthlyLedgerEntry,
    TierAllocation,
    TierResult,
)
from .errors import InvalidAmountError, InvalidRangeError
from .tiers import TierLike, parse_tiers, split_amount_by_tiers, validate_tiers
from .utils import (
    DEFAULT_CONTEXT,
    decimal_from_str,
    inclusive_day_count,
    month_end,
    month_segments,
    parse_iso_date,
)

logger = logging.getLogger(__name__)

INTEREST_TYPES = ("simple", "compound")
APPLY_TYPES = ("daily", "monthly", "biannually", "annually")

YEAR_DAYS = Decimal(365)
HUNDRED = Decimal(100)


def simple_interest(amount: Optional[Decimal], rate: Optional[Decimal], days: int) -> Decimal:
    """Return simple interest on ``amount`` for ``days`` days.

    The formula is:

        interest = P * (R / 100) * (D / 365)

    A 365-day year is used regardless of leap years. A missing amount or
    rate yields zero.
    """
    if amount is None or rate is None:
        return Decimal(0)
    return amount * (rate / HUNDRED) * (Decimal(days) / YEAR_DAYS)


def compound_interest(amount: Optional[Decimal], rate: Optional[Decimal], days: int) -> Decimal:
    """Return compound interest on ``amount`` for ``days`` days.

    The formula is:

        interest = P * (1 + R / 100) ^ (D / 365) - P

    The exponent is fractional, so ``Decimal`` real exponentiation is used.
    A missing amount or rate yields zero.
    """
    if amount is None or rate is None:
        return Decimal(0)
    growth = (1 + rate / HUNDRED) ** (Decimal(days) / YEAR_DAYS)
    return amount * growth - amount


def period_interest(amount: Decimal, rate: Decimal, days: int, interest_type: str) -> Decimal:
    if interest_type == "simple":
        return simple_interest(amount, rate, days)
    if interest_type == "compound":
        return compound_interest(amount, rate, days)
    raise ValueError(f"Unknown interest type: {interest_type}")


def should_apply(apply_type: str, segment_end: date) -> bool:
    """Decide whether accrued interest is capitalized at ``segment_end``.

    ``daily`` applies at every month segment. ``monthly`` applies when the
    segment reaches the last day of its month, which leaves a partial final
    month accrued. ``biannually`` applies in June and December and
    ``annually`` in December.
    """
    if apply_type == "daily":
        return True
    if apply_type == "monthly":
        return segment_end == month_end(segment_end)
    if apply_type == "biannually":
        return segment_end.month in (6, 12)
    if apply_type == "annually":
        return segment_end.month == 12
    raise ValueError(f"Unknown apply type: {apply_type}")


def _check_config(config: DepositConfig):
    if config.interest_type not in INTEREST_TYPES:
        raise ValueError(f"Interest type must be one of {', '.join(INTEREST_TYPES)}; got {config.interest_type}")
    if config.apply_type not in APPLY_TYPES:
        raise ValueError(f"Apply type must be one of {', '.join(APPLY_TYPES)}; got {config.apply_type}")
    if config.principal is None or not config.principal.is_finite() or config.principal <= 0:
        raise InvalidAmountError("Deposit amount must be greater than 0")
    if config.end_date <= config.start_date:
        raise InvalidRangeError("End date must be after start date")
    return validate_tiers(config.tiers)


def _segment_interest(allocations: Iterable[TierAllocation], days: int, interest_type: str) -> Decimal:
    total = Decimal(0)
    for allocation in allocations:
        total += period_interest(allocation.amount, allocation.rate, days, interest_type)
    return total


def _expand_daily(
    entry: MonthlyLedgerEntry,
    opening_balance: Decimal,
    interest_type: str,
    apply_type: str,
) -> List[DailyEntry]:
    """Break one ledger segment into days.

    Day ``k`` of the segment earns ``f(k) - f(k - 1)`` per allocation, where
    ``f`` is the period formula, so the days add up to the segment interest.
    """
    days: List[DailyEntry] = []
    previous = [Decimal(0)] * len(entry.allocations)
    running = opening_balance
    for offset in range(entry.days):
        current_date = entry.start_date + timedelta(days=offset)
        tier_interests = []
        for index, allocation in enumerate(entry.allocations):
            upto = period_interest(allocation.amount, allocation.rate, offset + 1, interest_type)
            tier_interests.append(upto - previous[index])
            previous[index] = upto
        day_interest = sum(tier_interests, Decimal(0))
        if apply_type == "daily":
            running += day_interest
        days.append(
            DailyEntry(
                date=current_date,
                label=entry.label,
                tier_interests=tier_interests,
                interest=day_interest,
                balance=running,
            )
        )
    return days


def compute_interest(
    config: DepositConfig,
    context: Optional[Context] = None,
    include_daily: bool = False,
) -> CalculationResult:
    """Compute the interest ledger and totals for a deposit.

    Parameters
    ----------
    config: DepositConfig
        The calculation request. It is validated in full before any ledger
        entry is produced.
    context: Optional[Context]
        Decimal context to compute under. Defaults to 50 significant digits
        with ROUND_HALF_UP.
    include_daily: bool
        Also return the day-by-day expansion in ``result.daily``.

    Returns
    -------
    CalculationResult
        Totals, the monthly ledger and the per-tier breakdown of the
        original principal.

    Raises
    ------
    InvalidAmountError, InvalidRangeError, InvalidTierError
        When the request is rejected.
    """
    tiers = _check_config(config)
    interest_type = config.interest_type
    apply_type = config.apply_type

    with localcontext(context or DEFAULT_CONTEXT):
        segments = month_segments(config.start_date, config.end_date)
        logger.debug(
            "Calculating deposit interest",
            extra={
                "extra": {
                    "principal": str(config.principal),
                    "start_date": config.start_date.isoformat(),
                    "end_date": config.end_date.isoformat(),
                    "interest_type": interest_type,
                    "apply_type": apply_type,
                    "segments": len(segments),
                }
            },
        )

        balance = config.principal
        cumulative = Decimal(0)
        accrued = Decimal(0)
        breakdown: List[MonthlyLedgerEntry] = []
        daily: List[DailyEntry] = []

        for period, (segment_start, segment_end) in enumerate(segments, start=1):
            days = inclusive_day_count(segment_start, segment_end)
            allocations = split_amount_by_tiers(balance, tiers)
            interest = _segment_interest(allocations, days, interest_type)
            opening_balance = balance

            applied = should_apply(apply_type, segment_end)
            if applied:
                to_apply = accrued + interest
                cumulative += to_apply
                balance += to_apply
                accrued = Decimal(0)
                running_total = cumulative
            else:
                accrued += interest
                running_total = cumulative + accrued

            entry = MonthlyLedgerEntry(
                period=period,
                label=segment_start.strftime("%B %Y"),
                start_date=segment_start,
                end_date=segment_end,
                days=days,
                balance=balance,
                interest=interest,
                cumulative=running_total,
                accrued=accrued,
                applied=applied,
                allocations=allocations,
            )
            breakdown.append(entry)
            if include_daily:
                daily.extend(_expand_daily(entry, opening_balance, interest_type, apply_type))

        # Informational view: the original principal over the whole period,
        # without capitalization.
        total_days = inclusive_day_count(config.start_date, config.end_date)
        tier_results = [
            TierResult(
                min=a.min,
                max=a.max,
                rate=a.rate,
                amount=a.amount,
                interest=period_interest(a.amount, a.rate, total_days, interest_type),
            )
            for a in split_amount_by_tiers(config.principal, tiers)
        ]

        total_interest = cumulative + accrued
        final_amount = balance + accrued

    logger.info(
        "Deposit interest calculated",
        extra={
            "extra": {
                "total_interest": str(total_interest),
                "total_days": total_days,
                "segments": len(breakdown),
            }
        },
    )
    return CalculationResult(
        total_interest=total_interest,
        final_amount=final_amount,
        accrued_interest=accrued,
        breakdown=breakdown,
        tier_results=tier_results,
        total_days=total_days,
        daily=daily,
    )


def build_config(
    principal: str,
    start_date: str,
    end_date: str,
    tiers: Iterable[TierLike],
    interest_type: str = "simple",
    apply_type: str = "daily",
) -> DepositConfig:
    """Parse string inputs into a ``DepositConfig``.

    Raises ``InvalidAmountError`` or ``InvalidRangeError`` for values that
    cannot be parsed. Tier fields that cannot be parsed are kept as ``None``
    and rejected later by ``validate_tiers``.
    """
    if isinstance(principal, Decimal):
        principal_value = principal
    else:
        try:
            principal_value = decimal_from_str(str(principal))
        except ValueError as exc:
            raise InvalidAmountError(f"Invalid deposit amount: {principal}") from exc
    try:
        start = start_date if isinstance(start_date, date) else parse_iso_date(start_date)
        end = end_date if isinstance(end_date, date) else parse_iso_date(end_date)
    except ValueError as exc:
        raise InvalidRangeError(str(exc)) from exc
    return DepositConfig(
        principal=principal_value,
        start_date=start,
        end_date=end,
        tiers=parse_tiers(tiers or []),
        interest_type=interest_type.lower(),
        apply_type=apply_type.lower(),
    )


def calculate(
    principal: str,
    start_date: str,
    end_date: str,
    tiers: Iterable[TierLike],
    interest_type: str = "simple",
    apply_type: str = "daily",
    context: Optional[Context] = None,
    include_daily: bool = False,
) -> CalculationResult:
    """Run a calculation from plain string inputs.

    ``principal`` is a decimal string (commas allowed), dates are ISO
    ``YYYY-MM-DD`` strings and ``tiers`` are ``InterestTier`` objects or
    mappings with ``min``, ``max`` and ``rate`` strings.
    """
    config = build_config(principal, start_date, end_date, tiers, interest_type, apply_type)
    return compute_interest(config, context=context, include_daily=include_daily)


def _decimal_str(value: Decimal) -> str:
    """Plain positional notation; zero is always ``"0"``."""
    if value == 0:
        return "0"
    return format(value, "f")


def _optional_str(value: Optional[Decimal]) -> Optional[str]:
    return None if value is None else _decimal_str(value)


def serialize_allocation(allocation) -> Dict[str, Any]:
    data = {
        "min": _decimal_str(allocation.min),
        "max": _optional_str(allocation.max),
        "rate": _decimal_str(allocation.rate),
        "amount": _decimal_str(allocation.amount),
    }
    if isinstance(allocation, TierResult):
        data["interest"] = _decimal_str(allocation.interest)
    return data


def serialize_config(config: DepositConfig) -> Dict[str, Any]:
    """Convert a ``DepositConfig`` into the request dictionary accepted by
    ``calculate``."""
    return {
        "principal": _decimal_str(config.principal),
        "start_date": config.start_date.isoformat(),
        "end_date": config.end_date.isoformat(),
        "tiers": [
            {"min": _optional_str(t.min), "max": _optional_str(t.max), "rate": _optional_str(t.rate)}
            for t in config.tiers
        ],
        "interest_type": config.interest_type,
        "apply_type": config.apply_type,
    }


def serialize_result(result: CalculationResult) -> Dict[str, Any]:
    """Convert a ``CalculationResult`` into JSON-serialisable dictionaries.

    Decimals become strings so no precision is lost on the way to storage
    or the browser.
    """
    breakdown = []
    for entry in result.breakdown:
        breakdown.append(
            {
                "period": entry.period,
                "date": entry.label,
                "start_date": entry.start_date.isoformat(),
                "end_date": entry.end_date.isoformat(),
                "days": entry.days,
                "balance": _decimal_str(entry.balance),
                "interest": _decimal_str(entry.interest),
                "cumulative": _decimal_str(entry.cumulative),
                "accrued": _decimal_str(entry.accrued),
                "applied": entry.applied,
            }
        )
    data: Dict[str, Any] = {
        "total_interest": _decimal_str(result.total_interest),
        "final_amount": _decimal_str(result.final_amount),
        "accrued_interest": _decimal_str(result.accrued_interest),
        "total_days": result.total_days,
        "breakdown": breakdown,
        "tier_results": [serialize_allocation(t) for t in result.tier_results],
    }
    if result.daily:
        data["daily"] = [
            {
                "date": d.date.isoformat(),
                "month": d.label,
                "tier_interests": [_decimal_str(i) for i in d.tier_interests],
                "interest": _decimal_str(d.interest),
                "balance": _decimal_str(d.balance),
            }
            for d in result.daily
        ]
    return data

