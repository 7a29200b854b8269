"""Data models for the deposit interest calculator.

This module defines dataclasses representing the entities used by the
calculator: interest tiers, the portion of a balance placed in each tier,
the calculation request and the ledger rows making up a result. All money
and rate values are ``Decimal``; floats never enter the engine.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import List, Optional


@dataclass(frozen=True)
class InterestTier:
    """An amount band earning its own annual rate.

    Attributes
    ----------
    min: Optional[Decimal]
        Inclusive lower bound of the band. ``None`` marks a malformed tier
        (the field was empty or not a number).
    max: Optional[Decimal]
        Inclusive upper bound. ``None`` means the band is open above.
    rate: Optional[Decimal]
        Annual interest rate in percent, e.g. ``Decimal("2.00")``.
    """

    min: Optional[Decimal]
    max: Optional[Decimal]
    rate: Optional[Decimal]

    @property
    def is_open_ended(self) -> bool:
        return self.max is None


@dataclass(frozen=True)
class TierAllocation:
    """The part of a balance that falls into one tier."""

    min: Decimal
    max: Optional[Decimal]
    rate: Decimal
    amount: Decimal


@dataclass(frozen=True)
class TierResult:
    """A tier allocation of the original principal together with the
    interest it earns over the whole period, ignoring capitalization."""

    min: Decimal
    max: Optional[Decimal]
    rate: Decimal
    amount: Decimal
    interest: Decimal


@dataclass
class DepositConfig:
    """Configuration of a deposit calculation.

    This collects all user inputs into a single object, making it easy to
    pass around, store in history and replay later.
    """

    principal: Decimal
    start_date: date
    end_date: date
    tiers: List[InterestTier]
    interest_type: str  # 'simple' or 'compound'
    apply_type: str  # 'daily', 'monthly', 'biannually' or 'annually'


@dataclass(frozen=True)
class MonthlyLedgerEntry:
    """One calendar-month segment of the ledger.

    ``balance`` is the running balance after this segment (it only moves
    when interest is applied). ``cumulative`` counts applied interest plus
    whatever is still accrued, and ``accrued`` is the part not yet folded
    into the balance.
    """

    period: int
    label: str
    start_date: date
    end_date: date
    days: int
    balance: Decimal
    interest: Decimal
    cumulative: Decimal
    accrued: Decimal
    applied: bool
    allocations: List[TierAllocation] = field(default_factory=list)


@dataclass(frozen=True)
class DailyEntry:
    """Interest earned on one calendar day, split by tier allocation."""

    date: date
    label: str
    tier_interests: List[Decimal]
    interest: Decimal
    balance: Decimal


@dataclass(frozen=True)
class CalculationResult:
    """Aggregate outcome of one calculation."""

    total_interest: Decimal
    final_amount: Decimal
    accrued_interest: Decimal
    breakdown: List[MonthlyLedgerEntry]
    tier_results: List[TierResult]
    total_days: int
    daily: List[DailyEntry] = field(default_factory=list)
