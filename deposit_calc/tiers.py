"""Interest tier parsing, validation and splitting.

A deposit earns interest band by band: the first part of the balance earns
the first tier's rate, whatever does not fit continues into the next tier,
and so on. ``split_amount_by_tiers`` is deliberately lenient so it can run
on half-edited input; ``validate_tiers`` is the strict gate the engine puts
in front of every calculation.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Iterable, List, Mapping, Sequence, Union

from .data_models import InterestTier, TierAllocation
from .errors import InvalidTierError
from .utils import optional_decimal

TierLike = Union[InterestTier, Mapping[str, Any]]

DEFAULT_TIERS: List[InterestTier] = [
    InterestTier(Decimal("1.00"), Decimal("1000000.00"), Decimal("2.00")),
    InterestTier(Decimal("1000000.01"), Decimal("2000000.00"), Decimal("1.50")),
    InterestTier(Decimal("2000000.01"), None, Decimal("0.50")),
]


def parse_tier(value: TierLike) -> InterestTier:
    """Build an ``InterestTier`` from a mapping with ``min``/``max``/``rate``.

    Empty or non-numeric fields become ``None`` and are left for
    ``validate_tiers`` to reject. Anything that is not a mapping raises
    ``InvalidTierError``.
    """
    if isinstance(value, InterestTier):
        return value
    if not isinstance(value, Mapping):
        raise InvalidTierError(f"Invalid tier: {value!r}")
    return InterestTier(
        min=optional_decimal(value.get("min")),
        max=optional_decimal(value.get("max")),
        rate=optional_decimal(value.get("rate")),
    )


def parse_tiers(values: Iterable[TierLike]) -> List[InterestTier]:
    if isinstance(values, (str, bytes, Mapping)):
        raise InvalidTierError("Tiers must be a list of tier objects")
    try:
        items = list(values)
    except TypeError as exc:
        raise InvalidTierError("Tiers must be a list of tier objects") from exc
    return [parse_tier(v) for v in items]


def _sort_key(tier: InterestTier) -> Decimal:
    return tier.min if tier.min is not None else Decimal(0)


def validate_tiers(tiers: Sequence[InterestTier]) -> List[InterestTier]:
    """Check a tier set and return it sorted by ``min``.

    Raises
    ------
    InvalidTierError
        If the set is empty, a tier misses ``min`` or ``rate``, a bound or
        rate is out of range, or two bands overlap. Gaps between bands are
        allowed.
    """
    if not tiers:
        raise InvalidTierError("At least one interest tier is required")
    for index, tier in enumerate(tiers, start=1):
        if tier.min is None:
            raise InvalidTierError(f"Tier {index}: minimum amount is missing or not a number")
        if tier.rate is None:
            raise InvalidTierError(f"Tier {index}: interest rate is missing or not a number")
        if tier.min < 0:
            raise InvalidTierError(f"Tier {index}: minimum amount must be >= 0")
        if tier.max is not None and tier.max <= tier.min:
            raise InvalidTierError(f"Tier {index}: maximum must be greater than minimum")
        if tier.rate < 0 or tier.rate > 100:
            raise InvalidTierError(f"Tier {index}: interest rate must be between 0 and 100")

    ordered = sorted(tiers, key=_sort_key)
    for previous, current in zip(ordered, ordered[1:]):
        if previous.max is None:
            raise InvalidTierError(
                f"Open-ended tier starting at {previous.min} must be the last tier"
            )
        if current.min <= previous.max:
            raise InvalidTierError(
                f"Tier starting at {current.min} overlaps the tier ending at {previous.max}"
            )
    return ordered


def split_amount_by_tiers(amount: Decimal, tiers: Iterable[InterestTier]) -> List[TierAllocation]:
    """Partition ``amount`` across ``tiers``.

    Tiers are walked in ascending ``min`` order. A tier with a ``max`` can
    hold up to ``max`` minus what earlier tiers already took; an open tier
    takes the rest. Tiers the amount does not reach, and tiers with a
    missing ``min`` or ``rate``, receive nothing. Only tiers with a
    positive allocation are returned.
    """
    result: List[TierAllocation] = []
    if amount is None or amount <= 0:
        return result
    usable = [t for t in tiers if t.min is not None and t.rate is not None]
    allocated = Decimal(0)

    for tier in sorted(usable, key=_sort_key):
        if allocated >= amount:
            break
        if amount < tier.min:
            continue
        remaining = amount - allocated
        if tier.max is not None:
            tier_amount = min(tier.max - allocated, remaining)
        else:
            tier_amount = remaining
        if tier_amount > 0:
            result.append(TierAllocation(tier.min, tier.max, tier.rate, tier_amount))
            allocated += tier_amount
    return result
