import os
from decimal import Decimal

import pytest

# The web app builds its store at import time; keep it off the filesystem.
os.environ.setdefault("HISTORY_DATABASE_URL", "sqlite://")

from deposit_calc.data_models import InterestTier


@pytest.fixture
def two_tiers():
    """2% up to one million, 0.5% above."""
    return [
        InterestTier(Decimal("1.00"), Decimal("1000000.00"), Decimal("2.00")),
        InterestTier(Decimal("1000000.01"), None, Decimal("0.50")),
    ]


@pytest.fixture
def two_tier_dicts():
    return [
        {"min": "1.00", "max": "1000000.00", "rate": "2.00"},
        {"min": "1000000.01", "max": "", "rate": "0.50"},
    ]
