"""
Shared pytest fixtures for booking pricing tests.

Provides the reference pricing snapshot (per-occurrence and flat-fee stop
pricing variants) and a sample booking draft.  See ``tests/factories.py``
for the reference data itself.
"""

import pytest

from booking_pricing.models import BookingDraft, PricingSnapshot
from booking_pricing.services.editTracking import EditTracker
from tests.factories import make_draft, make_snapshot


@pytest.fixture
def snapshot() -> PricingSnapshot:
    """Reference snapshot; additional stops are charged per occurrence."""
    return make_snapshot()


@pytest.fixture
def flat_snapshot() -> PricingSnapshot:
    """Reference snapshot with a flat additional-stops fee."""
    return make_snapshot(per_occurrence=False)


@pytest.fixture
def draft() -> BookingDraft:
    """Sedan airport transfer for customer 42, 14:00 pickup."""
    return make_draft()


@pytest.fixture
def tracker() -> EditTracker:
    return EditTracker()
