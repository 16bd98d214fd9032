"""
Shared fixtures.

Every test gets a fresh in-memory tracker and a fixed "today" so goal
deadline checks don't depend on the wall clock.
"""

from datetime import date
from decimal import Decimal

import pytest

from fintrack.config import LedgerSettings
from fintrack.services import InMemoryPartitionStore
from fintrack.tracker import create_tracker


TODAY = date(2025, 6, 1)


@pytest.fixture
def tracker():
    return create_tracker(
        settings=LedgerSettings(),
        store_factory=lambda collection, model: InMemoryPartitionStore(name=collection),
        today=lambda: TODAY,
    )


@pytest.fixture
def owner(tracker):
    return tracker.register_user()


@pytest.fixture
def other_owner(tracker):
    return tracker.register_user()


@pytest.fixture
def salary(tracker):
    return tracker.categories.create_category("Salary", "income", "money")


@pytest.fixture
def food(tracker):
    return tracker.categories.create_category("Food", "expense", "fork")


@pytest.fixture
def rent(tracker):
    return tracker.categories.create_category("Rent", "expense")


@pytest.fixture
def checking(tracker, owner):
    return tracker.accounts.create_account(owner, "Checking", Decimal("1000.00"), "checking")


@pytest.fixture
def savings(tracker, owner):
    return tracker.accounts.create_account(owner, "Savings", Decimal("0"), "savings")
