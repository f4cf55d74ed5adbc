"""Root conftest for all tests - shared dates and portfolio lookups."""

from datetime import date
from decimal import Decimal

import pytest


@pytest.fixture
def trade_date() -> date:
    """Standard trade date for tests."""
    return date(2024, 1, 15)


@pytest.fixture
def as_of() -> date:
    """Fixed 'today' so holding periods are deterministic."""
    return date(2024, 3, 31)


@pytest.fixture
def flat_portfolio():
    """Portfolio size of 100,000 in every month."""

    def resolver(month: str, year: int) -> Decimal:
        return Decimal("100000")

    return resolver


@pytest.fixture
def monthly_portfolio():
    """Portfolio that grows from 100,000 in January to 200,000 in March 2024."""
    sizes = {("Jan", 2024): Decimal("100000"), ("Feb", 2024): Decimal("150000"), ("Mar", 2024): Decimal("200000")}

    def resolver(month: str, year: int) -> Decimal:
        return sizes.get((month, year), Decimal("0"))

    return resolver
