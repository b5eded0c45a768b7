from __future__ import annotations

from datetime import datetime

import pytest

from tests.fakes import FakeClock


@pytest.fixture
def fixed_now() -> datetime:
    # A Wednesday afternoon.
    return datetime(2026, 3, 4, 16, 0, 0)


@pytest.fixture
def clock(fixed_now) -> FakeClock:
    return FakeClock(fixed_now)
