from __future__ import annotations

import pytest

from compwise.config import RetryPolicy


@pytest.fixture
def fast_retry() -> RetryPolicy:
    return RetryPolicy(max_attempts=3, base_delay_seconds=0.0, attempt_timeout_seconds=1.0)


@pytest.fixture
def all_suffixes() -> tuple[str, ...]:
    return (
        "1. Thirty Days.csv",
        "2. Three Months.csv",
        "3. Six Months.csv",
        "4. More Than Six Months.csv",
        "5. All.csv",
    )
