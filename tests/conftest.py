from __future__ import annotations

from datetime import datetime

import pytest


@pytest.fixture
def fixed_now():
    return datetime(2026, 3, 2, 12, 0, 0)
