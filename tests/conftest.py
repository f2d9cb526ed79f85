from __future__ import annotations

import pytest

from fakes import FakeNetwork


@pytest.fixture
def network() -> FakeNetwork:
    return FakeNetwork()
