from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    import httpx


@pytest.fixture
def recorded_requests() -> list[httpx.Request]:
    return []
