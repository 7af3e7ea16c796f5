from __future__ import annotations

import pytest

from app.core.config import Settings
from app.services.signaling import SignalingHub


@pytest.fixture
def settings() -> Settings:
    return Settings(heartbeat_interval_seconds=30.0)


@pytest.fixture
def hub(settings: Settings) -> SignalingHub:
    return SignalingHub(settings)
