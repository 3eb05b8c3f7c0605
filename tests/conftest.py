"""Shared fixtures for slackgenie tests."""

from __future__ import annotations

import pytest

from slackgenie.models.alerts import PodAlert
from tests.factories import TS, FakeClock


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sample_alert() -> PodAlert:
    return PodAlert(
        pod_name="p1",
        namespace="ns",
        container_name="app",
        image="registry.local/app:1.0",
        reason="CrashLoopBackOff",
        message="back-off 5m0s restarting failed container",
        restart_count=3,
        timestamp=TS,
    )
