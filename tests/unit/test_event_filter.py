"""Tests for event admission."""

from __future__ import annotations

from slackgenie.controller.filter import (
    admit_create,
    admit_delete,
    admit_generic,
    admit_update,
    should_reconcile,
)
from slackgenie.models.events import PodEvent, PodEventType
from tests.factories import crashloop_pod, make_pod


class TestCreate:
    def test_failing_pod_admitted(self) -> None:
        assert admit_create(PodEvent(PodEventType.CREATE, crashloop_pod())) is True

    def test_healthy_pod_dropped(self) -> None:
        assert admit_create(PodEvent(PodEventType.CREATE, make_pod())) is False


class TestUpdate:
    def test_changed_version_and_failing(self) -> None:
        event = PodEvent(PodEventType.UPDATE, crashloop_pod(resource_version="2"), old_pod=make_pod(resource_version="1"))
        assert admit_update(event) is True

    def test_same_version_dropped(self) -> None:
        event = PodEvent(PodEventType.UPDATE, crashloop_pod(resource_version="7"), old_pod=crashloop_pod(resource_version="7"))
        assert admit_update(event) is False

    def test_changed_version_but_healthy(self) -> None:
        event = PodEvent(PodEventType.UPDATE, make_pod(resource_version="3"), old_pod=crashloop_pod(resource_version="2"))
        assert admit_update(event) is False

    def test_unknown_previous_state(self) -> None:
        assert admit_update(PodEvent(PodEventType.UPDATE, crashloop_pod())) is True


class TestDeleteAndGeneric:
    def test_delete_always_admitted(self) -> None:
        assert admit_delete(PodEvent(PodEventType.DELETE, make_pod())) is True
        assert admit_delete(PodEvent(PodEventType.DELETE, crashloop_pod())) is True

    def test_generic_never_admitted(self) -> None:
        assert admit_generic(PodEvent(PodEventType.GENERIC, crashloop_pod())) is False


def test_should_reconcile_dispatches_on_type() -> None:
    failing = crashloop_pod()
    healthy = make_pod()
    assert should_reconcile(PodEvent(PodEventType.CREATE, failing)) is True
    assert should_reconcile(PodEvent(PodEventType.CREATE, healthy)) is False
    assert should_reconcile(PodEvent(PodEventType.DELETE, healthy)) is True
    assert should_reconcile(PodEvent(PodEventType.GENERIC, failing)) is False
