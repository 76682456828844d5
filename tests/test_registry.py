import pytest

from discovery.controller import DiscoveryController
from discovery.errors import SessionNotFound
from discovery.registry import SessionRegistry
from tests.conftest import FakeSearch


def new_controller(feed="travelers"):
    return DiscoveryController(FakeSearch(), feed=feed)


def test_add_and_get():
    registry = SessionRegistry(max_sessions=5)
    controller = new_controller()
    session_id = registry.add(controller)

    assert session_id in registry
    assert registry.get(session_id) is controller


def test_unknown_session_raises():
    registry = SessionRegistry(max_sessions=5)
    with pytest.raises(SessionNotFound):
        registry.get("nope")


def test_least_recently_used_session_is_evicted():
    registry = SessionRegistry(max_sessions=2)
    first = registry.add(new_controller("hotels"))
    second = registry.add(new_controller("shopping"))

    # touching the first one makes the second the oldest
    registry.get(first)
    third = registry.add(new_controller("emergency"))

    assert len(registry) == 2
    assert first in registry
    assert third in registry
    assert second not in registry


def test_close():
    registry = SessionRegistry(max_sessions=2)
    session_id = registry.add(new_controller())

    assert registry.close(session_id) is True
    assert registry.close(session_id) is False
    assert len(registry) == 0
