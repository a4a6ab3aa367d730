from shadowtalk.websocket.registry import ConnectionRegistry


def test_register_and_lookup():
    registry = ConnectionRegistry()
    registry.register(1, "s1")
    assert registry.lookup(1) == "s1"
    assert 1 in registry
    assert len(registry) == 1


def test_lookup_unknown_user_is_none():
    assert ConnectionRegistry().lookup(42) is None


def test_last_registration_wins():
    registry = ConnectionRegistry()
    registry.register(1, "tab-a")
    registry.register(1, "tab-b")
    assert registry.lookup(1) == "tab-b"
    assert len(registry) == 1


def test_register_same_session_twice_is_idempotent():
    registry = ConnectionRegistry()
    registry.register(1, "s1")
    registry.register(1, "s1")
    assert registry.lookup(1) == "s1"


def test_unregister_removes_only_entries_of_that_session():
    registry = ConnectionRegistry()
    registry.register(1, "s1")
    registry.register(2, "s2")
    assert registry.unregister("s1") == [1]
    assert registry.lookup(1) is None
    assert registry.lookup(2) == "s2"


def test_unregister_stale_session_keeps_newer_registration():
    """Closing an old tab must not drop the entry its replacement owns."""
    registry = ConnectionRegistry()
    registry.register(1, "old")
    registry.register(1, "new")
    assert registry.unregister("old") == []
    assert registry.lookup(1) == "new"


def test_unregister_unknown_session():
    assert ConnectionRegistry().unregister("nope") == []
