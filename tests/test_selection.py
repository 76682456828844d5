from discovery.selection import SelectionBridge


def test_listeners_are_notified_on_change_only():
    bridge = SelectionBridge()
    seen = []
    bridge.subscribe(seen.append)

    bridge.select("a")
    bridge.select("a")
    bridge.select(None)

    assert seen == ["a", None]
    assert bridge.selected_id is None


def test_unsubscribe():
    bridge = SelectionBridge()
    seen = []
    unsubscribe = bridge.subscribe(seen.append)
    unsubscribe()
    unsubscribe()

    bridge.select("a")
    assert seen == []


def test_retain_clears_selection_that_left_the_list():
    bridge = SelectionBridge()
    seen = []
    bridge.subscribe(seen.append)
    bridge.select("a")

    bridge.retain(["a", "b"])
    assert bridge.selected_id == "a"

    bridge.retain(["b"])
    assert bridge.selected_id is None
    assert seen == ["a", None]
