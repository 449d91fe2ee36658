"""Tests for perch.history — in-memory navigation."""

from perch.history import MemoryHistory
from perch.location import Location


class TestMemoryHistory:
    def test_initial_location(self) -> None:
        history = MemoryHistory("/start")
        assert history.location.pathname == "/start"

    def test_push_and_back(self) -> None:
        history = MemoryHistory("/a")
        history.push("/b")
        assert history.location.pathname == "/b"
        assert history.location.action == "PUSH"
        history.back()
        assert history.location.pathname == "/a"

    def test_replace_keeps_depth(self) -> None:
        history = MemoryHistory("/a")
        history.replace("/b")
        assert len(history.entries) == 1
        assert history.location.action == "REPLACE"

    def test_listeners_see_next_location_first(self) -> None:
        history = MemoryHistory("/a")
        seen: list[tuple[str, str, str]] = []

        def listener(location: Location) -> None:
            seen.append((location.pathname, location.action, history.location.pathname))

        history.listen_before(listener)
        history.push("/b")
        history.back()
        assert seen == [("/b", "PUSH", "/a"), ("/a", "POP", "/b")]

    def test_unlisten(self) -> None:
        history = MemoryHistory()
        calls: list[Location] = []
        unlisten = history.listen_before(calls.append)
        assert history.listener_count == 1
        unlisten()
        unlisten()
        history.push("/x")
        assert calls == []
        assert history.listener_count == 0

    def test_unload_fires_unload_listeners(self) -> None:
        history = MemoryHistory("/a")
        calls: list[Location] = []
        history.listen_before_unload(calls.append)
        history.unload()
        assert [loc.pathname for loc in calls] == ["/a"]

    def test_replace_document_records_navigation(self) -> None:
        history = MemoryHistory("/a")
        history.replace_document("https://sso.test/login")
        assert history.document_navigations == ["https://sso.test/login"]
        assert history.location.pathname == "/a"

    def test_keys_are_unique(self) -> None:
        history = MemoryHistory()
        history.push("/a")
        history.push("/b")
        keys = [loc.key for loc in history.entries]
        assert len(set(keys)) == len(keys)
