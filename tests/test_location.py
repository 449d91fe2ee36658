"""Tests for perch.location — parsing and key-free serialization."""

from perch.location import Location


class TestFromUrl:
    def test_parts(self) -> None:
        location = Location.from_url("/items?page=2#top", action="PUSH", key="7")
        assert location.pathname == "/items"
        assert location.search == "?page=2"
        assert location.hash == "#top"
        assert location.query == {"page": "2"}
        assert location.action == "PUSH"
        assert location.key == "7"

    def test_strips_basename(self) -> None:
        location = Location.from_url("/shop/cart", basename="/shop")
        assert location.pathname == "/cart"
        assert location.basename == "/shop"

    def test_basename_root(self) -> None:
        assert Location.from_url("/shop", basename="/shop").pathname == "/"

    def test_raw(self) -> None:
        assert Location.from_url("/a?b=1#c").raw == "/a?b=1#c"


class TestKey:
    def test_without_key(self) -> None:
        location = Location.from_url("/a", key="3")
        stripped = location.without_key()
        assert stripped.key is None
        assert stripped.pathname == "/a"
        assert location.key == "3"

    def test_without_key_is_identity_when_absent(self) -> None:
        location = Location.from_url("/a")
        assert location.without_key() is location

    def test_to_dict_never_includes_key(self) -> None:
        data = Location.from_url("/a?x=1", key="9").to_dict()
        assert "key" not in data
        assert data["pathname"] == "/a"
        assert data["raw"] == "/a?x=1"
        assert data["query"] == {"x": "1"}
