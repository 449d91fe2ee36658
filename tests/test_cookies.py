"""Tests for perch.http.cookies — parsing, SetCookie and isomorphic access."""

from datetime import UTC, datetime, timedelta

import httpx
import pytest

from perch.errors import CookieConfigurationError
from perch.http.cookies import CookieOptions, SetCookie, get_cookie, parse_cookies, remove_cookie, set_cookie
from perch.testing import client_context, server_context


class TestParseCookies:
    def test_empty_string(self) -> None:
        assert parse_cookies("") == {}

    def test_multiple_cookies(self) -> None:
        result = parse_cookies("session=abc; theme=dark; lang=en")
        assert result == {"session": "abc", "theme": "dark", "lang": "en"}

    def test_whitespace_handling(self) -> None:
        assert parse_cookies("  session = abc ;  theme = dark  ") == {"session": "abc", "theme": "dark"}

    def test_value_with_equals(self) -> None:
        assert parse_cookies("token=abc=def=") == {"token": "abc=def="}

    def test_no_equals_ignored(self) -> None:
        assert parse_cookies("session=abc; broken; theme=dark") == {"session": "abc", "theme": "dark"}


class TestSetCookie:
    def test_minimal(self) -> None:
        header = SetCookie(name="session", value="abc").to_header_value()
        assert header.startswith("session=abc")
        assert "Path=/" in header
        assert "HttpOnly" in header
        assert "SameSite=lax" in header

    def test_expires_is_http_date(self) -> None:
        cookie = SetCookie(name="a", value="1", expires=datetime(2030, 1, 2, 3, 4, 5, tzinfo=UTC))
        assert "Expires=Wed, 02 Jan 2030 03:04:05 GMT" in cookie.to_header_value()

    def test_from_options(self) -> None:
        options = CookieOptions(max_age=60, domain=".example.com", secure=True)
        header = SetCookie.from_options("a", "1", options).to_header_value()
        assert "Max-Age=60" in header
        assert "Domain=.example.com" in header
        assert "Secure" in header
        assert "HttpOnly" not in header


class TestValidation:
    def test_non_datetime_expires_rejected(self) -> None:
        context = server_context()
        with pytest.raises(CookieConfigurationError, match="datetime"):
            set_cookie(context, "a", "1", CookieOptions(expires="tomorrow"))  # type: ignore[arg-type]
        assert context.response is not None
        assert context.response.cookies == []


class TestServerCookies:
    def test_read_from_request(self) -> None:
        context = server_context(headers={"Cookie": "token=xyz; theme=dark"})
        assert get_cookie(context, "token") == "xyz"
        assert get_cookie(context, "missing") is None

    def test_set_writes_set_cookie_header(self) -> None:
        context = server_context()
        set_cookie(context, "token", "abc", CookieOptions(path="/app"))
        assert context.response is not None
        values = context.response.headers.get_list("Set-Cookie")
        assert values == ["token=abc; Path=/app; SameSite=lax"]

    def test_remove_expires_cookie(self) -> None:
        context = server_context()
        remove_cookie(context, "token")
        assert context.response is not None
        (value,) = context.response.headers.get_list("Set-Cookie")
        assert value.startswith("token=;")
        assert "Max-Age=0" in value


class TestClientCookies:
    async def test_set_get_remove(self) -> None:
        async with httpx.AsyncClient() as client:
            context, _ = client_context(http_client=client)
            set_cookie(context, "token", "abc")
            assert get_cookie(context, "token") == "abc"
            remove_cookie(context, "token")
            assert get_cookie(context, "token") is None

    async def test_past_expiry_deletes(self) -> None:
        async with httpx.AsyncClient() as client:
            context, _ = client_context(http_client=client)
            set_cookie(context, "token", "abc")
            past = datetime.now(UTC) - timedelta(days=1)
            set_cookie(context, "token", "abc", CookieOptions(expires=past))
            assert get_cookie(context, "token") is None

    def test_without_client_reads_nothing(self) -> None:
        context, _ = client_context()
        set_cookie(context, "token", "abc")
        assert get_cookie(context, "token") is None
