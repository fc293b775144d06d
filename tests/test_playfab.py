"""Tests for the PlayFab read log client."""

import asyncio
import json

import httpx
import pytest

from gtfo_log_tracker.base import RemoteFetchError
from gtfo_log_tracker.playfab import (
    PLAYFAB_BASE_URL,
    fetch_read_ids,
    get_user_data,
    login,
    parse_ids,
    to_hex,
)
from gtfo_log_tracker.steam import AuthTicket, StaticTicketProvider

pytestmark = pytest.mark.anyio

LOGIN_URL = f"{PLAYFAB_BASE_URL}/LoginWithSteam"
USER_DATA_URL = f"{PLAYFAB_BASE_URL}/GetUserData"

ERROR_BODY = {
    "code": 400,
    "status": "BadRequest",
    "error": "InvalidSteamTicket",
    "errorCode": 1010,
    "errorDetails": None,
    "errorMessage": "Steam API AuthenticateUserTicket error response",
}


def login_ok() -> httpx.Response:
    return httpx.Response(200, json={"code": 200, "status": "OK", "data": {"SessionTicket": "S-1"}})


def user_data_ok(value: str) -> httpx.Response:
    return httpx.Response(
        200,
        json={
            "code": 200,
            "status": "OK",
            "data": {"Data": {"readlogs": {"Value": value, "Permission": "Private"}}},
        },
    )


def make_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def corrupt_gzip() -> httpx.Response:
    return httpx.Response(
        200, headers={"Content-Encoding": "gzip"}, stream=httpx.ByteStream(b"not gzip")
    )


class TestParseIds:

    def test_bracketed_list(self) -> None:
        assert set(parse_ids("[1,2,3]")) == {1, 2, 3}

    def test_bare_list(self) -> None:
        assert set(parse_ids("1, 2, 3")) == {1, 2, 3}

    def test_single_number(self) -> None:
        assert parse_ids("1") == [1]

    def test_single_bracketed(self) -> None:
        assert parse_ids("[12345]") == [12345]

    def test_empty(self) -> None:
        assert parse_ids("") == []
        assert parse_ids("[]") == []

    def test_invalid_numbers_dropped(self) -> None:
        assert parse_ids("12345, abc") == [12345]

    def test_whitespace(self) -> None:
        assert parse_ids("\r\n  12345,\r\n  54321\r\n") == [12345, 54321]


def test_to_hex_is_uppercase() -> None:
    assert to_hex(b"\x01\xab\xff") == "01ABFF"


class TestLogin:

    async def test_login_success(self) -> None:
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return login_ok()

        async with make_client(handler) as client:
            ticket = await login(client, b"\x0a\x0b")

        assert ticket == "S-1"
        assert str(requests[0].url) == LOGIN_URL
        body = json.loads(requests[0].content)
        assert body == {
            "TitleId": "8f9",
            "CreateAccount": False,
            "SteamTicket": "0A0B",
            "TicketIsServiceSpecific": False,
        }

    async def test_login_api_error(self) -> None:
        async with make_client(lambda r: httpx.Response(400, json=ERROR_BODY)) as client:
            with pytest.raises(RemoteFetchError) as exc_info:
                await login(client, b"\x00")

        message = str(exc_info.value)
        assert message.startswith("HTTP: 400 - BadRequest")
        assert "error_code: 1010" in message
        assert "InvalidSteamTicket" in message

    async def test_login_non_json_body(self) -> None:
        async with make_client(lambda r: httpx.Response(502, text="Bad Gateway")) as client:
            with pytest.raises(RemoteFetchError) as exc_info:
                await login(client, b"\x00")
        assert "502" in str(exc_info.value)


class TestGetUserData:

    async def test_sends_session_ticket_header(self) -> None:
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return user_data_ok("[1,2,3]")

        async with make_client(handler) as client:
            data = await get_user_data(client, "S-1")

        assert data.read_logs.value == [1, 2, 3]
        assert str(requests[0].url) == USER_DATA_URL
        assert requests[0].headers["X-Authorization"] == "S-1"
        assert requests[0].headers["Content-Type"] == "application/json"

    async def test_missing_read_logs(self) -> None:
        response = httpx.Response(200, json={"code": 200, "data": {"Data": {}}})
        async with make_client(lambda r: response) as client:
            with pytest.raises(RemoteFetchError):
                await get_user_data(client, "S-1")


class TestRetries:

    async def test_transport_error_retried(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) == 1:
                raise httpx.ConnectError("connection refused", request=request)
            return login_ok()

        async with make_client(handler) as client:
            assert await login(client, b"\x00", retries=1) == "S-1"
        assert len(calls) == 2

    async def test_timeout_exhausts_retries(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            raise httpx.ReadTimeout("timed out", request=request)

        async with make_client(handler) as client:
            with pytest.raises(RemoteFetchError) as exc_info:
                await login(client, b"\x00", retries=2)
        assert len(calls) == 3
        assert "Failed to reach PlayFab" in str(exc_info.value)

    async def test_slow_response_times_out(self) -> None:
        calls = []

        async def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            await asyncio.sleep(5)
            return login_ok()

        async with make_client(handler) as client:
            with pytest.raises(RemoteFetchError) as exc_info:
                await login(client, b"\x00", timeout=0.05, retries=1)
        assert len(calls) == 2
        assert "Failed to reach PlayFab" in str(exc_info.value)

    async def test_undecodable_body_not_retried(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return corrupt_gzip()

        async with make_client(handler) as client:
            with pytest.raises(RemoteFetchError) as exc_info:
                await login(client, b"\x00", retries=2)
        assert len(calls) == 1
        assert "Request to PlayFab" in str(exc_info.value)

    async def test_api_error_not_retried(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(400, json=ERROR_BODY)

        async with make_client(handler) as client:
            with pytest.raises(RemoteFetchError):
                await login(client, b"\x00", retries=3)
        assert len(calls) == 1


class RecordingProvider:
    def __init__(self) -> None:
        self.acquired: list[AuthTicket] = []
        self.cancelled: list[AuthTicket] = []

    def acquire(self) -> AuthTicket:
        ticket = AuthTicket(handle=len(self.acquired) + 1, data=b"\xde\xad")
        self.acquired.append(ticket)
        return ticket

    def cancel(self, ticket: AuthTicket) -> None:
        self.cancelled.append(ticket)


class TestFetchReadIds:

    async def test_success(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("LoginWithSteam"):
                return login_ok()
            return user_data_ok("1, 2, 3")

        provider = RecordingProvider()
        async with make_client(handler) as client:
            ids = await fetch_read_ids(provider, client=client)

        assert ids == {1, 2, 3}
        assert provider.cancelled == provider.acquired

    async def test_ticket_cancelled_when_login_fails(self) -> None:
        provider = RecordingProvider()
        async with make_client(lambda r: httpx.Response(400, json=ERROR_BODY)) as client:
            with pytest.raises(RemoteFetchError):
                await fetch_read_ids(provider, client=client)

        assert len(provider.cancelled) == 1
        assert provider.cancelled == provider.acquired

    async def test_ticket_cancelled_when_user_data_fails(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("LoginWithSteam"):
                return login_ok()
            raise httpx.ConnectError("reset", request=request)

        provider = RecordingProvider()
        async with make_client(handler) as client:
            with pytest.raises(RemoteFetchError):
                await fetch_read_ids(provider, client=client, retries=0)

        assert len(provider.cancelled) == 1

    async def test_ticket_unavailable(self) -> None:
        provider = StaticTicketProvider(None)
        with pytest.raises(RemoteFetchError) as exc_info:
            await fetch_read_ids(provider)
        assert "Failed to init Steam" in str(exc_info.value)
        assert provider.cancelled == []

    async def test_provider_exception_wrapped(self) -> None:
        class BrokenProvider(RecordingProvider):
            def acquire(self) -> AuthTicket:
                raise OSError("steam_api not loaded")

        with pytest.raises(RemoteFetchError) as exc_info:
            await fetch_read_ids(BrokenProvider())
        assert "steam_api not loaded" in str(exc_info.value)

    async def test_undecodable_body_wrapped(self) -> None:
        provider = StaticTicketProvider("0A0B")
        async with make_client(lambda r: corrupt_gzip()) as client:
            with pytest.raises(RemoteFetchError):
                await fetch_read_ids(provider, client=client)
        assert provider.cancelled == [1]
