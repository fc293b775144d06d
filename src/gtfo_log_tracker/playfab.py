"""
PlayFab client for the player's persisted read logs.

GTFO stores the ids of every story log a player has read in PlayFab user
data. Fetching them takes two round trips:

1. ``LoginWithSteam`` exchanges a Steam auth session ticket (hex encoded)
   for a PlayFab session ticket.
2. ``GetUserData`` returns the user data, where ``readlogs`` holds the ids
   as a string such as ``"[1,2,3]"``.

Every failure surfaces as ``RemoteFetchError``; callers are expected to
fall back to the local session logs.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .base import RemoteFetchError
from .extraction import parse_id_list
from .steam import AuthTicketProvider

logger = logging.getLogger(__name__)

GTFO_TITLE_ID = "8f9"
PLAYFAB_BASE_URL = f"https://{GTFO_TITLE_ID}.playfabapi.com/Client"

DEFAULT_TIMEOUT = 10.0
DEFAULT_RETRIES = 2

ModelT = TypeVar("ModelT", bound=BaseModel)


# ---------------------------------------------------------------------------
# Payloads
# ---------------------------------------------------------------------------


class ApiErrorDetails(BaseModel):
    """Error envelope returned by PlayFab instead of ``data``."""

    model_config = ConfigDict(populate_by_name=True)

    code: int
    status: str = ""
    error: str = ""
    error_code: Any = Field(default="", alias="errorCode")
    error_details: Any = Field(default="", alias="errorDetails")
    error_message: str = Field(default="", alias="errorMessage")

    def __str__(self) -> str:
        return (
            f"HTTP: {self.code} - {self.status} {{ error: {self.error}, "
            f"error_code: {self.error_code}, error_details: {self.error_details}, "
            f"error_message: {self.error_message} }}"
        )


class LoginResponse(BaseModel):
    session_ticket: str = Field(alias="SessionTicket")


class ReadLogs(BaseModel):
    value: list[int] = Field(default_factory=list, alias="Value")

    @field_validator("value", mode="before")
    @classmethod
    def _parse_id_string(cls, value: Any) -> Any:
        if isinstance(value, str):
            return parse_ids(value)
        return value


class UserData(BaseModel):
    read_logs: ReadLogs = Field(alias="readlogs")


class UserDataResponse(BaseModel):
    data: UserData = Field(alias="Data")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def parse_ids(ids_str: str) -> list[int]:
    """
    Parse PlayFab's read log id string.

    Accepts ``"[1,2,3]"``, ``"1, 2, 3"`` and ``"1"``; ``""`` and ``"[]"``
    give an empty list. Tokens that are not unsigned integers are dropped.
    """
    ids_str = ids_str.strip()
    if ids_str.startswith("[") and ids_str.endswith("]"):
        ids_str = ids_str[1:-1]
    return parse_id_list(ids_str)


def to_hex(data: bytes) -> str:
    """Uppercase hex encoding expected by ``LoginWithSteam``."""
    return data.hex().upper()


def _decode(response: httpx.Response, model: type[ModelT]) -> ModelT:
    """Unwrap a PlayFab response into ``model`` or raise its error."""
    try:
        body = response.json()
    except ValueError:
        raise RemoteFetchError(
            f"PlayFab returned HTTP {response.status_code} with a non-JSON body"
        ) from None

    if isinstance(body, dict) and isinstance(body.get("data"), dict):
        try:
            return model.model_validate(body["data"])
        except ValidationError as e:
            raise RemoteFetchError(f"Unexpected PlayFab response: {e}") from None

    try:
        details = ApiErrorDetails.model_validate(body)
    except ValidationError:
        raise RemoteFetchError(
            f"PlayFab returned HTTP {response.status_code} without data or error details"
        ) from None
    raise RemoteFetchError(str(details))


async def _post(
    client: httpx.AsyncClient,
    url: str,
    *,
    timeout: float,
    retries: int,
    **kwargs: Any,
) -> httpx.Response:
    """POST with a bounded timeout, retrying transport failures.

    Any other httpx error (an undecodable body, too many redirects) is
    reported at once as ``RemoteFetchError``.
    """
    attempt = 0
    while True:
        try:
            return await asyncio.wait_for(client.post(url, **kwargs), timeout)
        except (httpx.TransportError, asyncio.TimeoutError) as e:
            reason = str(e) or type(e).__name__
            if attempt >= retries:
                raise RemoteFetchError(f"Failed to reach PlayFab at {url}: {reason}") from None
            attempt += 1
            logger.debug("Retrying %s (%d/%d) after: %s", url, attempt, retries, reason)
        except httpx.HTTPError as e:
            reason = str(e) or type(e).__name__
            raise RemoteFetchError(f"Request to PlayFab at {url} failed: {reason}") from None


# ---------------------------------------------------------------------------
# API calls
# ---------------------------------------------------------------------------


async def login(
    client: httpx.AsyncClient,
    steam_ticket: bytes,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    retries: int = DEFAULT_RETRIES,
) -> str:
    """
    Exchange a Steam auth ticket for a PlayFab session ticket.

    Returns:
        The session ticket.

    Raises:
        RemoteFetchError: On transport failure or a PlayFab error response.
    """
    body = {
        "TitleId": GTFO_TITLE_ID,
        "CreateAccount": False,
        "SteamTicket": to_hex(steam_ticket),
        "TicketIsServiceSpecific": False,
    }
    response = await _post(
        client, f"{PLAYFAB_BASE_URL}/LoginWithSteam", json=body, timeout=timeout, retries=retries
    )
    return _decode(response, LoginResponse).session_ticket


async def get_user_data(
    client: httpx.AsyncClient,
    session_ticket: str,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    retries: int = DEFAULT_RETRIES,
) -> UserData:
    """
    Fetch the player's user data using a session ticket from ``login``.

    Raises:
        RemoteFetchError: On transport failure or a PlayFab error response.
    """
    response = await _post(
        client,
        f"{PLAYFAB_BASE_URL}/GetUserData",
        json={},
        headers={"X-Authorization": session_ticket},
        timeout=timeout,
        retries=retries,
    )
    return _decode(response, UserDataResponse).data


async def fetch_read_ids(
    provider: AuthTicketProvider,
    *,
    client: httpx.AsyncClient | None = None,
    timeout: float = DEFAULT_TIMEOUT,
    retries: int = DEFAULT_RETRIES,
) -> set[int]:
    """
    Fetch the ids of every story log the player has read from PlayFab.

    The Steam ticket acquired from ``provider`` is cancelled exactly once,
    whether the fetch succeeds or fails.

    Args:
        provider: Source of the Steam auth session ticket.
        client: HTTP client to use; a new one is created (and closed) if None.
        timeout: Seconds allowed for each round trip.
        retries: Extra attempts per round trip after a transport failure.

    Returns:
        Set of read log ids.

    Raises:
        RemoteFetchError: If any step fails.
    """
    logger.debug("Getting steam auth session ticket")
    try:
        ticket = provider.acquire()
    except RemoteFetchError:
        raise
    except Exception as e:
        raise RemoteFetchError(f"Failed to init Steam - {e}") from e

    try:
        owns_client = client is None
        http = client if client is not None else httpx.AsyncClient(timeout=timeout)
        try:
            session_ticket = await login(http, ticket.data, timeout=timeout, retries=retries)
            user_data = await get_user_data(http, session_ticket, timeout=timeout, retries=retries)
        finally:
            if owns_client:
                await http.aclose()
    finally:
        logger.debug("Cancelling steam auth session ticket")
        provider.cancel(ticket)

    ids = set(user_data.read_logs.value)
    logger.info("%d Read logs: %s", len(ids), sorted(ids))
    return ids
