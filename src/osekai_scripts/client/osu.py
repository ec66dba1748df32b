"""osu! API v2 and website client.

Authenticates with the client-credentials grant and keeps the token until
shortly before it expires. All requests go through a shared rate limiter;
the collector itself never throttles.
"""

from __future__ import annotations

import asyncio
import json
import time
from typing import Any

import httpx
import structlog
from bs4 import BeautifulSoup
from pydantic import ValidationError

from osekai_scripts import __version__
from osekai_scripts.client.ratelimit import RateLimiter
from osekai_scripts.config import Settings
from osekai_scripts.errors import ApiError, ScrapeError, TransientRequestError, UserNotFound
from osekai_scripts.models.medal import MedalCatalogEntry
from osekai_scripts.models.user import ApiUser

logger = structlog.get_logger(__name__)

USER_AGENT = f"osekai-scripts/{__version__}"
TOKEN_REFRESH_MARGIN = 60.0  # seconds


class OsuClient:
    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._settings = settings
        self._client = httpx.AsyncClient(
            base_url=settings.osu_base_url,
            http2=True,
            timeout=settings.request_timeout_seconds,
            headers={"User-Agent": USER_AGENT},
            transport=transport,
        )
        self._limiter = RateLimiter(settings.osu_requests_per_minute, 60.0)
        self._token: str | None = None
        self._token_expires_at = 0.0
        self._token_lock = asyncio.Lock()

    async def close(self) -> None:
        await self._client.aclose()

    async def fetch_user(self, user_id: int, mode: str) -> ApiUser:
        """Request a user's profile for one game mode.

        Raises UserNotFound for restricted users and TransientRequestError
        when the connection was dropped mid-request.
        """
        operation = "fetch_user"
        try:
            response = await self._request(
                "GET",
                f"/api/v2/users/{user_id}/{mode}",
                operation,
                params={"key": "id"},
                user_id=user_id,
                mode=mode,
            )
        except ApiError as e:
            if e.status == 404:
                raise UserNotFound(operation, "user not found", status=404, user_id=user_id, mode=mode) from e
            raise

        try:
            return ApiUser.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise ApiError(operation, f"invalid user payload: {e}", user_id=user_id, mode=mode) from e

    async def fetch_leaderboard_page(self, mode: str, page: int) -> list[int]:
        """User ids on one page (50 users) of a mode's performance ranking."""
        operation = "fetch_leaderboard_page"
        response = await self._request(
            "GET",
            f"/api/v2/rankings/{mode}/performance",
            operation,
            params={"cursor[page]": page},
            mode=mode,
            page=page,
        )

        try:
            return [int(entry["user"]["id"]) for entry in response.json()["ranking"]]
        except (ValueError, KeyError, TypeError) as e:
            raise ApiError(operation, f"invalid ranking payload: {e}", mode=mode, page=page) from e

    async def fetch_medal_catalog(self) -> list[MedalCatalogEntry]:
        """Scrape the full medal list from a public profile page.

        The page embeds its initial state as JSON in a ``data-initial-data``
        attribute, which lists every medal under ``achievements``.
        """
        operation = "fetch_medal_catalog"
        user_id = self._settings.medal_page_user_id
        response = await self._request("GET", f"/users/{user_id}", operation, auth=False, user_id=user_id)

        soup = BeautifulSoup(response.text, "html.parser")
        element = soup.find(attrs={"data-initial-data": True})
        if element is None:
            raise ScrapeError(operation, "missing element with attribute `data-initial-data`", user_id=user_id)

        try:
            data = json.loads(element["data-initial-data"])
            return [MedalCatalogEntry.model_validate(medal) for medal in data["achievements"]]
        except (ValueError, KeyError, TypeError, ValidationError) as e:
            raise ScrapeError(operation, f"failed to decode medal catalog: {e}", user_id=user_id) from e

    async def _access_token(self) -> str:
        async with self._token_lock:
            if self._token is None or time.monotonic() >= self._token_expires_at:
                await self._authorize()
            return self._token  # type: ignore[return-value]

    async def _authorize(self) -> None:
        operation = "authorize"
        try:
            response = await self._client.post(
                "/oauth/token",
                data={
                    "client_id": self._settings.osu_client_id,
                    "client_secret": self._settings.osu_client_secret,
                    "grant_type": "client_credentials",
                    "scope": "public",
                },
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            raise ApiError(operation, "token request rejected", status=e.response.status_code) from e
        except (httpx.HTTPError, ValueError) as e:
            raise ApiError(operation, f"token request failed: {e}") from e

        self._token = payload["access_token"]
        self._token_expires_at = time.monotonic() + float(payload.get("expires_in", 86400)) - TOKEN_REFRESH_MARGIN
        logger.debug("osu_token_refreshed", expires_in=payload.get("expires_in"))

    async def _request(
        self,
        method: str,
        url: str,
        operation: str,
        *,
        params: dict[str, Any] | None = None,
        auth: bool = True,
        **context: Any,
    ) -> httpx.Response:
        headers = {}
        if auth:
            headers["Authorization"] = f"Bearer {await self._access_token()}"

        await self._limiter.acquire()

        try:
            response = await self._client.request(method, url, params=params, headers=headers)
        except httpx.RemoteProtocolError as e:
            raise TransientRequestError(operation, str(e), **context) from e
        except httpx.HTTPError as e:
            raise ApiError(operation, f"request failed: {e}", **context) from e

        if response.is_error:
            raise ApiError(
                operation,
                f"failed with status code {response.status_code} when requesting {url}",
                status=response.status_code,
                **context,
            )

        return response
