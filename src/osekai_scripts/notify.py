"""Progress and finish notifications.

Records are fanned out to every configured channel: a JSON webhook and/or
Redis pub/sub. Delivery is best-effort; a failing channel raises
NotifyError after the remaining channels have been tried.
"""

from __future__ import annotations

import json
from typing import Any

import httpx
import redis.asyncio as redis
import structlog

from osekai_scripts.config import Settings
from osekai_scripts.errors import NotifyError
from osekai_scripts.models.progress import FinishRecord, ProgressState

logger = structlog.get_logger(__name__)

PROGRESS_CHANNEL = "osekai:progress"
FINISH_CHANNEL = "osekai:finish"


class WebhookNotifier:
    """POSTs ``{"type": ..., "data": ...}`` to a webhook url."""

    def __init__(self, url: str, timeout: float = 10.0, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._url = url
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def send(self, kind: str, data: dict[str, Any]) -> None:
        try:
            response = await self._client.post(self._url, json={"type": kind, "data": data})
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise NotifyError(f"webhook_{kind}", f"webhook request failed: {e}") from e

    async def close(self) -> None:
        await self._client.aclose()


class RedisNotifier:
    """Publishes records on Redis pub/sub channels."""

    def __init__(self, client: redis.Redis) -> None:
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> RedisNotifier:
        return cls(redis.from_url(url, decode_responses=True))

    async def send(self, kind: str, data: dict[str, Any]) -> None:
        channel = PROGRESS_CHANNEL if kind == "progress" else FINISH_CHANNEL
        try:
            await self._client.publish(channel, json.dumps(data))
        except redis.RedisError as e:
            raise NotifyError(f"redis_{kind}", f"failed to publish to {channel}: {e}") from e

    async def close(self) -> None:
        await self._client.aclose()


class Notifier:
    """Fans records out to all configured channels."""

    def __init__(self, channels: list[WebhookNotifier | RedisNotifier] | None = None) -> None:
        self._channels = channels or []

    @classmethod
    def from_settings(cls, settings: Settings) -> Notifier:
        channels: list[WebhookNotifier | RedisNotifier] = []
        if settings.webhook_url:
            channels.append(WebhookNotifier(settings.webhook_url, settings.request_timeout_seconds))
        if settings.redis_url:
            channels.append(RedisNotifier.from_url(settings.redis_url))
        return cls(channels)

    async def notify_progress(self, progress: ProgressState) -> None:
        await self._send("progress", progress.model_dump(mode="json"))

    async def notify_finish(self, finish: FinishRecord) -> None:
        await self._send("finish", finish.model_dump(mode="json"))

    async def _send(self, kind: str, data: dict[str, Any]) -> None:
        failed: list[NotifyError] = []
        for channel in self._channels:
            try:
                await channel.send(kind, data)
            except NotifyError as e:
                failed.append(e)

        if failed:
            raise NotifyError(f"notify_{kind}", "; ".join(str(e) for e in failed))

    async def close(self) -> None:
        for channel in self._channels:
            await channel.close()
