"""Redis Pub/Sub based RealtimeBrokerPort implementation.

Events are published to per-room channels `{prefix}:{room_id}`; every
process pattern-subscribes `{prefix}:*` and hands each event to its local
Notifier. Each event is dispatched as its own task, in arrival order, so a
slow room does not hold up the others.
"""
from __future__ import annotations

import asyncio
import json
from typing import Optional, Set

from redis import asyncio as aioredis
from redis.exceptions import RedisError

from application.ports.realtime import (
    Handler,
    Notification,
    RealtimeBrokerPort,
    dump_for_broker,
    load_from_broker,
)
from core.config import settings
from core.logging_config import get_logger


logger = get_logger(__name__)


class RedisRealtimeBroker(RealtimeBrokerPort):
    def __init__(
        self,
        url: Optional[str] = None,
        *,
        channel_prefix: Optional[str] = None,
        client: Optional[aioredis.Redis] = None,
    ) -> None:
        self._url = url or settings.redis.url
        if client is None and not self._url:
            raise RuntimeError("REDIS__URL is required for the redis realtime broker")
        self._prefix = channel_prefix or settings.redis.channel_prefix
        # an injected client must be created with decode_responses=True
        self._client: Optional[aioredis.Redis] = client
        self._task: Optional[asyncio.Task] = None
        self._handler: Optional[Handler] = None
        self._inflight: Set[asyncio.Task] = set()
        self._ready = asyncio.Event()

    def _room_channel(self, room_id: str) -> str:
        return f"{self._prefix}:{room_id}"

    def _get_client(self) -> aioredis.Redis:
        if self._client is None:
            self._client = aioredis.from_url(
                self._url,
                decode_responses=True,
                max_connections=settings.redis.max_connections,
            )
        return self._client

    async def publish(self, event: Notification) -> None:  # type: ignore[override]
        channel = self._room_channel(event.room_id)
        data = json.dumps(dump_for_broker(event), ensure_ascii=False)
        try:
            await self._get_client().publish(channel, data)
        except RedisError as exc:
            logger.error("redis_publish_failed", channel=channel, error=str(exc))

    def _dispatch(self, event: Notification) -> None:
        assert self._handler is not None
        task = asyncio.create_task(self._handler(event))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def _listen(self) -> None:
        pattern = f"{self._prefix}:*"
        pubsub = self._get_client().pubsub(ignore_subscribe_messages=True)
        try:
            await pubsub.psubscribe(pattern)
            self._ready.set()
            logger.info("redis_pubsub_subscribed", pattern=pattern)
            async for message in pubsub.listen():
                if message.get("type") != "pmessage":
                    continue
                try:
                    event = load_from_broker(json.loads(message["data"]))
                except (ValueError, KeyError, TypeError) as exc:
                    logger.warning("redis_pubsub_parse_failed", channel=message.get("channel"), error=str(exc))
                    continue
                self._dispatch(event)
        except asyncio.CancelledError:
            raise
        except RedisError as exc:
            logger.error("redis_pubsub_listen_failed", pattern=pattern, error=str(exc))
        finally:
            await pubsub.aclose()

    async def subscribe(self, handler: Handler) -> None:  # type: ignore[override]
        """Start the listener; returns once the pattern subscription is live (or the listener has stopped)."""
        self._handler = handler
        self._task = asyncio.create_task(self._listen(), name="redis-realtime-listener")
        ready = asyncio.create_task(self._ready.wait())
        try:
            await asyncio.wait({ready, self._task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            ready.cancel()

    async def aclose(self) -> None:  # type: ignore[override]
        tasks = [t for t in (self._task, *self._inflight) if t is not None]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._task = None
        self._inflight.clear()
        self._ready.clear()
        if self._client is not None:
            await self._client.aclose()
            self._client = None
