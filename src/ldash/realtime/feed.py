"""Realtime change feed over Redis pub/sub.

Writers publish ``{"table", "event", "record"}`` messages on
``realtime:<table>``; a ChangeFeed subscribes to a set of tables and hands
each decoded message to a handler. The feed holds no module-level state:
whoever constructs it starts and stops it.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable, Iterable

import structlog

logger = structlog.get_logger()

CHANNEL_PREFIX = "realtime:"

ChangeHandler = Callable[[dict], Awaitable[None]]


def table_channel(table: str) -> str:
    return f"{CHANNEL_PREFIX}{table}"


async def publish_change(redis: object | None, table: str, event_type: str, record: dict) -> None:
    """Publish a row change. Best-effort; failures are logged."""
    if redis is None:
        return
    try:
        await redis.publish(  # type: ignore[union-attr]
            table_channel(table),
            json.dumps({"table": table, "event": event_type, "record": record}),
        )
    except Exception:
        logger.warning("realtime_publish_failed", table=table, exc_info=True)


class ChangeFeed:
    """Subscription to table change channels, dispatched to one handler."""

    def __init__(self, redis: object, tables: Iterable[str], handler: ChangeHandler) -> None:
        self.redis = redis
        self.channels = [table_channel(t) for t in tables]
        self.handler = handler
        self._running = False
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.running:
            return
        self._running = True
        pubsub = self.redis.pubsub()  # type: ignore[attr-defined]
        await pubsub.subscribe(*self.channels)
        logger.info("change_feed_started", channels=self.channels)
        self._task = asyncio.create_task(self._listen(pubsub))

    async def stop(self) -> None:
        self._running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            except Exception:
                logger.warning("change_feed_stop_failed", exc_info=True)
            self._task = None

    async def __aenter__(self) -> ChangeFeed:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    async def _listen(self, pubsub: object) -> None:
        try:
            while self._running:
                message = await pubsub.get_message(  # type: ignore[attr-defined]
                    ignore_subscribe_messages=True,
                    timeout=1.0,
                )
                if message is None:
                    continue
                await self._dispatch(message)
        except Exception:
            # Listener is gone; the feed reports running=False from here on.
            logger.exception("change_feed_failed", channels=self.channels)
        finally:
            try:
                await pubsub.unsubscribe()  # type: ignore[attr-defined]
                await pubsub.close()  # type: ignore[attr-defined]
            except Exception:
                logger.warning("change_feed_close_failed", exc_info=True)
            logger.info("change_feed_stopped")

    async def _dispatch(self, message: dict) -> None:
        channel = message.get("channel", "")
        if isinstance(channel, bytes):
            channel = channel.decode()
        try:
            data = message.get("data", b"")
            if isinstance(data, bytes):
                data = data.decode()
            payload = json.loads(data)
        except (json.JSONDecodeError, UnicodeDecodeError, TypeError):
            logger.warning("change_feed_invalid_message", channel=channel)
            return

        try:
            await self.handler(payload)
        except Exception:
            logger.exception("change_feed_handler_failed", channel=channel)
