"""Control plane used to reset the dataloader caches of every worker.

With a single process the reset is applied locally and the number of reset
loaders is reported. When ``LOADER_RESET_CHANNEL_URL`` points at a Redis
server, the reset is published on a pub/sub channel that every worker listens
to; the caller gets ``-1`` since the real count is only known by each worker.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, Optional

import redis

from ..config import settings
from ..dataloaders.loader import LoaderRegistry, loader_registry


logger = logging.getLogger(__name__)

RESET_DATALOADERS_ACTION = "reset_dataloaders"
BROADCAST_RESET_COUNT = -1


class RedisControlChannel:
    def __init__(self, url: Optional[str] = None, channel: str = "trackdash:control", client: Any = None) -> None:
        if client is None and url is None:
            raise ValueError("A Redis URL or client is required")
        self.channel = channel
        self.client = client if client is not None else redis.Redis.from_url(url)
        self._pubsub = None
        self._thread = None

    def publish(self, action: str, **payload: Any) -> int:
        message = json.dumps({"action": action, **payload})
        receivers = self.client.publish(self.channel, message)
        logger.info(f"Published {action} on {self.channel} to {receivers} subscribers")
        return receivers

    def subscribe(self, handlers: Dict[str, Callable[[], Any]]) -> None:
        def _on_message(message: Dict[str, Any]) -> None:
            try:
                body = json.loads(message["data"])
            except (TypeError, ValueError):
                logger.warning(f"Ignoring malformed control message: {message.get('data')!r}")
                return
            handler = handlers.get(body.get("action"))
            if handler is None:
                logger.warning(f"Ignoring unknown control action: {body.get('action')!r}")
                return
            handler()

        self._pubsub = self.client.pubsub(ignore_subscribe_messages=True)
        self._pubsub.subscribe(**{self.channel: _on_message})
        self._thread = self._pubsub.run_in_thread(sleep_time=1.0, daemon=True)
        logger.info(f"Listening for control messages on {self.channel}")

    def close(self) -> None:
        if self._thread is not None:
            self._thread.stop()
            self._thread = None
        if self._pubsub is not None:
            self._pubsub.close()
            self._pubsub = None


def build_control_channel() -> Optional[RedisControlChannel]:
    if not settings.loader_reset_channel_url:
        return None
    return RedisControlChannel(settings.loader_reset_channel_url, channel=settings.loader_reset_channel)


def listen_for_resets(channel: RedisControlChannel, registry: LoaderRegistry = loader_registry) -> None:
    channel.subscribe({RESET_DATALOADERS_ACTION: registry.reset_all})


def reset_data_loaders_cache(
    channel: Optional[RedisControlChannel] = None,
    registry: LoaderRegistry = loader_registry,
) -> int:
    if channel is None:
        return registry.reset_all()
    channel.publish(RESET_DATALOADERS_ACTION)
    return BROADCAST_RESET_COUNT
