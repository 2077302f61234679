"""Push channel: read the server's SSE streams and republish on the client bus."""
import json
import logging
from collections.abc import AsyncIterable, AsyncIterator

from solfeed.client.api import FeedApiClient
from solfeed.realtime.bus import Event, EventBus, post_topic, user_topic

logger = logging.getLogger(__name__)


async def iter_sse(lines: AsyncIterable[str]) -> AsyncIterator[Event]:
    """Parse ``text/event-stream`` lines into events. Comment lines (keepalive pings) are skipped."""
    event_type = "message"
    data: list[str] = []
    async for raw in lines:
        line = raw.rstrip("\r")
        if not line:
            if data:
                try:
                    payload = json.loads("\n".join(data))
                except ValueError:
                    logger.warning("Skipping %s event with undecodable data", event_type)
                else:
                    yield Event(event_type, payload if isinstance(payload, dict) else {"data": payload})
            event_type, data = "message", []
            continue
        if line.startswith(":"):
            continue
        name, _, value = line.partition(":")
        value = value[1:] if value.startswith(" ") else value
        if name == "event":
            event_type = value
        elif name == "data":
            data.append(value)


class PushChannel:
    def __init__(self, api: FeedApiClient, bus: EventBus):
        self.api = api
        self.bus = bus

    async def listen(self, path: str, topic: str) -> int:
        """Relay one stream until it ends. Returns how many events were republished."""
        relayed = 0
        async for event in iter_sse(self.api.stream_lines(path)):
            if event.type == "hello":
                topic = event.payload.get("topic", topic)
                logger.info("Push stream %s open on %s", path, topic)
                continue
            self.bus.publish(topic, event)
            relayed += 1
        return relayed

    async def listen_post(self, post_id, original_post_id=None) -> int:
        target_id = original_post_id or post_id
        return await self.listen(f"/events/posts/{target_id}", post_topic(target_id))

    async def listen_notifications(self, user_id) -> int:
        return await self.listen("/events/notifications", user_topic(user_id))
