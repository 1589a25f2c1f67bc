import json
from channels.generic.websocket import AsyncWebsocketConsumer

DISPLAY_GROUP = "queue.display"


class QueueDisplayConsumer(AsyncWebsocketConsumer):
    """Pushes queue change notices to waiting-room display boards."""
    GROUP = DISPLAY_GROUP

    async def connect(self):
        await self.channel_layer.group_add(self.GROUP, self.channel_name)
        await self.accept()
        await self.send(json.dumps({"type": "welcome", "message": "connected"}))

    async def disconnect(self, close_code):
        await self.channel_layer.group_discard(self.GROUP, self.channel_name)

    async def queue_updated(self, event):
        # event: {"type": "queue.updated", "date": "YYYY-MM-DD", "queueId": int, "event": str}
        await self.send(json.dumps(event))
