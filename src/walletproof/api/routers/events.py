"""Push stream of verified events."""

from __future__ import annotations

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from ...application.notifier import Notifier
from ...domain.errors import SubscriberDeliveryError
from ..dependencies import get_notifier

router = APIRouter(tags=["events"])


class WebSocketSubscriber:
    """Adapts a WebSocket connection to the notifier's Subscriber protocol."""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket

    async def send_text(self, data: str) -> None:
        try:
            await self.websocket.send_text(data)
        except (WebSocketDisconnect, RuntimeError, OSError) as e:
            raise SubscriberDeliveryError(f"WebSocket send failed: {e}") from e


@router.websocket("/ws/verifications")
async def verification_stream(
    websocket: WebSocket, notifier: Notifier = Depends(get_notifier)
) -> None:
    """Push a JSON message for every verification until the client goes away."""
    await websocket.accept()
    subscription = notifier.subscribe(WebSocketSubscriber(websocket))
    try:
        # Inbound messages are ignored; receiving detects the disconnect.
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        notifier.unsubscribe(subscription)
