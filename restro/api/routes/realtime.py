"""
Live collection updates over WebSocket.

``/ws/{restaurant_id}/{collection}`` sends the current snapshot on connect
and then every snapshot the change feed publishes. Orders carry customer
contact details, so that stream is limited to the restaurant's own staff,
the same rule as the REST order listing.
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

from restro.core.config import get_settings
from restro.core.errors import AuthError
from restro.core.security import Principal, extract_token, is_restaurant_member
from restro.services.changes import BaseChangeFeed, Collection, Snapshot

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Realtime"])


def _principal(websocket: WebSocket) -> Optional[Principal]:
    cookie = websocket.cookies.get(get_settings().session_cookie_name)
    token = extract_token(cookie, websocket.headers.get("authorization")) or websocket.query_params.get("token")
    if not token:
        return None
    try:
        return websocket.app.state.signer.verify(token)
    except AuthError:
        return None


def _may_watch(principal: Optional[Principal], restaurant_id: str, collection: Collection) -> bool:
    if collection != Collection.ORDERS:
        return True
    return is_restaurant_member(principal, restaurant_id)


@router.websocket("/ws/{restaurant_id}/{collection}")
async def watch_collection(websocket: WebSocket, restaurant_id: str, collection: str):
    try:
        watched = Collection(collection)
    except ValueError:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Unknown collection")
        return

    if not _may_watch(_principal(websocket), restaurant_id, watched):
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Not authorized")
        return

    feed: BaseChangeFeed = websocket.app.state.change_feed
    await websocket.accept()

    async def push(snapshot: Snapshot) -> None:
        await websocket.send_json({
            "restaurantId": restaurant_id,
            "collection": watched.value,
            "data": snapshot,
        })

    subscriber_id = websocket.query_params.get("clientId") or uuid.uuid4().hex
    subscription = feed.subscribe(restaurant_id, watched, push, subscriber_id=subscriber_id)
    logger.info(f"Client {subscriber_id} watching {restaurant_id}/{watched.value}")

    try:
        await push(await feed.load_snapshot(restaurant_id, watched))
        while True:
            # Clients only send keepalives
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info(f"Client {subscriber_id} left {restaurant_id}/{watched.value}")
    finally:
        subscription.cancel()
