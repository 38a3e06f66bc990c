"""Chat endpoints: conversations, history, sending, read state and the live feed."""

import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from apps.api.deps import get_change_bus, get_db, get_message_feed, get_notifier, get_session_factory
from apps.api.schemas import ConversationOut, MessageOut
from apps.engine.feed import MessageFeed
from apps.engine.matches import MatchService
from apps.engine.messaging import MessagingService
from apps.workers.notifier import Notifier
from core.auth import Identity, client_auth, websocket_auth
from core.errors import NotFoundError
from core.pubsub import ChangeBus
from models.message import Message

router = APIRouter()
logger = logging.getLogger(__name__)


class SendMessageRequest(BaseModel):
    """Request to send a message; receiver defaults to the other member."""

    text: str
    receiver_id: str | None = None


class MarkReadResponse(BaseModel):
    marked: int


@router.get("/conversations", response_model=list[ConversationOut])
async def list_conversations(
    db: AsyncSession = Depends(get_db), identity: Identity = Depends(client_auth)
) -> list[ConversationOut]:
    """One summary per match of the caller, most recent activity first."""
    match_ids = [item.match.id for item in await MatchService(db).get_matches(identity.uid)]
    conversations = await MessagingService(db).get_conversations(identity.uid, match_ids)
    return [
        ConversationOut(
            match_id=conversation.match_id,
            last_message=MessageOut.model_validate(conversation.last_message) if conversation.last_message else None,
            unread_count=conversation.unread_count,
        )
        for conversation in conversations
    ]


@router.get("/{match_id}", response_model=list[MessageOut])
async def list_messages(
    match_id: str, db: AsyncSession = Depends(get_db), identity: Identity = Depends(client_auth)
) -> list[MessageOut]:
    await MatchService(db).get_match_for_user(match_id, identity.uid)
    return [MessageOut.model_validate(message) for message in await MessagingService(db).get_messages(match_id)]


@router.post("/{match_id}", response_model=MessageOut)
async def send_message(
    match_id: str,
    request: SendMessageRequest,
    db: AsyncSession = Depends(get_db),
    bus: ChangeBus = Depends(get_change_bus),
    notifier: Notifier = Depends(get_notifier),
    identity: Identity = Depends(client_auth),
) -> MessageOut:
    """Send a message as the caller. On failure the client keeps its input for a retry."""
    item = await MatchService(db).get_match_for_user(match_id, identity.uid)
    receiver_id = request.receiver_id or item.match.other_user(identity.uid)

    message = await MessagingService(db, bus, notifier).send_message(match_id, identity.uid, receiver_id, request.text)
    return MessageOut.model_validate(message)


@router.post("/{match_id}/read", response_model=MarkReadResponse)
async def mark_messages_read(
    match_id: str,
    db: AsyncSession = Depends(get_db),
    bus: ChangeBus = Depends(get_change_bus),
    identity: Identity = Depends(client_auth),
) -> MarkReadResponse:
    marked = await MessagingService(db, bus).mark_messages_as_read(match_id, identity.uid)
    return MarkReadResponse(marked=marked)


@router.websocket("/{match_id}/ws")
async def message_feed(
    websocket: WebSocket,
    match_id: str,
    feed: MessageFeed = Depends(get_message_feed),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> None:
    """
    Live message feed.

    Sends the full ordered message list as JSON right after connecting and
    again after every change. Closing the socket cancels the subscription.
    """
    identity = await websocket_auth(websocket)
    if identity is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    async with session_factory() as db:
        try:
            await MatchService(db).get_match_for_user(match_id, identity.uid)
        except NotFoundError:
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return

    await websocket.accept()

    async def push_snapshot(messages: list[Message]) -> None:
        await websocket.send_json([MessageOut.model_validate(message).model_dump(mode="json") for message in messages])

    async def drop_client(error: Exception) -> None:
        # The receive loop below sees the close and ends
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR)

    subscription = await feed.subscribe(match_id, push_snapshot, drop_client)
    try:
        # Client frames are ignored; receiving only detects the disconnect
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.debug(f"Feed client for match {match_id} disconnected")
    finally:
        await subscription.unsubscribe()
