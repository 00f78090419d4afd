"""Staff inbox HTTP endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..dependencies import get_message_repository
from ..repository import MessageRepository
from ..schemas import MessageResponse
from ..services import MessageService

router = APIRouter(prefix="/messages", tags=["messages"])


@router.get("", response_model=list[MessageResponse])
async def list_messages(
    receiver_id: int = Query(alias="receiverId", ge=1),
    unread_only: bool = Query(default=False, alias="unreadOnly"),
    repository: MessageRepository = Depends(get_message_repository),
) -> list[MessageResponse]:
    messages = await repository.list_for_receiver(receiver_id, unread_only=unread_only)
    return [MessageResponse.model_validate(message) for message in messages]


@router.post("/{message_id}/read", response_model=MessageResponse)
async def mark_message_read(
    message_id: int,
    repository: MessageRepository = Depends(get_message_repository),
) -> MessageResponse:
    message = await repository.get_message(message_id)
    if message is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Message not found")
    return MessageResponse.model_validate(await MessageService(repository).mark_read(message))
