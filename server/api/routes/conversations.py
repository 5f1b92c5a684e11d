"""Conversation store routes: list, read, start and patch conversations."""
from fastapi import APIRouter, HTTPException, Depends, status
from typing import List
from uuid import UUID
import logging

from api.middleware.auth_middleware import get_current_user_id
from api.schemas.request_schemas import ConversationPatchRequest, CreateConversationRequest
from api.schemas.response_schemas import ConversationResponse
from core.dependencies import get_conversation_service
from services.conversation_service import (
    ConversationAccessError,
    ConversationNotFoundError,
    ConversationService,
    ConversationServiceError,
    ConversationStateError,
    ConversationValidationError,
)

logger = logging.getLogger(__name__)
router = APIRouter()


def parse_conversation_id(value: str) -> str:
    try:
        return str(UUID(value))
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid conversation id.",
        ) from exc


def _to_http(error: ConversationServiceError) -> HTTPException:
    if isinstance(error, ConversationNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))
    if isinstance(error, ConversationAccessError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(error))
    if isinstance(error, ConversationStateError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(error))
    if isinstance(error, ConversationValidationError):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(error))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(error))


@router.post("", response_model=ConversationResponse, status_code=status.HTTP_201_CREATED)
async def start_conversation(
    request: CreateConversationRequest,
    user_id: str = Depends(get_current_user_id),
    service: ConversationService = Depends(get_conversation_service),
):
    """Return the caller's conversation with a participant, creating it if needed."""
    try:
        return await service.start_conversation(
            user_id,
            request.participant.model_dump(),
            display_name=request.display_name,
        )
    except ConversationServiceError as e:
        raise _to_http(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error starting conversation: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to start conversation. Please try again.",
        )


@router.get("", response_model=List[ConversationResponse])
async def list_conversations(
    user_id: str = Depends(get_current_user_id),
    service: ConversationService = Depends(get_conversation_service),
):
    try:
        return await service.list_conversations(user_id)
    except Exception as e:
        logger.error(f"Error listing conversations for {user_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load conversations. Please try again.",
        )


@router.get("/{conversation_id}", response_model=ConversationResponse)
async def get_conversation(
    conversation_id: str,
    user_id: str = Depends(get_current_user_id),
    service: ConversationService = Depends(get_conversation_service),
):
    conversation_id = parse_conversation_id(conversation_id)
    try:
        return await service.get_conversation(conversation_id, user_id)
    except ConversationServiceError as e:
        raise _to_http(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting conversation {conversation_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load conversation. Please try again.",
        )


@router.patch("/{conversation_id}", response_model=ConversationResponse)
async def update_conversation(
    conversation_id: str,
    request: ConversationPatchRequest,
    user_id: str = Depends(get_current_user_id),
    service: ConversationService = Depends(get_conversation_service),
):
    """
    Partial update. Fields present in the body replace the stored value
    (per-user fields only for the caller); the last writer wins.
    """
    conversation_id = parse_conversation_id(conversation_id)
    try:
        return await service.update_conversation(conversation_id, user_id, request.to_patch())
    except ConversationServiceError as e:
        if not isinstance(e, (ConversationNotFoundError, ConversationAccessError)):
            logger.warning(f"Rejected update of {conversation_id} by {user_id}: {e}")
        raise _to_http(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating conversation {conversation_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update conversation. Please try again.",
        )
