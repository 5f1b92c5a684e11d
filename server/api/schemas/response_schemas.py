"""API response schemas"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List
from datetime import datetime


class ParticipantResponse(BaseModel):
    id: str
    name: Optional[str] = None
    avatar: Optional[str] = None


class MessageResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    sender_id: Optional[str] = Field(None, alias="senderId")
    sender: Optional[str] = None
    text: str
    timestamp: str = ""
    timestamp_date: Optional[datetime] = Field(None, alias="timestampDate")
    read: bool = False
    deleted: bool = False
    is_deleted: bool = Field(False, alias="isDeleted")
    is_own: bool = Field(False, alias="isOwn")


class ConversationResponse(BaseModel):
    """A conversation document resolved for the requesting user."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    avatar: Optional[str] = None
    status: str = "Offline"
    participants: List[ParticipantResponse] = Field(default_factory=list)
    messages: List[MessageResponse] = Field(default_factory=list)
    last_message: Optional[str] = Field(None, alias="lastMessage")
    timestamp_date: Optional[datetime] = Field(None, alias="timestampDate")
    pinned_messages: List[str] = Field(default_factory=list, alias="pinnedMessages")
    deleted_for_me_messages: List[str] = Field(default_factory=list, alias="deletedForMeMessages")
    archived: bool = False
    deleted: bool = False
    unread: int = 0


class ErrorResponse(BaseModel):
    error: str
    detail: Optional[str] = None
