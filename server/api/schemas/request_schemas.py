"""API request schemas"""
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List, Dict, Any


class ParticipantInput(BaseModel):
    id: str = Field(..., min_length=1, max_length=128)
    name: Optional[str] = Field(None, max_length=256)
    avatar: Optional[str] = Field(None, max_length=2048)


class CreateConversationRequest(BaseModel):
    """Start (or reopen) a two-party conversation, e.g. from "message seller"."""
    participant: ParticipantInput
    display_name: Optional[str] = Field(None, max_length=256)


class ConversationPatchRequest(BaseModel):
    """
    Partial conversation update. Every field is optional; present fields
    replace the stored value for the caller.
    """
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    messages: Optional[List[Dict[str, Any]]] = None
    unread: Optional[int] = Field(None, ge=0)
    archived: Optional[bool] = None
    deleted: Optional[bool] = None
    pinned_messages: Optional[List[str]] = Field(None, alias="pinnedMessages")
    deleted_for_me_messages: Optional[List[str]] = Field(None, alias="deletedForMeMessages")

    @field_validator("pinned_messages", "deleted_for_me_messages", mode="before")
    @classmethod
    def ids_to_str(cls, v: Any) -> Any:
        if isinstance(v, list):
            return [str(item) for item in v]
        return v

    @field_validator("messages")
    @classmethod
    def messages_have_ids(cls, v: Optional[List[Dict[str, Any]]]) -> Optional[List[Dict[str, Any]]]:
        if v is not None:
            for message in v:
                if message.get("id") is None and message.get("_id") is None:
                    raise ValueError("every message must have an id")
        return v

    def to_patch(self) -> Dict[str, Any]:
        """Fields that were sent, keyed by wire name."""
        return self.model_dump(by_alias=True, exclude_none=True)
