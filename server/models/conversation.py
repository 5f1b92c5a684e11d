"""Conversation and message data models.

Store documents arrive in a handful of historical shapes (flat or nested
sender references, ``_id`` keys, naive timestamps). They are normalized here,
once, so the chat core only ever deals with these types.
"""
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Any, Optional
from datetime import datetime, timezone
import time

DELETED_MESSAGE_TEXT = "This message was deleted"
NO_MESSAGES_TEXT = "No messages yet"
UNKNOWN_USER = "Unknown User"
PREVIEW_LENGTH = 50

_last_message_id = 0


def next_message_id() -> str:
    """Time-based message id (epoch milliseconds), strictly increasing per process."""
    global _last_message_id

    candidate = time.time_ns() // 1_000_000
    if candidate <= _last_message_id:
        candidate = _last_message_id + 1
    _last_message_id = candidate
    return str(candidate)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _reference_id(ref: Any) -> Optional[str]:
    if isinstance(ref, dict):
        ref = ref.get("_id") or ref.get("id")
    if ref is None or ref == "":
        return None
    return str(ref)


def _display_name(ref: Any) -> Optional[str]:
    if isinstance(ref, dict):
        return ref.get("fullName") or ref.get("name")
    return None


class Participant(BaseModel):
    """Conversation participant (name/avatar/status only)"""
    id: str
    name: Optional[str] = None
    avatar: Optional[str] = None
    status: str = "Offline"

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, data: Any) -> Any:
        if isinstance(data, (str, int)):
            return {"id": str(data)}
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if "id" not in data and "_id" in data:
            data["id"] = data.pop("_id")
        data["id"] = str(data.get("id")) if data.get("id") is not None else None
        full_name = data.pop("fullName", None)
        if not data.get("name"):
            data["name"] = full_name
        picture = data.pop("profilePicture", None)
        if not data.get("avatar"):
            data["avatar"] = picture
        return data


class Message(BaseModel):
    """A single chat message, normalized"""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    sender_id: Optional[str] = Field(default=None, alias="senderId")
    sender: Optional[str] = None  # display label
    text: str = ""
    timestamp: str = ""  # display string, e.g. "09:41 AM"
    timestamp_date: Optional[datetime] = Field(default=None, alias="timestampDate")
    read: bool = False
    deleted: bool = False
    is_deleted: bool = Field(default=False, alias="isDeleted")
    is_own: bool = Field(default=False, alias="isOwn")  # viewer-relative

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)

        if "id" not in data and "_id" in data:
            data["id"] = data.pop("_id")
        if data.get("id") is not None:
            data["id"] = str(data["id"])

        # Sender reference: senderId (flat or nested), sender_id, or a nested sender
        flat_ref = data.pop("senderId", None)
        legacy_ref = data.pop("sender_id", None)
        sender_ref = flat_ref if flat_ref is not None else legacy_ref
        sender = data.get("sender")
        if isinstance(sender, dict):
            if sender_ref is None:
                sender_ref = sender
            data["sender"] = _display_name(sender)
        if not data.get("sender"):
            data["sender"] = _display_name(sender_ref)
        data["senderId"] = _reference_id(sender_ref)

        if "timestampDate" not in data and "timestamp_date" not in data and "createdAt" in data:
            data["timestampDate"] = data.pop("createdAt")

        # deleted / isDeleted / deletedForAll all mean "deleted for everyone"
        deleted = bool(
            data.get("deleted")
            or data.get("isDeleted")
            or data.pop("is_deleted", False)
            or data.pop("deletedForAll", False)
        )
        data["deleted"] = deleted
        data["isDeleted"] = deleted
        if deleted:
            data["text"] = DELETED_MESSAGE_TEXT
        return data

    @field_validator("timestamp_date")
    @classmethod
    def _utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)

    def owned_by(self, user_id: Optional[str]) -> bool:
        return user_id is not None and self.sender_id == str(user_id)

    def to_store(self) -> dict:
        """Wire representation; ownership is viewer-relative and never stored."""
        return self.model_dump(mode="json", by_alias=True, exclude={"is_own"})


class Conversation(BaseModel):
    """A conversation as seen by one viewer"""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str = UNKNOWN_USER
    avatar: Optional[str] = None
    status: str = "Offline"
    participants: list[Participant] = Field(default_factory=list)
    messages: list[Message] = Field(default_factory=list)
    last_message: Optional[str] = Field(default=None, alias="lastMessage")
    pinned_messages: list[str] = Field(default_factory=list, alias="pinnedMessages")
    # viewer id -> message ids hidden for that viewer only
    deleted_for_me: dict[str, list[str]] = Field(
        default_factory=dict, alias="deletedForMeMessages"
    )
    archived: bool = False
    deleted: bool = False
    unread: int = 0
    timestamp_date: Optional[datetime] = Field(default=None, alias="timestampDate")
    is_active: bool = Field(default=False, exclude=True)

    @field_validator("id", mode="before")
    @classmethod
    def _id_str(cls, v: Any) -> str:
        return str(v)

    @field_validator("name", mode="before")
    @classmethod
    def _name_default(cls, v: Any) -> str:
        return v or UNKNOWN_USER

    @field_validator("pinned_messages", mode="before")
    @classmethod
    def _pinned_str(cls, v: Any) -> list[str]:
        return [str(item) for item in (v or [])]

    @field_validator("deleted_for_me", mode="before")
    @classmethod
    def _hidden_str(cls, v: Any) -> dict[str, list[str]]:
        if not isinstance(v, dict):
            # A flat list cannot be attributed without a viewer; see from_document()
            return {}
        return {str(k): [str(i) for i in (ids or [])] for k, ids in v.items()}

    @field_validator("timestamp_date")
    @classmethod
    def _utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)

    @classmethod
    def from_document(cls, doc: dict, viewer_id: Optional[str]) -> "Conversation":
        """Build a viewer-resolved conversation from a store document.

        The store returns the requesting viewer's hidden ids as a flat
        ``deletedForMeMessages`` list; it is keyed under ``viewer_id`` here.
        """
        data = dict(doc)
        if "id" not in data and "_id" in data:
            data["id"] = data.pop("_id")

        hidden = data.pop("deletedForMeMessages", None)
        if hidden is None:
            hidden = data.pop("deleted_for_me", None)
        if isinstance(hidden, list):
            hidden = {str(viewer_id): hidden} if viewer_id is not None and hidden else {}
        data["deletedForMeMessages"] = hidden or {}

        if "timestampDate" not in data and "time" in data:
            data["timestampDate"] = data.pop("time")

        conversation = cls.model_validate(data)
        for message in conversation.messages:
            message.is_own = message.owned_by(viewer_id)
        return conversation

    def hidden_for(self, viewer_id: Optional[str]) -> list[str]:
        if viewer_id is None:
            return []
        return list(self.deleted_for_me.get(str(viewer_id), []))

    def visible_messages(self, viewer_id: Optional[str]) -> list[Message]:
        hidden = set(self.hidden_for(viewer_id))
        return [m for m in self.messages if m.id not in hidden]

    def find_message(self, message_id: str) -> Optional[Message]:
        for message in self.messages:
            if message.id == str(message_id):
                return message
        return None

    def last_message_preview(self) -> str:
        if self.messages:
            text = self.messages[-1].text or ""
            if len(text) > PREVIEW_LENGTH:
                return text[:PREVIEW_LENGTH] + "..."
            return text
        return self.last_message or NO_MESSAGES_TEXT
