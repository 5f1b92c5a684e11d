"""Conversation store service: per-viewer documents over the conversations table."""
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional
import logging

from core.pinning import MAX_PINNED
from database.repositories.conversation_repo import ConversationRepository
from models.conversation import NO_MESSAGES_TEXT, UNKNOWN_USER, Message

logger = logging.getLogger(__name__)


class ConversationServiceError(Exception):
    """Base class for store-side conversation errors."""


class ConversationNotFoundError(ConversationServiceError):
    pass


class ConversationAccessError(ConversationServiceError):
    pass


class ConversationStateError(ConversationServiceError):
    """The requested transition is not allowed from the current state."""


class ConversationValidationError(ConversationServiceError):
    pass


class MessageDeleteNotAllowedError(ConversationValidationError):
    pass


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _unique(ids: List[Any]) -> List[str]:
    seen: Dict[str, None] = {}
    for item in ids:
        seen.setdefault(str(item), None)
    return list(seen)


class ConversationService:
    """
    Stores one document per conversation and renders it per viewer.

    Per-user fields (unread, archived, deleted, deleted-for-me) are maps keyed
    by user id in storage and resolved against the requesting user, so hiding
    or archiving for one participant never leaks to another.
    """

    def __init__(
        self,
        conversation_repo: ConversationRepository,
        delete_window: timedelta = timedelta(minutes=5),
        max_pinned: int = MAX_PINNED,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.conversation_repo = conversation_repo
        self.delete_window = delete_window
        self.max_pinned = max_pinned
        self._clock = clock

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    @staticmethod
    def _user_map(row: dict, column: str) -> dict:
        return dict(row.get(column) or {})

    def render(self, row: dict, viewer_id: str) -> dict:
        """Store row -> document as seen by ``viewer_id``."""
        participants = row.get("participants") or []
        other = next(
            (p for p in participants if str(p.get("id")) != viewer_id),
            {},
        )

        messages = []
        for raw in row.get("messages") or []:
            message = Message.model_validate(raw)
            rendered = message.to_store()
            rendered["isOwn"] = message.owned_by(viewer_id)
            messages.append(rendered)

        return {
            "id": str(row["id"]),
            "name": other.get("name") or UNKNOWN_USER,
            "avatar": other.get("avatar"),
            "status": "Offline",
            "participants": participants,
            "messages": messages,
            "lastMessage": messages[-1]["text"] if messages else NO_MESSAGES_TEXT,
            "timestampDate": row.get("last_message_time"),
            "pinnedMessages": [str(i) for i in row.get("pinned_messages") or []],
            "deletedForMeMessages": list(self._user_map(row, "deleted_for_me").get(viewer_id, [])),
            "archived": bool(self._user_map(row, "archived").get(viewer_id, False)),
            "deleted": bool(self._user_map(row, "deleted").get(viewer_id, False)),
            "unread": int(self._user_map(row, "unread_counts").get(viewer_id, 0)),
        }

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def _load_for(self, conversation_id: str, user_id: str) -> dict:
        row = await self.conversation_repo.get_by_id(conversation_id)
        if not row:
            raise ConversationNotFoundError(f"Conversation '{conversation_id}' was not found.")
        if user_id not in [str(p) for p in row.get("participant_ids") or []]:
            raise ConversationAccessError("You do not have access to this conversation")
        return row

    async def list_conversations(self, user_id: str) -> List[dict]:
        """Conversations of ``user_id`` that the user has not deleted."""
        rows = await self.conversation_repo.list_for_participant(user_id)
        return [
            self.render(row, user_id)
            for row in rows
            if not self._user_map(row, "deleted").get(user_id)
        ]

    async def get_conversation(self, conversation_id: str, user_id: str) -> dict:
        row = await self._load_for(conversation_id, user_id)
        return self.render(row, user_id)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def start_conversation(
        self,
        user_id: str,
        participant: dict,
        display_name: Optional[str] = None,
    ) -> dict:
        """Return the existing two-party conversation with ``participant`` or create one."""
        other_id = str(participant["id"])
        if other_id == user_id:
            raise ConversationValidationError("You cannot start a conversation with yourself")

        existing = await self.conversation_repo.find_between(user_id, other_id)
        if existing:
            return self.render(existing, user_id)

        row = await self.conversation_repo.create({
            "participants": [
                {"id": user_id, "name": display_name, "avatar": None},
                {"id": other_id, "name": participant.get("name"), "avatar": participant.get("avatar")},
            ],
            "participant_ids": [user_id, other_id],
            "messages": [],
            "pinned_messages": [],
            "unread_counts": {},
            "archived": {},
            "deleted": {},
            "deleted_for_me": {},
            "last_message_time": self._clock().isoformat(),
        })
        if not row:
            raise ConversationStateError("Conversation could not be created")
        logger.info(f"Started conversation {row['id']} between {user_id} and {other_id}")
        return self.render(row, user_id)

    async def update_conversation(self, conversation_id: str, user_id: str, patch: dict) -> dict:
        """
        Merge a partial update (wire field names) into the stored document.

        Whole fields are replaced; there is no concurrency token, so the last
        writer of a field wins.
        """
        row = await self._load_for(conversation_id, user_id)
        if self._user_map(row, "deleted").get(user_id):
            raise ConversationStateError("Conversation was deleted")

        now = self._clock()
        updates: Dict[str, Any] = {}

        if patch.get("messages") is not None:
            updates.update(self._merge_messages(row, user_id, patch["messages"], now))

        if patch.get("unread") is not None:
            counts = dict(updates.get("unread_counts") or self._user_map(row, "unread_counts"))
            counts[user_id] = max(0, int(patch["unread"]))
            updates["unread_counts"] = counts

        if patch.get("archived") is not None:
            archived = self._user_map(row, "archived")
            archived[user_id] = bool(patch["archived"])
            updates["archived"] = archived

        if patch.get("deleted") is not None:
            deleted = self._user_map(row, "deleted")
            deleted[user_id] = bool(patch["deleted"])
            updates["deleted"] = deleted

        if patch.get("pinnedMessages") is not None:
            pinned = _unique(patch["pinnedMessages"])
            if len(pinned) > self.max_pinned:
                raise ConversationValidationError(
                    f"At most {self.max_pinned} messages can be pinned"
                )
            updates["pinned_messages"] = pinned

        if patch.get("deletedForMeMessages") is not None:
            hidden = self._user_map(row, "deleted_for_me")
            hidden[user_id] = _unique(patch["deletedForMeMessages"])
            updates["deleted_for_me"] = hidden

        if not updates:
            return self.render(row, user_id)

        updated = await self.conversation_repo.update(conversation_id, updates)
        return self.render(updated or {**row, **updates}, user_id)

    def _merge_messages(
        self, row: dict, user_id: str, incoming: List[dict], now: datetime
    ) -> Dict[str, Any]:
        stored = {}
        for raw in row.get("messages") or []:
            message = Message.model_validate(raw)
            stored[message.id] = message

        merged: List[dict] = []
        new_from_user = 0

        for raw in incoming:
            message = Message.model_validate(raw)
            previous = stored.get(message.id)

            if previous is None:
                # New messages belong to the caller and are stamped with store time
                if message.sender_id is not None and message.sender_id != user_id:
                    raise ConversationValidationError("New messages must be sent as yourself")
                message.sender_id = user_id
                message.timestamp_date = now
                new_from_user += 1
            else:
                message.sender_id = previous.sender_id
                message.timestamp_date = previous.timestamp_date
                if message.deleted and not previous.deleted:
                    self._check_delete_for_everyone(previous, user_id, now)
                elif previous.deleted and not message.deleted:
                    # Deleted for everyone is permanent
                    message = previous

            merged.append(message.to_store())

        updates: Dict[str, Any] = {"messages": merged}
        if new_from_user:
            counts = self._user_map(row, "unread_counts")
            for participant_id in row.get("participant_ids") or []:
                participant_id = str(participant_id)
                if participant_id != user_id:
                    counts[participant_id] = int(counts.get(participant_id, 0)) + new_from_user
            updates["unread_counts"] = counts
            updates["last_message_time"] = now.isoformat()
        return updates

    def _check_delete_for_everyone(self, message: Message, user_id: str, now: datetime) -> None:
        if message.sender_id != user_id:
            raise MessageDeleteNotAllowedError("Only the sender can delete a message for everyone")
        if message.timestamp_date is None or now - message.timestamp_date > self.delete_window:
            minutes = int(self.delete_window.total_seconds() // 60)
            raise MessageDeleteNotAllowedError(
                f"Messages can only be deleted for everyone within {minutes} minutes of sending"
            )
