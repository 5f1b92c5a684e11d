"""Conversation store client: REST access to the message store over httpx."""
import httpx
from typing import Any, Optional
import logging

from models.conversation import Conversation

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 15.0


class ConversationStoreError(Exception):
    """A store read or update failed (transport error, timeout or non-2xx)."""

    def __init__(self, message: str, *, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def _unwrap(payload: Any) -> Any:
    """Accept both bare bodies and ``{"success": ..., "data": ...}`` envelopes."""
    if isinstance(payload, dict) and "data" in payload and "success" in payload:
        if payload.get("success") is False:
            raise ConversationStoreError(payload.get("message") or "Store reported failure")
        return payload["data"]
    return payload


class ConversationStoreClient:
    """
    Wrapper for the conversation store REST API.

    Documents are normalized into ``Conversation`` models for ``viewer_id``
    as soon as they are received.
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        viewer_id: Optional[str] = None,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.viewer_id = str(viewer_id) if viewer_id is not None else None

        headers: dict[str, str] = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout_s,
            transport=transport,
        )

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = await self.client.request(method, path, **kwargs)
            response.raise_for_status()
            return _unwrap(response.json())
        except httpx.TimeoutException as e:
            logger.error(f"Store request {method} {path} timed out")
            raise ConversationStoreError(f"{method} {path} timed out") from e
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            logger.error(f"Store request {method} {path} failed with HTTP {status_code}")
            raise ConversationStoreError(
                f"{method} {path} failed with HTTP {status_code}",
                status_code=status_code,
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"Store request {method} {path} failed: {e}")
            raise ConversationStoreError(f"{method} {path} failed: {e}") from e
        except ValueError as e:
            logger.error(f"Store returned invalid JSON for {method} {path}: {e}")
            raise ConversationStoreError(f"{method} {path} returned invalid JSON") from e

    async def list_conversations(self) -> list[Conversation]:
        """GET /conversations"""
        data = await self._request("GET", "/conversations")
        if not isinstance(data, list):
            raise ConversationStoreError("Expected a list of conversations")
        return [Conversation.from_document(doc, self.viewer_id) for doc in data]

    async def get_conversation(self, conversation_id: str) -> Conversation:
        """GET /conversations/{id}"""
        data = await self._request("GET", f"/conversations/{conversation_id}")
        return Conversation.from_document(data, self.viewer_id)

    async def update_conversation(self, conversation_id: str, fields: dict) -> Optional[dict]:
        """PATCH /conversations/{id}; merges the given top-level fields."""
        return await self._request("PATCH", f"/conversations/{conversation_id}", json=fields)

    async def close(self):
        """Close HTTP client."""
        await self.client.aclose()
