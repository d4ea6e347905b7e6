"""
Conversation message and summary types.

Messages are owned by the memory store; this package only reads ordered
slices of them. A Summary is never changed in place: each summarization
step produces a new value.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional
import time
import uuid as uuid_module


@dataclass
class Message:
    """
    A single conversation message.

    Attributes:
        uuid: Identifier assigned by the memory store
        role: Speaker role, e.g. "user" or "assistant"
        content: Message text; may be empty
        created_at: Creation timestamp (seconds since the epoch)
        metadata: Free-form metadata from the store
        token_count: Cached token count, 0 when unknown
    """

    uuid: str
    role: str = ""
    content: str = ""
    created_at: float = field(default_factory=time.time)
    metadata: Dict[str, Any] = field(default_factory=dict)
    token_count: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Message":
        return cls(
            uuid=str(data.get("uuid") or uuid_module.uuid4()),
            role=data.get("role", ""),
            content=data.get("content") or "",
            created_at=data.get("created_at", time.time()),
            metadata=data.get("metadata") or {},
            token_count=data.get("token_count", 0),
        )


@dataclass(frozen=True)
class Summary:
    """
    Rolling conversation summary.

    ``summary_point_uuid`` is the uuid of the newest message already folded
    into ``content``; messages after it are pending.
    """

    content: str = ""
    token_count: int = 0
    summary_point_uuid: Optional[str] = None
    uuid: str = field(default_factory=lambda: str(uuid_module.uuid4()))
    created_at: float = field(default_factory=time.time)
    metadata: Dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def is_empty(self) -> bool:
        return self.summary_point_uuid is None and not self.content

    def to_dict(self) -> Dict[str, Any]:
        return {
            "uuid": self.uuid,
            "content": self.content,
            "token_count": self.token_count,
            "summary_point_uuid": self.summary_point_uuid,
            "created_at": self.created_at,
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Summary":
        return cls(
            content=data.get("content") or "",
            token_count=data.get("token_count", 0),
            summary_point_uuid=data.get("summary_point_uuid"),
            uuid=str(data.get("uuid") or uuid_module.uuid4()),
            created_at=data.get("created_at", time.time()),
            metadata=data.get("metadata") or {},
        )
