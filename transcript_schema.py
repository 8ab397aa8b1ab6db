# Copyright (c) 2026 Mark Menkhus <mark.menkhus@gmail.com>
# SPDX-License-Identifier: MIT
"""
transcript_schema.py - Data shapes for parsed chatbot transcripts

Defines Role, Message, the RESULTS payload variants, SessionMetadata and
Session. Parsing and metrics code pass these around; nothing here reads
files or computes statistics.

Usage:
    from transcript_schema import Role, Message, Session, DecodedResults

    msg = Message(id="msg-0", role=Role.BOT, content="Here you go",
                  results=DecodedResults(styles=["Bold"], products=["p1"]))
    session.to_dict()   # JSON-ready, camelCase keys
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List, Dict, Any, Union


class Role(str, Enum):
    USER = "user"
    BOT = "bot"
    UNKNOWN = "unknown"


# =============================================================================
# RESULTS PAYLOAD VARIANTS
# =============================================================================

@dataclass
class DecodedResults:
    """RESULTS line whose PRODUCTS fragment parsed; products already flattened."""
    styles: List[str] = field(default_factory=list)
    products: List[str] = field(default_factory=list)

    has_product_list = True

    def product_ids(self) -> List[str]:
        return list(self.products)

    def style_names(self) -> List[str]:
        return list(self.styles)

    def to_dict(self) -> dict:
        return {"styles": list(self.styles), "products": list(self.products)}


@dataclass
class PartialResults:
    """
    RESULTS line without a usable product list.

    products_raw holds the unparsed PRODUCTS fragment when one was present,
    None when the line only carried STYLES.
    """
    styles: List[str] = field(default_factory=list)
    products_raw: Optional[str] = None

    has_product_list = False

    def product_ids(self) -> List[str]:
        return []

    def style_names(self) -> List[str]:
        return list(self.styles)

    def to_dict(self) -> dict:
        d: Dict[str, Any] = {"styles": list(self.styles)}
        if self.products_raw is not None:
            d["products"] = []
            d["productsRaw"] = self.products_raw
        return d


@dataclass
class EmptyResults:
    """RESULTS line with nothing recognizable in it."""

    has_product_list = False

    def product_ids(self) -> List[str]:
        return []

    def style_names(self) -> List[str]:
        return []

    def to_dict(self) -> dict:
        return {}


ResultsPayload = Union[DecodedResults, PartialResults, EmptyResults]


# =============================================================================
# MESSAGES AND SESSIONS
# =============================================================================

@dataclass
class Message:
    """
    One conversational turn.

    - role: Role (user / bot / unknown)
    - content: text, continuation lines already space-joined
    - timestamp: ISO-8601 text as it appeared in the source, if any
    - results: RESULTS payload, only ever set on bot messages
    """
    id: str
    role: Role
    content: str
    timestamp: Optional[str] = None
    results: Optional[ResultsPayload] = None

    def to_dict(self) -> dict:
        d = {
            "id": self.id,
            "role": self.role.value,
            "content": self.content,
            "timestamp": self.timestamp,
        }
        if self.results is not None:
            d["results"] = self.results.to_dict()
        return d


@dataclass
class DateRange:
    start: Optional[str] = None
    end: Optional[str] = None

    def to_dict(self) -> dict:
        return {"start": self.start, "end": self.end}


@dataclass
class SessionMetadata:
    """Derived per-session facts. Counting fields are never taken from input."""
    date_range: DateRange = field(default_factory=DateRange)
    message_count: int = 0
    has_escalation: bool = False
    has_order: bool = False
    user_turns: int = 0
    bot_turns: int = 0
    format: Optional[str] = None
    language: Optional[str] = None

    def to_dict(self) -> dict:
        d = {
            "dateRange": self.date_range.to_dict(),
            "messageCount": self.message_count,
            "hasEscalation": self.has_escalation,
            "hasOrder": self.has_order,
            "userTurns": self.user_turns,
            "botTurns": self.bot_turns,
            "format": self.format,
            "language": self.language,
        }
        # Remove None values for cleaner output
        return {k: v for k, v in d.items() if v is not None}


@dataclass
class Session:
    """One logical conversation discovered in a source file."""
    id: str
    source_file: str
    messages: List[Message] = field(default_factory=list)
    metadata: SessionMetadata = field(default_factory=SessionMetadata)

    def messages_by_role(self, role: Role) -> List[Message]:
        return [m for m in self.messages if m.role == role]

    @property
    def first_query(self) -> Optional[str]:
        """Content of the first user message, if there is one."""
        for msg in self.messages:
            if msg.role == Role.USER:
                return msg.content
        return None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sourceFile": self.source_file,
            "messages": [m.to_dict() for m in self.messages],
            "metadata": self.metadata.to_dict(),
        }
