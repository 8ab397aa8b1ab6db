# Copyright (c) 2026 Mark Menkhus <mark.menkhus@gmail.com>
# SPDX-License-Identifier: MIT
"""
session_normalizer.py - Turn raw parser output into canonical Session records

Handles:
- Role-name variants ("customer", "assistant", "AI", ...) mapped to Role
- Missing message ids (msg-<index>) and session ids (deterministic uuid5)
- RESULTS payloads kept on bot messages only
- Derived metadata: date range, turn counts, escalation and order flags

Normalizing an already normalized session gives back an equal session.

Usage:
    from session_normalizer import normalize_transcripts, get_transcript_stats

    sessions = normalize_transcripts(file_results)
    stats = get_transcript_stats(sessions)
"""

from typing import Optional, List, Any, Union
from uuid import uuid5, NAMESPACE_URL

from results_decoder import results_from_dict
from transcript_parser import date_range_of, parse_timestamp
from transcript_schema import (
    DateRange,
    DecodedResults,
    EmptyResults,
    Message,
    PartialResults,
    Role,
    Session,
    SessionMetadata,
)


USER_ROLES = {"user", "customer", "human", "visitor", "client"}
BOT_ROLES = {"bot", "assistant", "agent", "chatbot", "ai", "system"}

ESCALATION_PHRASES = [
    "speak to a human",
    "speak to someone",
    "transfer me",
    "real person",
    "human agent",
    "customer service",
    "supervisor",
    "manager",
    "escalate",
    "can't help",
    "don't understand",
]

ORDER_PHRASES = [
    "order number",
    "order status",
    "tracking",
    "shipment",
    "delivery",
    "purchase",
    "bought",
    "ordered",
    "payment",
    "receipt",
]


def generate_session_id(source_file: str, position: int) -> str:
    """
    Generate deterministic session ID from source identity.

    Same file and position always produce the same UUID.
    """
    return str(uuid5(NAMESPACE_URL, f"{source_file}:{position}"))


def normalize_role(value: Any) -> Role:
    if isinstance(value, Role):
        return value
    name = str(value or "").strip().lower()
    if name in USER_ROLES:
        return Role.USER
    if name in BOT_ROLES:
        return Role.BOT
    return Role.UNKNOWN


def _content_of(msg: dict) -> str:
    for key in ("content", "text", "message"):
        value = msg.get(key)
        if value is None or value == "":
            continue
        return value if isinstance(value, str) else str(value)
    return ""


def _timestamp_text(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    if isinstance(value, str):
        return value
    dt = parse_timestamp(value)
    return dt.isoformat() if dt else None


def _results_payload(value: Any):
    if value is None:
        return None
    if isinstance(value, (DecodedResults, PartialResults, EmptyResults)):
        return value
    return results_from_dict(value)


def normalize_messages(messages: list) -> List[Message]:
    normalized = []
    for index, msg in enumerate(messages or []):
        if isinstance(msg, Message):
            msg = msg.to_dict()
        elif not isinstance(msg, dict):
            msg = {"content": "" if msg is None else str(msg)}

        role = normalize_role(msg.get("role") or msg.get("sender") or "unknown")
        results = _results_payload(msg.get("results")) if role == Role.BOT else None

        normalized.append(Message(
            id=str(msg.get("id") or f"msg-{index}"),
            role=role,
            content=_content_of(msg),
            timestamp=_timestamp_text(msg.get("timestamp")),
            results=results,
        ))
    return normalized


def _mentions_any(messages: List[Message], phrases: List[str]) -> bool:
    text = " ".join(m.content.lower() for m in messages)
    return any(phrase in text for phrase in phrases)


def detect_escalation(messages: List[Message]) -> bool:
    return _mentions_any(messages, ESCALATION_PHRASES)


def detect_order(messages: List[Message]) -> bool:
    return _mentions_any(messages, ORDER_PHRASES)


def build_metadata(messages: List[Message], raw_metadata: dict) -> SessionMetadata:
    candidates = [m.timestamp for m in messages]
    raw_range = raw_metadata.get("dateRange")
    if isinstance(raw_range, dict):
        candidates.extend([raw_range.get("start"), raw_range.get("end")])
    candidates.append(raw_metadata.get("timestamp"))
    date_range = date_range_of(candidates)

    language = raw_metadata.get("language")
    fmt = raw_metadata.get("format")

    return SessionMetadata(
        date_range=DateRange(start=date_range["start"], end=date_range["end"]),
        message_count=len(messages),
        has_escalation=detect_escalation(messages),
        has_order=detect_order(messages),
        user_turns=sum(1 for m in messages if m.role == Role.USER),
        bot_turns=sum(1 for m in messages if m.role == Role.BOT),
        format=fmt if isinstance(fmt, str) else None,
        language=language if isinstance(language, str) else None,
    )


def normalize_session(raw: Union[dict, Session], source_file: str = None,
                      position: int = 0) -> Session:
    """Normalize one raw transcript dict (or an existing Session)."""
    if isinstance(raw, Session):
        raw = raw.to_dict()

    raw_metadata = raw.get("metadata") if isinstance(raw.get("metadata"), dict) else {}
    source_file = source_file or raw.get("sourceFile") or raw_metadata.get("sourceFile") or ""

    messages = normalize_messages(raw.get("messages") or [])
    session_id = raw.get("id")
    session_id = str(session_id) if session_id not in (None, "") \
        else generate_session_id(source_file, position)

    return Session(
        id=session_id,
        source_file=source_file,
        messages=messages,
        metadata=build_metadata(messages, raw_metadata),
    )


def normalize_transcripts(file_results: list) -> List[Session]:
    """Concatenate normalized sessions of every file that parsed without error."""
    sessions = []
    for result in file_results:
        if result.error:
            continue
        for position, transcript in enumerate(result.transcripts):
            sessions.append(normalize_session(transcript, result.filename, position))
    return sessions


def get_transcript_stats(sessions: List[Session]) -> dict:
    """Headline counts over a normalized session list."""
    if not sessions:
        return {
            "totalConversations": 0,
            "totalMessages": 0,
            "avgMessagesPerConversation": 0,
            "escalationRate": 0,
            "avgUserTurns": 0,
            "avgBotTurns": 0,
        }

    n = len(sessions)
    total_messages = sum(len(s.messages) for s in sessions)
    escalations = sum(1 for s in sessions if s.metadata.has_escalation)
    user_turns = sum(s.metadata.user_turns for s in sessions)
    bot_turns = sum(s.metadata.bot_turns for s in sessions)

    return {
        "totalConversations": n,
        "totalMessages": total_messages,
        "avgMessagesPerConversation": round(total_messages / n, 1),
        "escalationRate": round(escalations / n * 100, 1),
        "avgUserTurns": round(user_turns / n, 1),
        "avgBotTurns": round(bot_turns / n, 1),
    }
