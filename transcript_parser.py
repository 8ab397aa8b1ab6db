# Copyright (c) 2026 Mark Menkhus <mark.menkhus@gmail.com>
# SPDX-License-Identifier: MIT
"""
transcript_parser.py - Recover conversations from chatbot log files

Three grammars are recognized, tried in this order:

1. JSON: an array of session objects, or a single session object
2. Timestamped log:
       [2026-01-09T05:09:10.591551+00:00] CONVERSATION STARTED
       [2026-01-09T05:09:10.591551+00:00] USER: red dress
       [2026-01-09T05:09:15.201538+00:00] AI: Here are some options
       [2026-01-09T05:09:15.201538+00:00] RESULTS: STYLES: [...]; PRODUCTS [[...]]
3. Loose role-prefixed text:
       User: hello
       Bot: hi, how can I help?

Anything else becomes one session holding a single unknown-role message with
the raw text. Parsing never raises; the output is a list of raw transcript
dicts for session_normalizer.py.

Usage:
    from transcript_parser import parse_transcript_content

    raw_sessions = parse_transcript_content(text, "session_abc_transcript.txt")
"""

import json
import re
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any, Union

from results_decoder import decode_results


FORMAT_JSON_ARRAY = "json-array"
FORMAT_JSON_OBJECT = "json-object"
FORMAT_TIMESTAMPED = "timestamped-log"
FORMAT_LOOSE_TEXT = "loose-text"
FORMAT_UNRECOGNIZED = "unrecognized"

_TIMESTAMP = r"\d{4}-\d{2}-\d{2}T[\d:.]+(?:Z|[+-][\d:]+)?"
_ROLE_WORDS = r"USER|AI|RESULTS|CONVERSATION STARTED"

TIMESTAMPED_DETECT = re.compile(rf"\[({_TIMESTAMP})\]\s*({_ROLE_WORDS})\b", re.IGNORECASE)
TIMESTAMPED_LINE = re.compile(
    rf"^\[({_TIMESTAMP})\]\s*({_ROLE_WORDS})\b(?:\s*:\s*)?(.*)$", re.IGNORECASE
)
SEPARATOR_LINE = re.compile(r"^={10,}$")
SESSION_FILENAME = re.compile(r"session_([a-f0-9-]+)_transcript", re.IGNORECASE)

LOOSE_USER_LINE = re.compile(r"^(user|customer|human|visitor)\s*[:\-]\s*(.+)", re.IGNORECASE)
LOOSE_BOT_LINE = re.compile(r"^(bot|assistant|agent|chatbot|ai)\s*[:\-]\s*(.+)", re.IGNORECASE)
LOOSE_SESSION_LINE = re.compile(r"^(session|conversation)\s*[:\-]\s*(.+)", re.IGNORECASE)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 string (or epoch milliseconds) into an aware datetime.

    Naive values are taken as UTC so every result can be compared. Returns
    None for anything that is not a valid date.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def to_iso_utc(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).isoformat()


def date_range_of(timestamps: list) -> Dict[str, Optional[str]]:
    """Min/max of the parseable timestamps, as UTC ISO strings."""
    parsed = [dt for dt in (parse_timestamp(t) for t in timestamps) if dt is not None]
    if not parsed:
        return {"start": None, "end": None}
    return {"start": to_iso_utc(min(parsed)), "end": to_iso_utc(max(parsed))}


# =============================================================================
# FORMAT DETECTION
# =============================================================================

def _load_json(content: str):
    """Return the decoded JSON document, or None when content is not JSON."""
    try:
        data = json.loads(content)
    except (ValueError, RecursionError):
        return None
    if isinstance(data, (list, dict)):
        return data
    # A bare string/number is not a transcript document
    return None


def detect_format(content: str, filename: str = "") -> str:
    """Decide which grammar applies to content."""
    data = _load_json(content)
    if isinstance(data, list):
        return FORMAT_JSON_ARRAY
    if isinstance(data, dict):
        return FORMAT_JSON_OBJECT
    if TIMESTAMPED_DETECT.search(content):
        return FORMAT_TIMESTAMPED
    return FORMAT_LOOSE_TEXT


def session_id_from_filename(filename: str) -> str:
    match = SESSION_FILENAME.search(filename or "")
    if match:
        return match.group(1)
    return filename


# =============================================================================
# TIMESTAMPED LOG PARSER
# =============================================================================

@dataclass
class NoOpenMessage:
    """No message is accepting continuation lines."""


@dataclass
class OpenMessage:
    """A message still collecting continuation lines."""
    role: str
    timestamp: Optional[str]
    parts: List[str] = field(default_factory=list)

    def close(self) -> dict:
        return {
            "role": self.role,
            "content": " ".join(p for p in self.parts if p),
            "timestamp": self.timestamp,
        }


ParseState = Union[NoOpenMessage, OpenMessage]


def continue_message(state: ParseState, line: str) -> ParseState:
    """Append a continuation line to the open message; unattributable lines are dropped."""
    if isinstance(state, OpenMessage):
        return OpenMessage(state.role, state.timestamp, state.parts + [line])
    return state


def close_message(state: ParseState, messages: list) -> ParseState:
    if isinstance(state, OpenMessage):
        messages.append(state.close())
    return NoOpenMessage()


def attach_results(messages: list, payload) -> bool:
    """
    Attach a RESULTS payload to the last emitted message.

    Only a bot message without a payload accepts it; otherwise the payload
    is dropped and False is returned.
    """
    if not messages:
        return False
    last = messages[-1]
    if last.get("role") != "bot" or last.get("results") is not None:
        return False
    last["results"] = payload
    return True


def _new_conversation(session_id: str, filename: str) -> dict:
    return {"id": session_id, "messages": [], "timestamps": [], "sourceFile": filename}


def _finish_conversation(convo: dict) -> dict:
    return {
        "id": convo["id"],
        "messages": convo["messages"],
        "metadata": {
            "dateRange": date_range_of(convo["timestamps"]),
            "sourceFile": convo["sourceFile"],
            "format": FORMAT_TIMESTAMPED,
        },
    }


def parse_timestamped_transcript(content: str, filename: str, verbose: bool = False) -> list:
    """
    Parse the `[timestamp] ROLE: text` grammar.

    A file is normally one conversation. A CONVERSATION STARTED marker that
    follows messages opens a further session in the same file.
    A file that yields no message at all falls back to one unknown message
    holding the raw text.
    """
    base_id = session_id_from_filename(filename)
    conversations: List[dict] = []
    current = _new_conversation(base_id, filename)
    state: ParseState = NoOpenMessage()

    for line in content.splitlines():
        stripped = line.strip()

        if not stripped or SEPARATOR_LINE.match(stripped):
            continue

        match = TIMESTAMPED_LINE.match(stripped)
        if not match:
            if verbose and "RESULTS" in stripped:
                print(f"Warning: RESULTS line not matching grammar in {filename}: "
                      f"{stripped[:150]}", file=sys.stderr)
            state = continue_message(state, stripped)
            continue

        timestamp, role_word, text = match.groups()
        role_word = " ".join(role_word.upper().split())
        state = close_message(state, current["messages"])

        if role_word == "CONVERSATION STARTED":
            if current["messages"]:
                conversations.append(_finish_conversation(current))
                next_id = f"{base_id}-{len(conversations) + 1}"
                current = _new_conversation(next_id, filename)
            current["timestamps"].append(timestamp)
            continue

        current["timestamps"].append(timestamp)

        if role_word == "RESULTS":
            attach_results(current["messages"], decode_results(text))
            continue

        role = "user" if role_word == "USER" else "bot"
        state = OpenMessage(role=role, timestamp=timestamp, parts=[text.strip()])

    close_message(state, current["messages"])
    if current["messages"]:
        conversations.append(_finish_conversation(current))

    return conversations or _unrecognized(content, filename)


# =============================================================================
# LOOSE TEXT PARSER
# =============================================================================

def _unrecognized(content: str, filename: str) -> list:
    return [{
        "id": filename,
        "messages": [{"role": "unknown", "content": content}],
        "metadata": {"sourceFile": filename, "format": FORMAT_UNRECOGNIZED},
    }]


def parse_loose_text_transcript(content: str, filename: str) -> list:
    """Parse `User: ...` / `Bot: ...` style logs without timestamps."""
    conversations = []
    current = {"id": filename, "messages": [],
               "metadata": {"sourceFile": filename, "format": FORMAT_LOOSE_TEXT}}

    for line in content.splitlines():
        stripped = line.strip()
        if not stripped:
            continue

        session_match = LOOSE_SESSION_LINE.match(stripped)
        user_match = LOOSE_USER_LINE.match(stripped)
        bot_match = LOOSE_BOT_LINE.match(stripped)

        if session_match:
            if current["messages"]:
                conversations.append(current)
            current = {"id": session_match.group(2).strip(), "messages": [],
                       "metadata": {"sourceFile": filename, "format": FORMAT_LOOSE_TEXT}}
        elif user_match:
            current["messages"].append({"role": "user", "content": user_match.group(2).strip()})
        elif bot_match:
            current["messages"].append({"role": "bot", "content": bot_match.group(2).strip()})
        elif current["messages"]:
            last = current["messages"][-1]
            last["content"] += " " + stripped

    if current["messages"]:
        conversations.append(current)

    return conversations or _unrecognized(content, filename)


# =============================================================================
# JSON SESSIONS
# =============================================================================

def _json_session(item: Any, default_id: str, filename: str, fmt: str) -> dict:
    if not isinstance(item, dict):
        return {
            "id": default_id,
            "messages": [{"content": "" if item is None else str(item)}],
            "metadata": {"sourceFile": filename, "format": fmt},
        }

    messages = item.get("messages")
    if not isinstance(messages, list):
        # Flat records are their own single message
        messages = [item]

    return {
        "id": str(item.get("session_id") or item.get("id") or default_id),
        "messages": messages,
        "metadata": {
            "timestamp": item.get("timestamp"),
            "language": item.get("language"),
            "sourceFile": filename,
            "format": fmt,
        },
    }


def parse_json_transcripts(data: Union[list, dict], filename: str) -> list:
    if isinstance(data, list):
        return [
            _json_session(item, f"{filename}-{index}", filename, FORMAT_JSON_ARRAY)
            for index, item in enumerate(data)
        ]
    return [_json_session(data, filename, filename, FORMAT_JSON_OBJECT)]


# =============================================================================
# ENTRY POINT
# =============================================================================

def parse_transcript_content(content: Union[str, bytes], filename: str,
                             verbose: bool = False) -> list:
    """
    Parse one file's content into raw transcript dicts.

    Each dict has: id, messages (role/content/timestamp/results dicts) and
    metadata. Never raises for any text input.
    """
    if isinstance(content, bytes):
        content = content.decode("utf-8", errors="replace")
    content = (content or "").lstrip("\ufeff")

    data = _load_json(content)
    if data is not None:
        return parse_json_transcripts(data, filename)

    if TIMESTAMPED_DETECT.search(content):
        return parse_timestamped_transcript(content, filename, verbose=verbose)

    return parse_loose_text_transcript(content, filename)
