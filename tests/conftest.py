# Copyright (c) 2026 Mark Menkhus <mark.menkhus@gmail.com>
# SPDX-License-Identifier: MIT
"""Shared fixtures: sample transcripts and a session factory."""

import pytest

from session_normalizer import normalize_session


TIMESTAMPED_LOG = """\
[2026-01-09T05:09:10.591551+00:00] CONVERSATION STARTED
[2026-01-09T05:09:12+00:00] USER: red dress
[2026-01-09T05:09:15+00:00] AI: Here are some options
for you today
[2026-01-09T05:09:15+00:00] RESULTS: STYLES: ['Bold']; PRODUCTS [['p1','p2']]
[2026-01-09T05:10:00+00:00] USER: Red Dress
[2026-01-09T05:10:02+00:00] AI: Anything else?
==================================================
[2026-01-09T06:00:00+00:00] CONVERSATION STARTED
[2026-01-09T06:00:05+00:00] USER: shoes near me
[2026-01-09T06:00:09+00:00] AI: Which location do you prefer?
"""

LOOSE_TEXT = """\
User: hello
Bot: hi
"""

JSON_ARRAY = """\
[
  {"session_id": "s1", "timestamp": "2026-02-01T10:00:00Z", "language": "en",
   "escalation_flag": true,
   "messages": [
     {"role": "customer", "content": "where is my order status"},
     {"role": "assistant", "text": "Let me check",
      "results": {"styles": ["Classic"], "products": [["p9"]]}}
   ]},
  {"id": "s2", "messages": [{"sender": "visitor", "message": "hi"}]}
]
"""


@pytest.fixture
def timestamped_log():
    return TIMESTAMPED_LOG


@pytest.fixture
def loose_text():
    return LOOSE_TEXT


@pytest.fixture
def json_array():
    return JSON_ARRAY


@pytest.fixture
def make_session():
    """Build a normalized Session from (role, content[, timestamp]) tuples."""
    def _make(session_id, turns, source_file="test.txt"):
        messages = []
        for turn in turns:
            role, content = turn[0], turn[1]
            msg = {"role": role, "content": content}
            if len(turn) > 2:
                msg["timestamp"] = turn[2]
            messages.append(msg)
        return normalize_session({"id": session_id, "messages": messages}, source_file)
    return _make
