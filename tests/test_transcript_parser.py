# Copyright (c) 2026 Mark Menkhus <mark.menkhus@gmail.com>
# SPDX-License-Identifier: MIT
"""Tests for transcript_parser.py"""

from transcript_parser import (
    FORMAT_JSON_ARRAY,
    FORMAT_JSON_OBJECT,
    FORMAT_LOOSE_TEXT,
    FORMAT_TIMESTAMPED,
    FORMAT_UNRECOGNIZED,
    NoOpenMessage,
    OpenMessage,
    attach_results,
    continue_message,
    date_range_of,
    detect_format,
    parse_timestamp,
    parse_transcript_content,
    session_id_from_filename,
)
from transcript_schema import DecodedResults


def test_detect_format(timestamped_log, loose_text, json_array):
    assert detect_format(json_array) == FORMAT_JSON_ARRAY
    assert detect_format('{"messages": []}') == FORMAT_JSON_OBJECT
    assert detect_format(timestamped_log) == FORMAT_TIMESTAMPED
    assert detect_format(loose_text) == FORMAT_LOOSE_TEXT
    # JSON scalars are not transcript documents
    assert detect_format('"just a string"') == FORMAT_LOOSE_TEXT


def test_session_id_from_filename():
    assert session_id_from_filename("session_ab12-cd34_transcript.txt") == "ab12-cd34"
    assert session_id_from_filename("chat.txt") == "chat.txt"


def test_parse_timestamp():
    assert parse_timestamp("2026-01-09T05:09:10.591551+00:00").hour == 5
    assert parse_timestamp("2026-01-09T05:09:10Z").tzinfo is not None
    assert parse_timestamp("2026-01-09T05:09:10").tzinfo is not None
    assert parse_timestamp("not a date") is None
    assert parse_timestamp(None) is None
    assert parse_timestamp(0).year == 1970


def test_date_range_ignores_invalid():
    r = date_range_of(["2026-01-09T06:00:00+01:00", None, "bogus", "2026-01-09T04:00:00Z"])
    assert r == {"start": "2026-01-09T04:00:00+00:00", "end": "2026-01-09T05:00:00+00:00"}
    assert date_range_of([]) == {"start": None, "end": None}


def test_continue_message_is_pure():
    state = OpenMessage(role="bot", timestamp=None, parts=["a"])
    after = continue_message(state, "b")
    assert state.parts == ["a"]
    assert after.close()["content"] == "a b"
    assert isinstance(continue_message(NoOpenMessage(), "x"), NoOpenMessage)


def test_attach_results_only_to_bot_without_payload():
    payload = DecodedResults(products=["p1"])
    messages = [{"role": "user", "content": "hi"}]
    assert attach_results(messages, payload) is False
    assert "results" not in messages[0]

    messages.append({"role": "bot", "content": "here"})
    assert attach_results(messages, payload) is True
    assert attach_results(messages, DecodedResults(products=["p2"])) is False
    assert messages[-1]["results"] is payload
    assert attach_results([], payload) is False


def test_timestamped_splits_on_conversation_started(timestamped_log):
    sessions = parse_transcript_content(timestamped_log, "session_abc123_transcript.txt")
    assert [s["id"] for s in sessions] == ["abc123", "abc123-2"]
    assert len(sessions[0]["messages"]) == 4
    assert len(sessions[1]["messages"]) == 2
    assert sessions[0]["metadata"]["format"] == FORMAT_TIMESTAMPED


def test_continuation_lines_merge(timestamped_log):
    first = parse_transcript_content(timestamped_log, "x.txt")[0]
    bot = first["messages"][1]
    assert bot["role"] == "bot"
    assert bot["content"] == "Here are some options for you today"
    assert bot["results"].product_ids() == ["p1", "p2"]


def test_results_after_user_is_dropped():
    text = ("[2026-01-09T05:09:12Z] USER: hi\n"
            "[2026-01-09T05:09:13Z] RESULTS: PRODUCTS ['p1']\n")
    session = parse_transcript_content(text, "x.txt")[0]
    assert session["messages"] == [
        {"role": "user", "content": "hi", "timestamp": "2026-01-09T05:09:12Z"}
    ]


def test_results_line_closes_open_message():
    text = ("[2026-01-09T05:09:12Z] AI: hello\n"
            "[2026-01-09T05:09:13Z] RESULTS: PRODUCTS ['p1']\n"
            "stray line\n")
    bot = parse_transcript_content(text, "x.txt")[0]["messages"][0]
    assert bot["content"] == "hello"


def test_leading_marker_makes_no_empty_session():
    text = ("[2026-01-09T05:09:10Z] CONVERSATION STARTED\n"
            "[2026-01-09T05:09:12Z] USER: hi\n")
    sessions = parse_transcript_content(text, "x.txt")
    assert len(sessions) == 1
    assert sessions[0]["metadata"]["dateRange"]["start"] == "2026-01-09T05:09:10+00:00"


def test_verbose_warns_on_unreadable_results(capsys):
    text = ("[2026-01-09T05:09:12Z] AI: hello\n"
            "RESULTS without a timestamp\n")
    parse_transcript_content(text, "x.txt", verbose=True)
    assert "RESULTS line not matching" in capsys.readouterr().err


def test_loose_text(loose_text):
    sessions = parse_transcript_content(loose_text, "b.txt")
    assert len(sessions) == 1
    assert sessions[0]["messages"] == [
        {"role": "user", "content": "hello"},
        {"role": "bot", "content": "hi"},
    ]


def test_loose_text_session_markers_and_continuation():
    text = "Session: one\nUser: hi\nthere\nBot: hello\nSession: two\nCustomer - help\n"
    sessions = parse_transcript_content(text, "b.txt")
    assert [s["id"] for s in sessions] == ["one", "two"]
    assert sessions[0]["messages"][0]["content"] == "hi there"


def test_unrecognized_fallback():
    sessions = parse_transcript_content("just some notes", "notes.txt")
    assert len(sessions) == 1
    assert sessions[0]["messages"] == [{"role": "unknown", "content": "just some notes"}]
    assert sessions[0]["metadata"]["format"] == FORMAT_UNRECOGNIZED


def test_json_array(json_array):
    sessions = parse_transcript_content(json_array, "chats.json")
    assert [s["id"] for s in sessions] == ["s1", "s2"]
    assert sessions[0]["metadata"]["language"] == "en"
    assert sessions[0]["metadata"]["format"] == FORMAT_JSON_ARRAY


def test_json_object_flat_record():
    sessions = parse_transcript_content('{"role": "user", "content": "hi"}', "one.json")
    assert sessions[0]["id"] == "one.json"
    assert sessions[0]["messages"] == [{"role": "user", "content": "hi"}]
    assert sessions[0]["metadata"]["format"] == FORMAT_JSON_OBJECT


def test_bytes_with_bom():
    sessions = parse_transcript_content("\ufeffUser: hi\n".encode("utf-8"), "b.txt")
    assert sessions[0]["messages"][0]["content"] == "hi"


def test_invalid_timestamp_kept_out_of_range():
    text = ("[2026-01-09T05:09:12Z] USER: hello\n"
            "[2026-13-45T99:99:00Z] USER: hi\n"
            "[2026-01-09T05:09:20Z] AI: hey\n")
    session = parse_transcript_content(text, "x.txt")[0]
    assert [m["content"] for m in session["messages"]] == ["hello", "hi", "hey"]
    assert session["messages"][1]["timestamp"] == "2026-13-45T99:99:00Z"
    assert session["metadata"]["dateRange"] == {
        "start": "2026-01-09T05:09:12+00:00",
        "end": "2026-01-09T05:09:20+00:00",
    }


def test_timestamped_without_messages_falls_back():
    text = "[2026-01-09T05:09:10Z] CONVERSATION STARTED\n"
    sessions = parse_transcript_content(text, "x.txt")
    assert len(sessions) == 1
    assert sessions[0]["messages"] == [{"role": "unknown", "content": text}]
    assert sessions[0]["metadata"]["format"] == FORMAT_UNRECOGNIZED


def test_mid_line_marker_keeps_text():
    text = "notes: see [2026-01-09T05:09:10Z] USER entry in the log\n"
    sessions = parse_transcript_content(text, "notes.txt")
    assert sessions[0]["messages"][0]["role"] == "unknown"
    assert sessions[0]["messages"][0]["content"] == text
