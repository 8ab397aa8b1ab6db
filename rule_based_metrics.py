# Copyright (c) 2026 Mark Menkhus <mark.menkhus@gmail.com>
# SPDX-License-Identifier: MIT
"""
rule_based_metrics.py - Count-based metrics over normalized chatbot sessions

Extracts, without any model calls:
- Session overview (count, date range)
- Turn analysis (single vs multi-turn sessions)
- Query analysis (dedup + frequency, length, top search terms)
- Product insights (recommended product ids and styles from RESULTS lines)
- Bot response analysis (sessions with results, clarifying questions)
- Time patterns (busiest hour and day)
- User behavior (see query_behavior.py)

Every figure is a direct count over the parsed data. An empty session list
gives the same structure with zero values.

Usage:
    from rule_based_metrics import extract_metrics

    snapshot = extract_metrics(sessions)
    snapshot["queryAnalysis"]["totalQueries"]
"""

import math
import re
from collections import Counter
from datetime import datetime, timezone
from typing import Optional, List

from query_behavior import extract_user_behavior, word_count
from transcript_parser import parse_timestamp
from transcript_schema import Role, Session


TOP_QUERIES = 50
TOP_TERMS = 20
TOP_PRODUCTS = 20
STYLE_EXAMPLE_QUERIES = 5
CLARIFYING_EXAMPLES = 10
CLARIFYING_EXAMPLE_CHARS = 200

STOP_WORDS = {
    "a", "an", "the", "is", "are", "was", "were", "for", "of", "to", "in", "on",
    "with", "i", "me", "my", "you", "your", "it", "and", "or", "but", "do", "does",
    "can", "will", "what", "how", "where", "when", "any", "have", "has",
}

# Ordered; the first match classifies a bot message as a clarifying question
CLARIFYING_PATTERNS = [
    re.compile(r"which\s+(location|state|city|area|option)", re.IGNORECASE),
    re.compile(r"would you like me to", re.IGNORECASE),
    re.compile(r"can you (tell|clarify|specify)", re.IGNORECASE),
    re.compile(r"what (type|kind|model|year)", re.IGNORECASE),
    re.compile(r"are you looking for", re.IGNORECASE),
    re.compile(r"do you (want|need|prefer)", re.IGNORECASE),
    re.compile(r"could you (be more specific|clarify)", re.IGNORECASE),
]

DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]

DATA_LIMITATIONS = [
    "No user engagement/click data available",
    "No conversion or purchase data",
    "Cannot determine user satisfaction",
]


def format_timestamp(dt: Optional[datetime], include_time: bool = True) -> Optional[str]:
    """Display form, e.g. 'Jan 9, 2026, 05:09 AM' (UTC)."""
    if dt is None:
        return None
    dt = dt.astimezone(timezone.utc)
    text = f"{dt:%b} {dt.day}, {dt:%Y}"
    if include_time:
        text += f", {dt:%I:%M %p}"
    return text


def format_hour(hour: int) -> str:
    """5 -> '5:00 AM - 6:00 AM'"""
    def label(h):
        return f"{h % 12 or 12}:00 {'PM' if h >= 12 else 'AM'}"
    return f"{label(hour)} - {label((hour + 1) % 24)}"


def _pct(part: int, total: int) -> float:
    return round(part / total * 100, 1) if total > 0 else 0


# ============================================================================
# SESSION OVERVIEW
# ============================================================================

def extract_session_overview(sessions: List[Session]) -> dict:
    timestamps = []

    for session in sessions:
        for msg in session.messages:
            dt = parse_timestamp(msg.timestamp)
            if dt is not None:
                timestamps.append(dt)

        date_range = session.metadata.date_range
        for value in (date_range.start, date_range.end):
            dt = parse_timestamp(value)
            if dt is not None:
                timestamps.append(dt)

    date_range = {"start": None, "end": None, "startRaw": None, "endRaw": None, "totalDays": 0}

    if timestamps:
        start, end = min(timestamps), max(timestamps)
        total_days = math.ceil((end - start).total_seconds() / 86400) + 1
        date_range = {
            "start": format_timestamp(start),
            "end": format_timestamp(end),
            "startRaw": start.astimezone(timezone.utc).isoformat(),
            "endRaw": end.astimezone(timezone.utc).isoformat(),
            "totalDays": max(1, total_days),
        }

    return {
        "totalSessions": len(sessions),
        "dateRange": date_range,
    }


# ============================================================================
# TURN ANALYSIS
# ============================================================================

def extract_turn_analysis(sessions: List[Session]) -> dict:
    single_turn = 0
    multi_turn = 0
    total_user = 0
    total_bot = 0
    max_turns = 0

    for session in sessions:
        user_turns = len(session.messages_by_role(Role.USER))
        if user_turns == 1:
            single_turn += 1
        elif user_turns > 1:
            multi_turn += 1

        total_user += user_turns
        total_bot += len(session.messages_by_role(Role.BOT))
        max_turns = max(max_turns, user_turns)

    return {
        "singleTurnSessions": single_turn,
        "multiTurnSessions": multi_turn,
        "avgTurnsPerSession": round(total_user / len(sessions), 2) if sessions else 0,
        "maxTurnsInSession": max_turns,
        "totalUserMessages": total_user,
        "totalBotMessages": total_bot,
    }


# ============================================================================
# QUERY ANALYSIS
# ============================================================================

def collect_queries(sessions: List[Session]) -> List[str]:
    """Every non-empty user message, trimmed, in order."""
    queries = []
    for session in sessions:
        for msg in session.messages_by_role(Role.USER):
            query = (msg.content or "").strip()
            if query:
                queries.append(query)
    return queries


def extract_query_analysis(sessions: List[Session]) -> dict:
    all_queries = collect_queries(sessions)

    # Insertion order is first-seen order; sorted() is stable on ties
    frequency = {}
    for query in all_queries:
        key = query.lower()
        if key not in frequency:
            frequency[key] = {"query": query, "frequency": 0}
        frequency[key]["frequency"] += 1
    unique_queries = sorted(frequency.values(), key=lambda q: -q["frequency"])

    single_word = 0
    multi_word = 0
    total_words = 0
    for query in all_queries:
        n = word_count(query)
        total_words += n
        if n == 1:
            single_word += 1
        else:
            multi_word += 1

    terms = Counter()
    for query in all_queries:
        for word in query.lower().split():
            if len(word) > 2 and word not in STOP_WORDS:
                terms[word] += 1

    return {
        "totalQueries": len(all_queries),
        "uniqueQueryCount": len(unique_queries),
        "uniqueQueries": unique_queries[:TOP_QUERIES],
        "allUniqueQueries": unique_queries,
        "queryLengthAnalysis": {
            "singleWordQueries": single_word,
            "multiWordQueries": multi_word,
            "avgWordsPerQuery": round(total_words / len(all_queries), 2) if all_queries else 0,
        },
        "topSearchTerms": [{"term": t, "count": c} for t, c in terms.most_common(TOP_TERMS)],
    }


# ============================================================================
# PRODUCT INSIGHTS
# ============================================================================

def extract_product_insights(sessions: List[Session]) -> dict:
    occurrences = []
    product_frequency = Counter()
    product_queries = {}
    style_frequency = Counter()
    style_queries = {}
    style_mentions = 0

    for session in sessions:
        user_query = session.first_query or "unknown"

        for msg in session.messages_by_role(Role.BOT):
            if msg.results is None:
                continue

            for product_id in msg.results.product_ids():
                occurrences.append({"productId": product_id, "query": user_query})
                product_frequency[product_id] += 1
                # dict as an ordered set
                product_queries.setdefault(product_id, {})[user_query] = None

            for style in msg.results.style_names():
                style = style.strip()
                if not style:
                    continue
                style_mentions += 1
                style_frequency[style] += 1
                style_queries.setdefault(style, {})[user_query] = None

    top_products = [
        {
            "productId": product_id,
            "frequency": frequency,
            "associatedQueries": list(product_queries[product_id]),
        }
        for product_id, frequency in product_frequency.most_common(TOP_PRODUCTS)
    ]

    top_styles = [
        {
            "style": style,
            "frequency": frequency,
            "exampleQueries": list(style_queries[style])[:STYLE_EXAMPLE_QUERIES],
        }
        for style, frequency in style_frequency.most_common()
    ]

    return {
        "totalProductsRecommended": len(occurrences),
        "uniqueProductsRecommended": len(product_frequency),
        "topRecommendedProducts": top_products,
        "allProductIds": list(product_frequency),
        "productOccurrences": occurrences,
        "styleAnalysis": {
            "totalStyles": len(style_frequency),
            "totalStyleMentions": style_mentions,
            "topStyles": top_styles,
            "allStyles": list(style_frequency),
        },
    }


# ============================================================================
# BOT RESPONSE ANALYSIS
# ============================================================================

def is_clarifying_question(text: str) -> bool:
    return any(pattern.search(text) for pattern in CLARIFYING_PATTERNS)


def extract_bot_response_analysis(sessions: List[Session]) -> dict:
    with_results = 0
    without_results = 0
    products_in_results = 0
    product_lists = 0
    clarifying_count = 0
    clarifying_examples = []

    for session in sessions:
        has_results = False

        for msg in session.messages_by_role(Role.BOT):
            if msg.results is not None:
                has_results = True
                if msg.results.has_product_list:
                    products_in_results += len(msg.results.product_ids())
                    product_lists += 1

            if msg.content and is_clarifying_question(msg.content):
                clarifying_count += 1
                if len(clarifying_examples) < CLARIFYING_EXAMPLES:
                    clarifying_examples.append({
                        "content": msg.content[:CLARIFYING_EXAMPLE_CHARS],
                        "sessionId": session.id,
                    })

        if has_results:
            with_results += 1
        else:
            without_results += 1

    total = len(sessions)
    return {
        "sessionsWithResults": {"count": with_results, "percentage": _pct(with_results, total)},
        "sessionsWithoutResults": {"count": without_results, "percentage": _pct(without_results, total)},
        "avgProductsReturned": round(products_in_results / product_lists, 1) if product_lists else 0,
        "clarifyingQuestions": {"count": clarifying_count, "examples": clarifying_examples},
    }


# ============================================================================
# TIME PATTERNS
# ============================================================================

def _busiest(counts: dict, order: list):
    """Key with the highest count; ties go to the key earliest in order."""
    best = None
    best_count = 0
    for key in order:
        if counts.get(key, 0) > best_count:
            best, best_count = key, counts[key]
    return best


def extract_time_patterns(sessions: List[Session]) -> dict:
    hour_counts = Counter()
    day_counts = Counter()

    for session in sessions:
        if not session.messages:
            continue
        # Keep the offset the log was written in
        dt = parse_timestamp(session.messages[0].timestamp)
        if dt is None:
            continue
        hour_counts[dt.hour] += 1
        day_counts[DAY_NAMES[(dt.weekday() + 1) % 7]] += 1

    busiest_hour = _busiest(hour_counts, list(range(24)))
    busiest_day = _busiest(day_counts, DAY_NAMES)

    return {
        "busiestHour": format_hour(busiest_hour) if busiest_hour is not None else None,
        "busiestHourValue": busiest_hour,
        "busiestDay": busiest_day,
        "hourlyDistribution": {str(h): hour_counts[h] for h in sorted(hour_counts)},
        "dailyDistribution": {d: day_counts[d] for d in DAY_NAMES if d in day_counts},
    }


# ============================================================================
# SNAPSHOT
# ============================================================================

def data_quality_notes(sessions: List[Session]) -> dict:
    return {
        "totalTranscriptsAnalyzed": len(sessions),
        "extractionMethod": "rule-based",
        "dataLimitations": list(DATA_LIMITATIONS),
    }


def extract_metrics(sessions: List[Session]) -> dict:
    """Compute the full metrics snapshot. Each sub-report is independent."""
    sessions = list(sessions or [])
    return {
        "sessionOverview": extract_session_overview(sessions),
        "turnAnalysis": extract_turn_analysis(sessions),
        "queryAnalysis": extract_query_analysis(sessions),
        "productInsights": extract_product_insights(sessions),
        "botResponseAnalysis": extract_bot_response_analysis(sessions),
        "timePatterns": extract_time_patterns(sessions),
        "userBehavior": extract_user_behavior(sessions),
        "dataQualityNotes": data_quality_notes(sessions),
    }
