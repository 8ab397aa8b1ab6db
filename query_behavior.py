# Copyright (c) 2026 Mark Menkhus <mark.menkhus@gmail.com>
# SPDX-License-Identifier: MIT
"""
query_behavior.py - Classify how users talk to the chatbot

Every user query gets:
- one complexity tier (singleWord, simplePhrase, advancedSearch, naturalLanguage)
- one exclusive intent bucket (productSearch, locationQuery, supportRequest,
  categoryBrowse, specificItem)
- independent signals (price, specific item, location, support) that can
  overlap with any bucket

Sessions where the user typed the same query more than once are counted as
repeats. A fixed rule set turns the totals into advisory insights.

Usage:
    from query_behavior import classify_query, extract_user_behavior

    classify_query("iPad Pro near Austin under $500").complexity
    behavior = extract_user_behavior(sessions)
"""

import re
from collections import Counter
from dataclasses import dataclass
from typing import List

from transcript_schema import Role, Session


COMPLEXITY_TIERS = ["singleWord", "simplePhrase", "advancedSearch", "naturalLanguage"]
INTENT_BUCKETS = ["productSearch", "locationQuery", "supportRequest", "categoryBrowse", "specificItem"]
EXAMPLES_PER_TIER = 5
REPEAT_EXAMPLES = 5

QUERY_PATTERNS = {
    "location": re.compile(
        r"\b(near|in|at|around|close to|nearby)\s+(me|my|location|\w+,?\s*\w*)", re.IGNORECASE),
    "price": re.compile(
        r"\b(price|cost|under|below|above|budget|\$\d+|cheap|expensive|affordable)", re.IGNORECASE),
    "support": re.compile(
        r"\b(help|issue|problem|error|can'?t|unable|locked|not working|broken)", re.IGNORECASE),
    "naturalLanguage": re.compile(
        r"\b(i'?m|i am|i want|i need|looking for|searching for|trying to find|do you have)",
        re.IGNORECASE),
    # Model numbers and SKUs: "XPS 13", "iphone 15", "item #", 4+ digit codes
    "specificItem": re.compile(
        r"\b([A-Z]{2,}\s*-?\s*\d+|\d{4,}|model|sku|item\s*#)", re.IGNORECASE),
}


@dataclass
class QueryClassification:
    """How one user query was classified."""
    query: str
    word_count: int = 0
    complexity: str = "simplePhrase"
    intent: str = "productSearch"

    # Non-exclusive signals
    has_location: bool = False
    has_price: bool = False
    has_support: bool = False
    has_specific_item: bool = False


def word_count(text: str) -> int:
    return len(text.split())


def classify_query(query: str) -> QueryClassification:
    """Assign complexity tier, intent bucket and signals to a single query."""
    query = query.strip()
    c = QueryClassification(query=query, word_count=word_count(query))

    c.has_location = bool(QUERY_PATTERNS["location"].search(query))
    c.has_price = bool(QUERY_PATTERNS["price"].search(query))
    c.has_support = bool(QUERY_PATTERNS["support"].search(query))
    c.has_specific_item = bool(QUERY_PATTERNS["specificItem"].search(query))

    # Complexity tier, first rule wins
    if c.word_count == 1:
        c.complexity = "singleWord"
    elif QUERY_PATTERNS["naturalLanguage"].search(query):
        c.complexity = "naturalLanguage"
    elif c.word_count >= 5 or (c.has_location and c.has_price):
        c.complexity = "advancedSearch"
    else:
        c.complexity = "simplePhrase"

    # Intent bucket, first rule wins
    if c.has_support:
        c.intent = "supportRequest"
    elif c.has_location:
        c.intent = "locationQuery"
    elif c.has_specific_item:
        c.intent = "specificItem"
    elif c.word_count <= 2:
        c.intent = "categoryBrowse"
    else:
        c.intent = "productSearch"

    return c


def _percent(part: int, total: int) -> int:
    # Half-up rounding to whole percent
    if total <= 0:
        return 0
    return int(part * 100 / total + 0.5)


def generate_behavior_insights(complexity: dict, repeats: dict, intents: dict,
                               total_queries: int, total_sessions: int) -> List[dict]:
    """Turn aggregate thresholds into advisory messages."""
    insights = []

    single_word_pct = (complexity["singleWord"] / total_queries * 100) if total_queries > 0 else 0
    if single_word_pct > 50:
        insights.append({
            "type": "warning",
            "title": "Basic Search Behavior",
            "message": f"{int(single_word_pct + 0.5)}% of queries are single words. "
                       "Users may not know the chatbot can handle complex searches.",
            "recommendation": 'Consider adding prompts like "Try: iPad Pro near Austin under $500"',
        })
    elif complexity["advancedSearch"] > complexity["singleWord"]:
        insights.append({
            "type": "positive",
            "title": "Advanced Search Usage",
            "message": "Users are leveraging advanced search features with multi-criteria queries.",
            "recommendation": "Continue promoting complex search capabilities.",
        })

    if repeats["sessionsWithRepeats"] > total_sessions * 0.1:
        insights.append({
            "type": "warning",
            "title": "Query Repetition Detected",
            "message": f"{repeats['percentage']}% of sessions have repeated queries, "
                       "suggesting users aren't finding what they need.",
            "recommendation": "Review bot responses for these repeated queries and improve clarity.",
        })

    if intents["locationQuery"] > total_queries * 0.2:
        insights.append({
            "type": "info",
            "title": "Location-Based Searches Popular",
            "message": "Many users include location in their searches.",
            "recommendation": "Ensure location-based filtering is prominent in the UI.",
        })

    if intents["supportRequest"] > 0:
        insights.append({
            "type": "warning",
            "title": "Support Requests via Chatbot",
            "message": f"{intents['supportRequest']} queries appear to be support requests, "
                       "not product searches.",
            "recommendation": "Consider adding a support handoff option for non-product queries.",
        })

    return insights


def extract_user_behavior(sessions: List[Session]) -> dict:
    """Complexity, intent, signal and repetition report over all user queries."""
    complexity = {tier: 0 for tier in COMPLEXITY_TIERS}
    examples = {tier: [] for tier in COMPLEXITY_TIERS}
    intents = {bucket: 0 for bucket in INTENT_BUCKETS}
    signals = {"priceInquiry": 0, "specificItem": 0, "location": 0, "support": 0}
    repeats = {"sessionsWithRepeats": 0, "totalRepeats": 0, "examples": []}

    for session in sessions:
        session_queries = []

        for msg in session.messages_by_role(Role.USER):
            query = (msg.content or "").strip()
            if not query:
                continue
            session_queries.append(query.lower())

            c = classify_query(query)
            complexity[c.complexity] += 1
            if len(examples[c.complexity]) < EXAMPLES_PER_TIER:
                examples[c.complexity].append(query)

            intents[c.intent] += 1
            signals["priceInquiry"] += c.has_price
            signals["specificItem"] += c.has_specific_item
            signals["location"] += c.has_location
            signals["support"] += c.has_support

        # Counter keeps first-seen order for the examples below
        seen = Counter(session_queries)
        excess = len(session_queries) - len(seen)
        if excess > 0:
            repeats["sessionsWithRepeats"] += 1
            repeats["totalRepeats"] += excess
            for q, count in seen.items():
                if count > 1 and len(repeats["examples"]) < REPEAT_EXAMPLES:
                    repeats["examples"].append({
                        "query": q,
                        "count": count,
                        "sessionId": session.id,
                    })

    total_queries = sum(complexity.values())
    repeats["percentage"] = _percent(repeats["sessionsWithRepeats"], len(sessions))

    query_complexity = dict(complexity)
    query_complexity["total"] = total_queries
    query_complexity["percentages"] = {
        tier: _percent(complexity[tier], total_queries) for tier in COMPLEXITY_TIERS
    }
    query_complexity["examples"] = examples

    return {
        "queryComplexity": query_complexity,
        "repeatedQueries": repeats,
        "intentCategories": intents,
        "querySignals": signals,
        "insights": generate_behavior_insights(
            complexity, repeats, intents, total_queries, len(sessions)),
    }
