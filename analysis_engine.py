# Copyright (c) 2026 Mark Menkhus <mark.menkhus@gmail.com>
# SPDX-License-Identifier: MIT
"""
analysis_engine.py - Run the rule-based analysis over normalized sessions

Stages reported to the progress callback, in order:
    parsing (10), metrics (25), behavior (35), scoring (70),
    recommendations (95), complete (100)

There is no model-backed stage: llmEnabled is always False. Issues,
recommendations and observations are derived from the rule-based insights
and the share of sessions that returned no results.

Usage:
    from analysis_engine import run_analysis
    from analysis_cache import AnalysisCache

    results = run_analysis(sessions, cache=AnalysisCache(),
                           on_progress=lambda stage, pct: print(stage, pct))
"""

import hashlib
import json
from datetime import datetime, timezone
from typing import Optional, List, Callable

from analysis_cache import AnalysisCache
from rule_based_metrics import extract_metrics
from transcript_schema import Session


TOP_SEARCHED_QUERIES = 15
NO_RESULTS_ISSUE_PERCENT = 50

# Recommendation order: problems first
INSIGHT_PRIORITY = {"warning": 0, "info": 1, "positive": 2}


def sessions_fingerprint(sessions: List[Session]) -> str:
    """SHA-256 over the sessions' JSON form; equal inputs give equal keys."""
    payload = json.dumps([s.to_dict() for s in sessions], sort_keys=True, default=str)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def _cached_metrics(sessions: List[Session], cache: Optional[AnalysisCache]) -> dict:
    if cache is None:
        return extract_metrics(sessions)

    key = sessions_fingerprint(sessions)
    metrics = cache.get(key)
    if metrics is None:
        metrics = extract_metrics(sessions)
        cache.set(key, metrics)
    return metrics


def find_issues(metrics: dict) -> list:
    """Warning insights plus a high no-results share, as potential issues."""
    issues = [
        {"title": i["title"], "severity": "warning", "description": i["message"]}
        for i in metrics["userBehavior"]["insights"] if i["type"] == "warning"
    ]

    without = metrics["botResponseAnalysis"]["sessionsWithoutResults"]
    if without["percentage"] > NO_RESULTS_ISSUE_PERCENT:
        issues.append({
            "title": "Sessions Without Results",
            "severity": "warning",
            "description": f"{without['percentage']}% of sessions ({without['count']}) "
                           "never returned a RESULTS payload.",
        })
    return issues


def build_recommendations(metrics: dict) -> list:
    insights = sorted(metrics["userBehavior"]["insights"],
                      key=lambda i: INSIGHT_PRIORITY.get(i["type"], len(INSIGHT_PRIORITY)))
    return [
        {
            "priority": rank,
            "title": i["title"],
            "recommendation": i["recommendation"],
            "type": i["type"],
        }
        for rank, i in enumerate(insights, start=1)
    ]


def build_observations(metrics: dict) -> dict:
    observations = {"positive": [], "info": []}
    for i in metrics["userBehavior"]["insights"]:
        if i["type"] in observations:
            observations[i["type"]].append(i["message"])
    return observations


def build_analysis(metrics: dict, issues: list = None, recommendations: list = None) -> dict:
    """Arrange the metrics snapshot into the per-tab analysis view."""
    overview = metrics["sessionOverview"]
    queries = metrics["queryAnalysis"]
    bot = metrics["botResponseAnalysis"]

    return {
        "potentialIssues": issues if issues is not None else find_issues(metrics),
        "recommendations": recommendations if recommendations is not None
        else build_recommendations(metrics),
        "observations": build_observations(metrics),
        "sessionOverview": {
            "totalSessions": overview["totalSessions"],
            "dateRange": overview["dateRange"],
            "turnAnalysis": metrics["turnAnalysis"],
            "timePatterns": metrics["timePatterns"],
        },
        "queryAnalysis": {
            "totalQueries": queries["totalQueries"],
            "uniqueQueries": queries["uniqueQueryCount"],
            "allUniqueQueries": queries["allUniqueQueries"],
            "queryLengthAnalysis": queries["queryLengthAnalysis"],
            "topSearchedQueries": queries["allUniqueQueries"][:TOP_SEARCHED_QUERIES],
        },
        "botResponseAnalysis": {
            "sessionsWithResults": bot["sessionsWithResults"],
            "sessionsWithoutResults": bot["sessionsWithoutResults"],
            "avgProductsReturned": bot["avgProductsReturned"],
            "clarifyingQuestions": bot["clarifyingQuestions"],
        },
        "userBehavior": metrics["userBehavior"],
        "productInsights": metrics["productInsights"],
        "dataQualityNotes": metrics["dataQualityNotes"],
    }


def run_analysis(sessions: List[Session],
                 website_url: str = None,
                 business_model: str = None,
                 business_context: str = None,
                 on_progress: Callable[[str, int], None] = None,
                 cache: AnalysisCache = None) -> dict:
    """
    Compute metrics and behavior for sessions and wrap them in a results record.

    Args:
        sessions: normalized Session list
        website_url, business_model, business_context: echoed into the record
        on_progress: called with (stage, percent)
        cache: optional AnalysisCache; reused snapshots skip recomputation
    """
    def progress(stage, percent):
        if on_progress:
            on_progress(stage, percent)

    sessions = list(sessions or [])
    results = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "transcriptCount": len(sessions),
        "websiteUrl": website_url,
        "businessModel": business_model,
        "businessContext": business_context,
        "llmEnabled": False,
    }

    progress("parsing", 10)
    progress("metrics", 25)
    metrics = _cached_metrics(sessions, cache)

    progress("behavior", 35)
    user_behavior = metrics["userBehavior"]

    progress("scoring", 70)
    issues = find_issues(metrics)

    progress("recommendations", 95)
    recommendations = build_recommendations(metrics)
    results["analysis"] = build_analysis(metrics, issues, recommendations)
    results["ruleBasedMetrics"] = metrics
    results["userBehavior"] = user_behavior
    results["success"] = True

    progress("complete", 100)
    return results


def get_analysis_summary(results: dict) -> Optional[dict]:
    """Headline numbers from a run_analysis() record, None if it has no analysis."""
    if not results or not results.get("analysis"):
        return None

    analysis = results["analysis"]
    bot = analysis["botResponseAnalysis"]
    return {
        "totalSessions": analysis["sessionOverview"]["totalSessions"],
        "totalQueries": analysis["queryAnalysis"]["totalQueries"],
        "uniqueQueries": analysis["queryAnalysis"]["uniqueQueries"],
        "sessionsWithResults": bot["sessionsWithResults"]["percentage"],
        "clarifyingQuestions": bot["clarifyingQuestions"]["count"],
        "insightCount": len(analysis["userBehavior"]["insights"]),
        "issueCount": len(analysis["potentialIssues"]),
        "recommendationCount": len(analysis["recommendations"]),
    }
