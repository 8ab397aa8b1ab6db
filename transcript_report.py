#!/usr/bin/env python3
# Copyright (c) 2026 Mark Menkhus <mark.menkhus@gmail.com>
# SPDX-License-Identifier: MIT
"""
transcript_report.py - Rule-based metrics report for chatbot transcripts

Reads .txt/.json transcript files and .zip archives of them, normalizes the
sessions and prints a plain-text metrics report. Per-file status goes to
stderr; a file that fails to parse is reported and skipped.

Usage:
    python transcript_report.py logs/*.txt
    python transcript_report.py export.zip -o report.txt --json metrics.json
    python transcript_report.py chats.json --sessions sessions.json --verbose
"""

import argparse
import json
import sys
from pathlib import Path

from analysis_engine import run_analysis
from session_normalizer import normalize_transcripts, get_transcript_stats
from transcript_ingest import parse_uploaded_files, ingestion_summary


def _section(report: list, title: str):
    report.append("\n" + "-" * 70)
    report.append(title)
    report.append("-" * 70)


def build_report(metrics: dict, stats: dict, file_statuses: list) -> str:
    """Render a metrics snapshot as the plain-text report."""
    overview = metrics["sessionOverview"]
    turns = metrics["turnAnalysis"]
    queries = metrics["queryAnalysis"]
    products = metrics["productInsights"]
    bot = metrics["botResponseAnalysis"]
    times = metrics["timePatterns"]
    behavior = metrics["userBehavior"]

    report = []
    report.append("=" * 70)
    report.append("CHATBOT TRANSCRIPT METRICS (rule-based)")
    report.append("=" * 70)

    ok = sum(1 for s in file_statuses if s["status"] == "success")
    report.append(f"\nFiles parsed: {ok}/{len(file_statuses)}")
    report.append(f"Sessions: {overview['totalSessions']}")
    date_range = overview["dateRange"]
    if date_range["start"]:
        report.append(f"Date range: {date_range['start']} - {date_range['end']} "
                      f"({date_range['totalDays']} days)")
    report.append(f"Messages: {stats['totalMessages']} "
                  f"(avg {stats['avgMessagesPerConversation']} per session)")
    report.append(f"Escalation rate: {stats['escalationRate']}%")

    _section(report, "TURNS")
    report.append(f"  Single-turn sessions: {turns['singleTurnSessions']}")
    report.append(f"  Multi-turn sessions:  {turns['multiTurnSessions']}")
    report.append(f"  Avg turns/session:    {turns['avgTurnsPerSession']}")
    report.append(f"  Max turns:            {turns['maxTurnsInSession']}")

    _section(report, "TOP QUERIES")
    report.append(f"  Total: {queries['totalQueries']} | Unique: {queries['uniqueQueryCount']} | "
                  f"Avg words: {queries['queryLengthAnalysis']['avgWordsPerQuery']}")
    for q in queries["uniqueQueries"][:10]:
        report.append(f"  {q['frequency']:4d}x: {q['query'][:60]}")
    if queries["topSearchTerms"]:
        terms = ", ".join(f"{t['term']} ({t['count']})" for t in queries["topSearchTerms"][:10])
        report.append(f"  Terms: {terms}")

    _section(report, "PRODUCTS & STYLES")
    report.append(f"  Products recommended: {products['totalProductsRecommended']} "
                  f"({products['uniqueProductsRecommended']} unique)")
    for p in products["topRecommendedProducts"][:10]:
        report.append(f"  {p['frequency']:4d}x: {p['productId']}")
    style_analysis = products["styleAnalysis"]
    report.append(f"  Styles: {style_analysis['totalStyles']} "
                  f"({style_analysis['totalStyleMentions']} mentions)")
    for s in style_analysis["topStyles"][:10]:
        report.append(f"  {s['frequency']:4d}x: {s['style']}")

    _section(report, "BOT RESPONSES")
    report.append(f"  Sessions with results:    {bot['sessionsWithResults']['count']} "
                  f"({bot['sessionsWithResults']['percentage']}%)")
    report.append(f"  Sessions without results: {bot['sessionsWithoutResults']['count']} "
                  f"({bot['sessionsWithoutResults']['percentage']}%)")
    report.append(f"  Avg products returned:    {bot['avgProductsReturned']}")
    report.append(f"  Clarifying questions:     {bot['clarifyingQuestions']['count']}")

    _section(report, "TIME PATTERNS")
    report.append(f"  Busiest hour: {times['busiestHour'] or 'n/a'}")
    report.append(f"  Busiest day:  {times['busiestDay'] or 'n/a'}")

    _section(report, "USER BEHAVIOR")
    complexity = behavior["queryComplexity"]
    for tier, pct in complexity["percentages"].items():
        report.append(f"  {tier:16s} {complexity[tier]:4d} ({pct}%)")
    intents = behavior["intentCategories"]
    report.append("  Intents: " + ", ".join(f"{k} {v}" for k, v in intents.items()))
    repeats = behavior["repeatedQueries"]
    report.append(f"  Sessions with repeated queries: {repeats['sessionsWithRepeats']} "
                  f"({repeats['percentage']}%)")

    report.append("\n" + "=" * 70)
    report.append("INSIGHTS")
    report.append("=" * 70)
    for insight in behavior["insights"]:
        report.append(f"\n[{insight['type'].upper()}] {insight['title']}")
        report.append(f"  {insight['message']}")
        report.append(f"  -> {insight['recommendation']}")
    if not behavior["insights"]:
        report.append("\nNo behavior insights triggered.")

    notes = metrics["dataQualityNotes"]
    report.append("\nLimitations: " + "; ".join(notes["dataLimitations"]))

    return "\n".join(report)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Rule-based metrics for chatbot transcripts")
    parser.add_argument("files", nargs="+", type=Path, metavar="FILE",
                        help="Transcript files (.txt, .json) or .zip archives")
    parser.add_argument("-o", "--output", type=Path, help="Save report to file")
    parser.add_argument("--json", type=Path, dest="json_out", help="Write metrics snapshot as JSON")
    parser.add_argument("--sessions", type=Path, help="Write normalized sessions as JSON")
    parser.add_argument("--verbose", action="store_true",
                        help="Warn about RESULTS lines that could not be read")
    args = parser.parse_args(argv)

    missing = [f for f in args.files if not f.exists()]
    for f in missing:
        print(f"Error: {f} not found", file=sys.stderr)
    if len(missing) == len(args.files):
        return 1

    file_results = parse_uploaded_files([f for f in args.files if f.exists()],
                                        verbose=args.verbose)
    statuses = ingestion_summary(file_results)
    for s in statuses:
        detail = f"{s['transcriptCount']} transcript(s)" if s["status"] == "success" else s["error"]
        print(f"  [{s['status']}] {s['filename']}: {detail}", file=sys.stderr)

    sessions = normalize_transcripts(file_results)
    print(f"Analyzing {len(sessions)} sessions...", file=sys.stderr)

    results = run_analysis(sessions)
    metrics = results["ruleBasedMetrics"]
    report_text = build_report(metrics, get_transcript_stats(sessions), statuses)

    if args.output:
        args.output.write_text(report_text)
        print(f"Report saved to: {args.output}", file=sys.stderr)
    else:
        print(report_text)

    if args.json_out:
        with open(args.json_out, "w") as f:
            json.dump(metrics, f, indent=2)
        print(f"Metrics saved to: {args.json_out}", file=sys.stderr)

    if args.sessions:
        with open(args.sessions, "w") as f:
            json.dump([s.to_dict() for s in sessions], f, indent=2)
        print(f"Sessions saved to: {args.sessions}", file=sys.stderr)

    return 0


if __name__ == "__main__":
    sys.exit(main())
