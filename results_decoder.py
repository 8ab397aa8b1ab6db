# Copyright (c) 2026 Mark Menkhus <mark.menkhus@gmail.com>
# SPDX-License-Identifier: MIT
"""
results_decoder.py - Decode the RESULTS annotation attached to bot replies

A RESULTS line looks like:

    RESULTS: STYLES: ['Bold', 'Classic']; PRODUCTS [['p1', 'p2'], ['p3']]

The product list is Python-ish (single quotes) and may be nested any number
of levels deep. Decoding never raises: whatever cannot be read is kept raw
and reported as zero products.

Usage:
    from results_decoder import decode_results

    payload = decode_results("STYLES: ['Bold']; PRODUCTS [['p1','p2']]")
    payload.product_ids()   # ['p1', 'p2']
"""

import json
import re
from typing import Any, List

from transcript_schema import (
    DecodedResults,
    EmptyResults,
    PartialResults,
    ResultsPayload,
)


STYLES_PATTERN = re.compile(r"STYLES:\s*\[([^\]]+)\]", re.IGNORECASE)
PRODUCTS_KEYWORD = re.compile(r"PRODUCTS\s*:?\s*", re.IGNORECASE)
PRODUCTS_PATTERN = re.compile(r"PRODUCTS\s*:?\s*(\[.*\])", re.IGNORECASE | re.DOTALL)

_DONE = object()


def flatten_products(products: Any) -> List[str]:
    """
    Flatten arbitrarily nested product arrays into one ordered list.

    Only non-empty strings are product ids; numbers, nulls and objects are
    skipped. Duplicates are kept, they carry frequency.
    """
    flat: List[str] = []
    # Explicit stack of iterators; nesting depth is unbounded in the input
    stack = [iter([products])]

    while stack:
        item = next(stack[-1], _DONE)
        if item is _DONE:
            stack.pop()
        elif isinstance(item, (list, tuple)):
            stack.append(iter(item))
        elif isinstance(item, str) and item:
            flat.append(item)

    return flat


def parse_styles(text: str) -> List[str]:
    """Split a STYLES: [...] fragment into clean style names."""
    match = STYLES_PATTERN.search(text)
    if not match:
        return []
    styles = []
    for part in match.group(1).split(","):
        name = re.sub(r"['\"]", "", part.strip()).strip()
        if name:
            styles.append(name)
    return styles


def decode_results(text: str) -> ResultsPayload:
    """Decode the text that follows `RESULTS:` into a payload variant."""
    text = text or ""
    styles = parse_styles(text)

    keyword = PRODUCTS_KEYWORD.search(text)
    if not keyword:
        if styles:
            return PartialResults(styles=styles)
        return EmptyResults()

    match = PRODUCTS_PATTERN.search(text)
    if not match:
        # Keyword with no bracketed list after it
        raw = text[keyword.end():].strip()
        return PartialResults(styles=styles, products_raw=raw or text[keyword.start():])

    fragment = match.group(1)
    try:
        parsed = json.loads(fragment.replace("'", '"'))
    except (ValueError, RecursionError):
        return PartialResults(styles=styles, products_raw=fragment)

    return DecodedResults(styles=styles, products=flatten_products(parsed))


def results_from_dict(data: Any) -> ResultsPayload:
    """
    Rebuild a payload variant from its dict form.

    Accepts both our own to_dict() output and results objects found in JSON
    transcripts, where products may still be nested.
    """
    if not isinstance(data, dict):
        return EmptyResults()

    raw_styles = data.get("styles")
    styles = [s.strip() for s in raw_styles if isinstance(s, str) and s.strip()] \
        if isinstance(raw_styles, list) else []

    if data.get("productsRaw") is not None:
        return PartialResults(styles=styles, products_raw=str(data["productsRaw"]))
    if "products" in data and data["products"] is not None:
        return DecodedResults(styles=styles, products=flatten_products(data["products"]))
    if styles:
        return PartialResults(styles=styles)
    return EmptyResults()
