# Copyright (c) 2026 Mark Menkhus <mark.menkhus@gmail.com>
# SPDX-License-Identifier: MIT
"""Tests for results_decoder.py"""

from results_decoder import decode_results, flatten_products, parse_styles, results_from_dict
from transcript_schema import DecodedResults, EmptyResults, PartialResults


def test_flatten_nested_keeps_order_and_duplicates():
    assert flatten_products([["p1", "p2"], ["p1", ["p3", ["p4"]]]]) == ["p1", "p2", "p1", "p3", "p4"]


def test_flatten_skips_non_strings():
    assert flatten_products([["p1", 3, None, {"id": "x"}, ""], "p2"]) == ["p1", "p2"]


def test_parse_styles_strips_quotes():
    assert parse_styles("STYLES: ['Bold', \"Classic\" , '']") == ["Bold", "Classic"]


def test_decode_styles_and_products():
    payload = decode_results("STYLES: ['Bold']; PRODUCTS [['p1','p2'], ['p1']]")
    assert isinstance(payload, DecodedResults)
    assert payload.styles == ["Bold"]
    assert payload.product_ids() == ["p1", "p2", "p1"]


def test_decode_products_with_colon():
    payload = decode_results("PRODUCTS: ['a', 'b']")
    assert payload.product_ids() == ["a", "b"]
    assert payload.styles == []


def test_malformed_products_kept_raw():
    payload = decode_results("STYLES: ['Bold']; PRODUCTS [['p1','p2']")
    assert isinstance(payload, PartialResults)
    assert payload.product_ids() == []
    d = payload.to_dict()
    assert d["products"] == []
    assert d["productsRaw"]
    assert d["styles"] == ["Bold"]


def test_products_keyword_without_list():
    payload = decode_results("PRODUCTS none found")
    assert isinstance(payload, PartialResults)
    assert payload.products_raw == "none found"


def test_styles_only():
    payload = decode_results("STYLES: ['Bold']")
    assert isinstance(payload, PartialResults)
    assert payload.products_raw is None
    assert payload.to_dict() == {"styles": ["Bold"]}


def test_nothing_recognizable():
    assert isinstance(decode_results("no results today"), EmptyResults)
    assert isinstance(decode_results(""), EmptyResults)


def test_results_from_dict_variants():
    assert isinstance(results_from_dict({}), EmptyResults)
    assert isinstance(results_from_dict("junk"), EmptyResults)
    decoded = results_from_dict({"styles": ["Bold"], "products": [["p1"], "p2"]})
    assert decoded == DecodedResults(styles=["Bold"], products=["p1", "p2"])
    partial = results_from_dict({"styles": [], "products": [], "productsRaw": "[['p1'"})
    assert partial == PartialResults(styles=[], products_raw="[['p1'")


def test_dict_form_rebuilds_same_payload():
    for text in ["STYLES: ['Bold']; PRODUCTS [['p1']]",
                 "STYLES: ['Bold']; PRODUCTS [['p1'",
                 "STYLES: ['Bold']",
                 "nothing"]:
        payload = decode_results(text)
        assert results_from_dict(payload.to_dict()) == payload


def test_deeply_nested_products_degrade_to_raw():
    fragment = "[" * 5000 + "'p1'" + "]" * 5000
    payload = decode_results("STYLES: ['Bold']; PRODUCTS " + fragment)
    assert isinstance(payload, PartialResults)
    assert payload.styles == ["Bold"]
    assert payload.products_raw == fragment
    assert payload.product_ids() == []


def test_flatten_handles_deep_nesting():
    nested = "p1"
    for _ in range(5000):
        nested = [nested]
    assert flatten_products([nested, "p2"]) == ["p1", "p2"]
