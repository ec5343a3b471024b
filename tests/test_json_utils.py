"""Tests for the explicit-stack JSON decoder."""

import json
from unittest.mock import patch

import pytest

from reddit_fetcher.errors import DecodeError
from reddit_fetcher.models.things import decode_json
from reddit_fetcher.utils import json_utils

DOCUMENT = """
{
  "kind": "Listing",
  "data": {
    "children": [{"kind": "t1", "data": {"id": "c1", "body": "caf\\u00e9 \\"quoted\\"", "score": -3}}],
    "after": null,
    "dist": 1,
    "ratio": 0.97,
    "big": 1.5e3,
    "flags": [true, false, [], {}],
    "empty": ""
  }
}
"""


def nesting_depth(value):
    depth = 0
    while isinstance(value, list) and value:
        value = value[0]
        depth += 1
    return depth


def test_matches_json_loads():
    assert json_utils.loads(DOCUMENT) == json.loads(DOCUMENT)


def test_accepts_bytes():
    raw = DOCUMENT.encode("utf-8")

    assert json_utils.loads(raw) == json.loads(raw)


@pytest.mark.parametrize("text, expected", [("0", 0), ("-12", -12), ("2.5", 2.5), ("1E2", 100.0), ('"x"', "x"), ("null", None)])
def test_scalars(text, expected):
    assert json_utils.loads(text) == expected


def test_nonstandard_constants():
    assert json_utils.loads("[Infinity, -Infinity]") == [float("inf"), float("-inf")]


def test_deep_nesting():
    depth = 100000
    value = json_utils.loads("[" * depth + "1" + "]" * depth)

    assert nesting_depth(value) == depth


@pytest.mark.parametrize("text", ["", "[1,", "[1 2]", '{"a" 1}', "{1: 2}", "tru", "[1]x", '{"a": 1,}', "[-]"])
def test_malformed(text):
    with pytest.raises(json.JSONDecodeError):
        json_utils.loads(text)


def test_decode_json_handles_documents_json_loads_rejects():
    raw = ("[" * 20 + "]" * 20).encode("utf-8")

    with patch("json.loads", side_effect=RecursionError):
        value = decode_json(raw)

    assert nesting_depth(value) == 19


def test_decode_json_reports_malformed_deep_documents():
    with patch("json.loads", side_effect=RecursionError):
        with pytest.raises(DecodeError, match="invalid JSON in response"):
            decode_json(b"[[[[1]]]")
