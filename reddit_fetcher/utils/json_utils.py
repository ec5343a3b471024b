"""JSON decoding with an explicit stack, for documents nested deeper than ``json.loads`` allows."""

import json
import re
from json.decoder import scanstring
from typing import Any, List, Tuple, Union

WHITESPACE = re.compile(r"[ \t\n\r]*")
NUMBER = re.compile(r"(-?(?:0|[1-9]\d*))(\.\d+)?([eE][-+]?\d+)?")

# same non-standard constants json.loads accepts
LITERALS = (
    ("null", None),
    ("true", True),
    ("false", False),
    ("NaN", float("nan")),
    ("Infinity", float("inf")),
    ("-Infinity", float("-inf")),
)


def loads(raw: Union[bytes, bytearray, str]) -> Any:
    """
    Decode a JSON document without recursing per nesting level.

    Accepts the documents ``json.loads`` accepts and raises
    ``json.JSONDecodeError`` where it would, but nesting depth is bounded only
    by memory. It is slower than ``json.loads`` and meant for the documents
    that one rejects with ``RecursionError``.
    """
    if isinstance(raw, (bytes, bytearray)):
        text = bytes(raw).decode(json.detect_encoding(raw), "surrogatepass")
    else:
        text = raw
    if text.startswith("\ufeff"):
        raise json.JSONDecodeError("Unexpected UTF-8 BOM (decode using utf-8-sig)", text, 0)

    # open containers, innermost last, with the key pending in each object
    containers: List[Union[dict, list]] = []
    keys: List[str] = []
    idx = _skip(text, 0)

    while True:
        char = text[idx:idx + 1]
        if char == "{":
            idx = _skip(text, idx + 1)
            if text[idx:idx + 1] == "}":
                value, idx = {}, idx + 1
            else:
                key, idx = _key(text, idx)
                containers.append({})
                keys.append(key)
                continue
        elif char == "[":
            idx = _skip(text, idx + 1)
            if text[idx:idx + 1] == "]":
                value, idx = [], idx + 1
            else:
                containers.append([])
                keys.append("")
                continue
        else:
            value, idx = _scalar(text, idx)

        # store the finished value, closing every container that ends after it
        while True:
            idx = _skip(text, idx)
            if not containers:
                if idx != len(text):
                    raise json.JSONDecodeError("Extra data", text, idx)
                return value

            container = containers[-1]
            if isinstance(container, list):
                container.append(value)
            else:
                container[keys[-1]] = value

            char = text[idx:idx + 1]
            if char == ",":
                idx = _skip(text, idx + 1)
                if isinstance(container, dict):
                    keys[-1], idx = _key(text, idx)
                break

            closer = "]" if isinstance(container, list) else "}"
            if char != closer:
                raise json.JSONDecodeError("Expecting ',' delimiter", text, idx)
            idx += 1
            value = containers.pop()
            keys.pop()


def _skip(text: str, idx: int) -> int:
    return WHITESPACE.match(text, idx).end()


def _key(text: str, idx: int) -> Tuple[str, int]:
    """Read ``"key":`` at ``idx``; returns the key and the index of its value."""
    if text[idx:idx + 1] != '"':
        raise json.JSONDecodeError("Expecting property name enclosed in double quotes", text, idx)
    key, idx = scanstring(text, idx + 1)
    idx = _skip(text, idx)
    if text[idx:idx + 1] != ":":
        raise json.JSONDecodeError("Expecting ':' delimiter", text, idx)
    return key, _skip(text, idx + 1)


def _scalar(text: str, idx: int) -> Tuple[Any, int]:
    if text[idx:idx + 1] == '"':
        return scanstring(text, idx + 1)

    match = NUMBER.match(text, idx)
    if match:
        integer, fraction, exponent = match.groups()
        if fraction or exponent:
            return float(integer + (fraction or "") + (exponent or "")), match.end()
        return int(integer), match.end()

    for literal, value in LITERALS:
        if text.startswith(literal, idx):
            return value, idx + len(literal)
    raise json.JSONDecodeError("Expecting value", text, idx)
