"""Helpers for the rich-text description document.

The description travels as a serialized ProseMirror-style JSON tree
(``{"type": "doc", "content": [...]}``). Apart from flattening it to plain
text for length checks, the tree is passed through untouched.
"""
from __future__ import annotations

from typing import Any, Dict, Union

import orjson

RichText = Union[Dict[str, Any], str, None]


def empty_document() -> Dict[str, Any]:
    return {"type": "doc", "content": []}


def plain_text_document(text: str) -> Dict[str, Any]:
    """Wrap legacy plain-text descriptions into a single-paragraph document."""
    if not text:
        return empty_document()
    return {"type": "doc", "content": [{"type": "paragraph", "content": [{"type": "text", "text": text}]}]}


def parse_rich_text(value: RichText) -> Dict[str, Any]:
    """Return the document tree for a dict, a serialized tree or plain text."""
    if isinstance(value, dict):
        return value
    if not value:
        return empty_document()
    try:
        parsed = orjson.loads(value)
    except orjson.JSONDecodeError:
        return plain_text_document(value)
    if isinstance(parsed, dict):
        return parsed
    return plain_text_document(value)


def serialize_rich_text(value: RichText) -> str:
    return orjson.dumps(parse_rich_text(value)).decode("utf-8")


def flatten_rich_text(value: RichText) -> str:
    """Concatenate the inline text runs of every top-level block node.

    Plain text is read the same way ``parse_rich_text`` reads it, as a single
    paragraph.
    """
    blocks = parse_rich_text(value).get("content") or []
    parts = []
    for block in blocks:
        if not isinstance(block, dict):
            continue
        for run in block.get("content") or []:
            if isinstance(run, dict):
                parts.append(str(run.get("text") or ""))
    return "".join(parts)
