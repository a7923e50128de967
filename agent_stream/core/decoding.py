"""Tri-state JSON decoding for frame bodies.

``json.loads`` only says "failed". A frame body cut short by a chunk
boundary or by a tag literal inside a string fails the same way as real
garbage, so the decoder error is inspected to tell the two apart: if the
parser ran out of input (or stopped inside a token that more input could
finish) the body is INCOMPLETE, otherwise MALFORMED.
"""

from __future__ import annotations

import json
import re

from ..types import DecodeResult, DecodeStatus

# A tail that is the beginning of a literal or number, e.g. ``tr`` or ``1.``
_PARTIAL_TOKEN_RE = re.compile(
    r"t(?:r(?:ue?)?)?|f(?:a(?:l(?:se?)?)?)?|n(?:u(?:ll?)?)?"
    r"|-?\d*\.?\d*(?:[eE][-+]?\d*)?"
)
_TRUNCATED_MESSAGES = (
    "Unterminated string",
    "Invalid \\uXXXX escape",
)


def _is_truncation(exc: json.JSONDecodeError) -> bool:
    if exc.msg.startswith("Extra data"):
        return False
    tail = exc.doc[exc.pos:]
    if not tail.strip():
        return True
    if exc.msg.startswith(_TRUNCATED_MESSAGES[0]):
        return True
    if exc.msg.startswith(_TRUNCATED_MESSAGES[1]):
        return len(tail) < 6
    return _PARTIAL_TOKEN_RE.fullmatch(tail) is not None


def decode_json(text: str) -> DecodeResult:
    try:
        value = json.loads(text)
    except json.JSONDecodeError as e:
        status = DecodeStatus.INCOMPLETE if _is_truncation(e) else DecodeStatus.MALFORMED
        return DecodeResult(status=status, error=str(e))
    return DecodeResult(status=DecodeStatus.COMPLETE, value=value)
