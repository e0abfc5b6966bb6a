"""Attribute value to typed prop conversion.

Pure and deterministic: the same attribute text always yields the same
value, which keeps result-cache keys stable across requests.
"""

import html
import json
import re
from typing import Any

_NUMBER = re.compile(r"-?(?:0|[1-9]\d*)(?:\.\d+)?(?:[eE][+-]?\d+)?")
_INTEGER = re.compile(r"-?(?:0|[1-9]\d*)")


def parse_prop_literal(raw: str, *, braced: bool) -> Any:
    """Convert one attribute value into a prop value.

    Braced values (``count={42}``, ``items={["a", "b"]}``) are JSON. Text
    that is not valid JSON is kept as the literal text inside the braces.

    Plain quoted values are coerced: ``"true"``/``"false"`` become booleans,
    numeric text becomes ``int`` or ``float``, anything else stays a string
    (with HTML character references decoded).

    Example::

        >>> parse_prop_literal("42", braced=True)
        42
        >>> parse_prop_literal("007", braced=False)
        '007'
    """
    if braced:
        text = raw.strip()
        try:
            return json.loads(text)
        except ValueError:
            return text

    if raw == "true":
        return True
    if raw == "false":
        return False
    if _NUMBER.fullmatch(raw):
        return _to_number(raw)
    return html.unescape(raw)


def _to_number(text: str) -> int | float:
    if _INTEGER.fullmatch(text):
        return int(text)
    return float(text)
