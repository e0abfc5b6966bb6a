"""Canonical JSON serialization.

One serializer for every place where byte-for-byte stability matters:
result cache keys, hydration payloads, and payload-size checks. Object
keys are sorted so insertion order never changes the output.
"""

import json
from typing import Any

# Characters that could terminate or confuse a <script> block
_SCRIPT_ESCAPES = {
    ord("<"): "\\u003c",
    ord(">"): "\\u003e",
    ord("&"): "\\u0026",
    0x2028: "\\u2028",
    0x2029: "\\u2029",
}


def canonical_json(value: Any) -> str:
    """Serialize *value* deterministically (sorted keys, compact separators)."""
    return json.dumps(
        value,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    )


def script_safe_json(value: Any) -> str:
    """Canonical JSON that is safe to embed inside ``<script>`` content."""
    return canonical_json(value).translate(_SCRIPT_ESCAPES)


def encoded_size(value: Any) -> int:
    """Size in bytes of the UTF-8 wire encoding of *value*."""
    return len(json.dumps(value, separators=(",", ":"), default=str).encode("utf-8"))
