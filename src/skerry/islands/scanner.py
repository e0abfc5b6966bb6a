"""Component tag scanner and tree builder.

Scans raw markup for component tags (a leading uppercase letter,
optionally dotted: ``<UserBadge />``, ``<Admin.Nav>``) and rebuilds
their nesting from the flat tag stream. This is a small incremental
scanner over text, not an HTML parser: it only understands component
tags, comments, and raw-text elements (``script``, ``style``,
``textarea``) whose contents it skips.

Every tag keeps its character span in the source so the orchestrator
can splice rendered HTML back positionally.

Malformed tags never abort the scan. An unterminated attribute value or
a stray character inside a tag ends the tag at the next ``>`` (or just
before the next ``<``); the tag becomes a leaf with the attributes that
parsed cleanly, and scanning resumes after it. Open tags that are never
closed also become leaves; tags they would have enclosed move up to the
enclosing level.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from skerry.islands.literals import parse_prop_literal
from skerry.islands.types import ComponentReference, RenderRequest

COMPONENT_NAME = re.compile(r"[A-Z][A-Za-z0-9_]*(?:\.[A-Za-z_][A-Za-z0-9_]*)*")
_ATTR_NAME = re.compile(r"[^\s\"'<>/={}]+")
_RAW_TEXT_OPEN = re.compile(r"<(script|style|textarea)(?=[\s>/])", re.IGNORECASE)
_WHITESPACE = " \t\n\r\f"


class TagKind(StrEnum):
    OPEN = "open"
    CLOSE = "close"
    SELF_CLOSING = "self_closing"


@dataclass(frozen=True, slots=True)
class Attribute:
    """One parsed attribute. ``bare`` marks a valueless attribute (``disabled``)."""

    name: str
    value: str = ""
    braced: bool = False
    bare: bool = False

    def typed_value(self) -> Any:
        if self.bare:
            return True
        return parse_prop_literal(self.value, braced=self.braced)


@dataclass(frozen=True, slots=True)
class TagToken:
    kind: TagKind
    name: str
    start: int
    end: int
    attributes: tuple[Attribute, ...] = ()
    malformed: bool = False


@dataclass(frozen=True, slots=True)
class ScannedIsland:
    """A top-level component tree and the span it occupies in the markup."""

    request: RenderRequest
    start: int
    end: int

    @property
    def depth(self) -> int:
        return self.request.depth


@dataclass(frozen=True, slots=True)
class ScanResult:
    islands: tuple[ScannedIsland, ...] = ()
    max_depth: int = 0

    @property
    def has_islands(self) -> bool:
        return bool(self.islands)

    @property
    def component_count(self) -> int:
        return sum(1 for island in self.islands for _ in island.request.walk())


# =============================================================================
# Tokenizer
# =============================================================================


def tokenize(markup: str) -> list[TagToken]:
    """Return the component tag tokens in *markup*, in source order."""
    tokens: list[TagToken] = []
    length = len(markup)
    pos = 0

    while True:
        lt = markup.find("<", pos)
        if lt == -1:
            break

        if markup.startswith("<!--", lt):
            close = markup.find("-->", lt + 4)
            pos = length if close == -1 else close + 3
            continue

        if markup.startswith("</", lt):
            token = _read_close_tag(markup, lt)
            if token is not None:
                tokens.append(token)
                pos = token.end
            else:
                pos = lt + 2
            continue

        match = COMPONENT_NAME.match(markup, lt + 1)
        if match is None or not _ends_tag_name(markup, match.end()):
            pos = _skip_raw_text(markup, lt)
            continue

        token = _read_open_tag(markup, lt, match.group(), match.end())
        tokens.append(token)
        pos = token.end

    return tokens


def _ends_tag_name(markup: str, index: int) -> bool:
    return index >= len(markup) or markup[index] in _WHITESPACE or markup[index] in "/>"


def _skip_ws(markup: str, index: int) -> int:
    length = len(markup)
    while index < length and markup[index] in _WHITESPACE:
        index += 1
    return index


def _skip_raw_text(markup: str, lt: int) -> int:
    """Skip past a ``script``/``style``/``textarea`` element; else past ``<``."""
    match = _RAW_TEXT_OPEN.match(markup, lt)
    if match is None:
        return lt + 1
    closing = re.compile(rf"</{match.group(1)}\s*>", re.IGNORECASE).search(markup, match.end())
    return len(markup) if closing is None else closing.end()


def _read_close_tag(markup: str, lt: int) -> TagToken | None:
    match = COMPONENT_NAME.match(markup, lt + 2)
    if match is None:
        return None
    gt = _skip_ws(markup, match.end())
    if gt < len(markup) and markup[gt] == ">":
        return TagToken(TagKind.CLOSE, match.group(), lt, gt + 1)
    return None


def _read_open_tag(markup: str, lt: int, name: str, index: int) -> TagToken:
    length = len(markup)
    attributes: list[Attribute] = []

    while True:
        index = _skip_ws(markup, index)
        if index >= length:
            return TagToken(
                TagKind.SELF_CLOSING, name, lt, length, tuple(attributes), malformed=True
            )
        char = markup[index]
        if char == ">":
            return TagToken(TagKind.OPEN, name, lt, index + 1, tuple(attributes))
        if markup.startswith("/>", index):
            return TagToken(TagKind.SELF_CLOSING, name, lt, index + 2, tuple(attributes))

        name_match = _ATTR_NAME.match(markup, index)
        if name_match is None:
            return _recover(markup, lt, name, attributes, index)

        attr_name = name_match.group()
        index = _skip_ws(markup, name_match.end())
        if index < length and markup[index] == "=":
            index = _skip_ws(markup, index + 1)
            value = _read_value(markup, index)
            if value is None:
                return _recover(markup, lt, name, attributes, index)
            text, braced, index = value
            attributes.append(Attribute(attr_name, text, braced))
        else:
            attributes.append(Attribute(attr_name, bare=True))


def _read_value(markup: str, index: int) -> tuple[str, bool, int] | None:
    """Read one attribute value at *index*: ``(text, braced, end)`` or None."""
    length = len(markup)
    if index >= length:
        return None

    quote = markup[index]
    if quote in "\"'":
        close = markup.find(quote, index + 1)
        if close == -1:
            return None
        return markup[index + 1 : close], False, close + 1

    if quote == "{":
        close = _matching_brace(markup, index)
        if close is None:
            return None
        return markup[index + 1 : close], True, close + 1

    end = index
    while end < length and markup[end] not in _WHITESPACE and markup[end] != ">":
        if markup.startswith("/>", end):
            break
        end += 1
    return markup[index:end], False, end


def _matching_brace(markup: str, index: int) -> int | None:
    """Index of the ``}`` closing the ``{`` at *index*, skipping string literals."""
    depth = 0
    in_string: str | None = None
    i = index
    length = len(markup)
    while i < length:
        char = markup[i]
        if in_string is not None:
            if char == "\\":
                i += 2
                continue
            if char == in_string:
                in_string = None
        elif char in "\"'`":
            in_string = char
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return None


def _recover(
    markup: str, lt: int, name: str, attributes: list[Attribute], index: int
) -> TagToken:
    """End a malformed tag at the next ``>``, or just before the next ``<``."""
    gt = markup.find(">", index)
    next_lt = markup.find("<", index)
    if gt == -1 and next_lt == -1:
        end = len(markup)
    elif gt == -1 or (next_lt != -1 and next_lt < gt):
        end = next_lt
    else:
        end = gt + 1
    return TagToken(TagKind.SELF_CLOSING, name, lt, end, tuple(attributes), malformed=True)


# =============================================================================
# Tree builder
# =============================================================================


@dataclass(slots=True)
class _Node:
    token: TagToken
    children: list[_Node] = field(default_factory=list)
    close: TagToken | None = None

    @property
    def start(self) -> int:
        return self.token.start

    @property
    def end(self) -> int:
        return self.close.end if self.close is not None else self.token.end


def scan_components(markup: str) -> ScanResult:
    """Scan *markup* and return its top-level component trees.

    Example::

        >>> result = scan_components('<Card title="Hi"><Badge count={2} /></Card>')
        >>> result.islands[0].request.children[0].props
        {'count': 2}
        >>> result.max_depth
        1
    """
    roots: list[_Node] = []
    stack: list[_Node] = []

    for token in tokenize(markup):
        if token.kind is TagKind.OPEN:
            stack.append(_Node(token))
        elif token.kind is TagKind.SELF_CLOSING:
            _attach(_Node(token), stack, roots)
        else:
            index = _find_open(stack, token.name)
            if index is None:
                continue  # stray close tag: left in the markup untouched
            while len(stack) > index + 1:
                _close_unterminated(stack.pop(), stack, roots)
            node = stack.pop()
            node.close = token
            _attach(node, stack, roots)

    while stack:
        _close_unterminated(stack.pop(), stack, roots)

    islands = tuple(
        ScannedIsland(request=_to_request(markup, node), start=node.start, end=node.end)
        for node in roots
    )
    max_depth = max((island.depth for island in islands), default=0)
    return ScanResult(islands=islands, max_depth=max_depth)


def _find_open(stack: list[_Node], name: str) -> int | None:
    for index in range(len(stack) - 1, -1, -1):
        if stack[index].token.name == name:
            return index
    return None


def _attach(node: _Node, stack: list[_Node], roots: list[_Node]) -> None:
    if stack:
        stack[-1].children.append(node)
    else:
        roots.append(node)


def _close_unterminated(node: _Node, stack: list[_Node], roots: list[_Node]) -> None:
    """An open tag without a close becomes a leaf; its children move up."""
    hoisted = node.children
    node.children = []
    _attach(node, stack, roots)
    for child in hoisted:
        _attach(child, stack, roots)


def _to_request(markup: str, node: _Node) -> RenderRequest:
    props: dict[str, Any] = {}
    for attribute in node.token.attributes:
        if attribute.name not in props:
            props[attribute.name] = attribute.typed_value()

    html_children = ""
    if node.close is not None:
        parts: list[str] = []
        cursor = node.token.end
        for child in node.children:
            parts.append(markup[cursor : child.start])
            cursor = child.end
        parts.append(markup[cursor : node.close.start])
        html_children = "".join(parts).strip()

    return RenderRequest(
        reference=ComponentReference(node.token.name),
        props=props,
        children=tuple(_to_request(markup, child) for child in node.children),
        html_children=html_children,
    )
