"""Props inference for kida components.

A component may declare its props in a leading comment::

    {# props: title, items, show_footer #}

Without a declaration, the free names read by ``{{ ... }}`` expressions
and ``{% if %}`` / ``{% for ... in %}`` tags are collected, minus names
the template binds itself (loop targets, ``set``/``let``) and the names
the renderer always provides.
"""

import re
from functools import lru_cache

_DECLARATION = re.compile(r"^\s*\{#\s*props\s*:(?P<names>[^#]*)#\}", re.IGNORECASE)
_EXPRESSION = re.compile(r"\{\{(?P<body>.*?)\}\}", re.DOTALL)
_TAG = re.compile(
    r"\{%-?\s*(?P<keyword>if|elif|for|set|let|with)\b(?P<body>.*?)-?%\}",
    re.DOTALL,
)
_STRING = re.compile(r"\"(?:\\.|[^\"\\])*\"|'(?:\\.|[^'\\])*'")
_NAME = re.compile(r"(?<![\w.])([A-Za-z_]\w*)")
_IDENTIFIER = re.compile(r"^[A-Za-z_]\w*$")
_TEST_OPERATOR = re.compile(r"\bis(?:\s+not)?$")

_RESERVED = frozenset(
    {
        "and", "or", "not", "in", "is", "if", "else", "true", "false", "none",
        "True", "False", "None", "loop", "children", "elements",
    }
)


def infer_props(source: str) -> list[str]:
    """Return the prop names *source* reads, in first-use order."""
    return list(_infer_cached(source))


@lru_cache(maxsize=256)
def _infer_cached(source: str) -> tuple[str, ...]:
    declared = _DECLARATION.match(source)
    if declared is not None:
        names = (part.strip() for part in declared.group("names").split(","))
        return tuple(dict.fromkeys(name for name in names if _IDENTIFIER.match(name)))

    bound: set[str] = set()
    for tag in _TAG.finditer(source):
        keyword, body = tag.group("keyword"), tag.group("body")
        if keyword == "for":
            targets, _, _ = body.partition(" in ")
            bound.update(_NAME.findall(targets))
        elif keyword in ("set", "let", "with"):
            target, _, _ = body.partition("=")
            bound.update(_NAME.findall(target))

    found: dict[str, None] = {}
    for body in _expression_bodies(source):
        for name in _free_names(body):
            if name not in bound and name not in _RESERVED:
                found.setdefault(name)
    return tuple(found)


def _expression_bodies(source: str):
    """Yield expression text from ``{{ }}`` and from conditions and loop sources."""
    for match in _EXPRESSION.finditer(source):
        yield match.group("body")
    for tag in _TAG.finditer(source):
        keyword, body = tag.group("keyword"), tag.group("body")
        if keyword in ("if", "elif"):
            yield body
        elif keyword == "for":
            _, _, iterable = body.partition(" in ")
            yield iterable
        else:
            _, _, value = body.partition("=")
            yield value


def _free_names(expression: str) -> list[str]:
    """Top-level names in an expression, skipping attributes and filter names."""
    expression = _STRING.sub('""', expression)
    names = []
    for match in _NAME.finditer(expression):
        preceding = expression[: match.start()].rstrip()
        if preceding.endswith("|"):
            continue  # filter name
        if _TEST_OPERATOR.search(preceding):
            continue  # test name: `x is defined`
        following = expression[match.end() :].lstrip()
        if following.startswith("=") and not following.startswith("=="):
            continue  # keyword argument
        names.append(match.group(1))
    return names
