"""Mustache-style template rendering.

Supported tags:

- ``{{name}}`` / ``{{a.b.c}}`` - substitution via dotted-path lookup
- ``{{#name}}...{{/name}}`` - positive section (repeated for lists,
  scoped for mappings, shown once for other truthy values)
- ``{{^name}}...{{/name}}`` - inverted section (shown when falsy)

Missing keys render as the empty string. Section markers without a partner are
left in the output untouched, as are triple-brace tags (``{{{name}}}``), which
are not supported.
"""

from __future__ import annotations

import enum
import json
import numbers
import re
from collections import ChainMap
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Union

_TAG_PATTERN = re.compile(
    r"\{\{\{[^}]*\}\}\}"
    r"|\{\{\s*(?P<sigil>[#^/]?)(?P<key>[^}]*)\}\}"
)


class ValueKind(enum.Enum):
    NULL = "null"
    SCALAR = "scalar"
    SEQUENCE = "sequence"
    MAPPING = "mapping"


def kind_of(value: Any) -> ValueKind:
    """Classify a context value."""
    if value is None:
        return ValueKind.NULL
    if isinstance(value, Mapping):
        return ValueKind.MAPPING
    if isinstance(value, (str, bytes)):
        return ValueKind.SCALAR
    if isinstance(value, Sequence):
        return ValueKind.SEQUENCE
    return ValueKind.SCALAR


def is_truthy(value: Any) -> bool:
    """Return True when a section keyed on ``value`` should render."""
    kind = kind_of(value)
    if kind is ValueKind.NULL:
        return False
    if kind in (ValueKind.SEQUENCE, ValueKind.MAPPING):
        return len(value) > 0
    if isinstance(value, bool):
        return value
    if isinstance(value, (str, bytes)):
        return len(value) > 0
    if isinstance(value, numbers.Number):
        return value != 0
    return True


def lookup(context: Mapping[str, Any], path: str) -> Any:
    """Resolve a dotted path such as ``linear.statuses.done``.

    Any missing intermediate yields None. Integer segments index sequences.
    """
    if not path:
        return context

    current: Any = context
    for part in path.split("."):
        kind = kind_of(current)
        if kind is ValueKind.MAPPING:
            current = current.get(part)
        elif kind is ValueKind.SEQUENCE and part.isdigit():
            index = int(part)
            current = current[index] if index < len(current) else None
        else:
            return None
    return current


def stringify(value: Any) -> str:
    """String form of a value inserted by a ``{{name}}`` tag."""
    kind = kind_of(value)
    if kind is ValueKind.NULL:
        return ""
    if kind is ValueKind.SEQUENCE:
        return ",".join(stringify(item) for item in value)
    if kind is ValueKind.MAPPING:
        return json.dumps(dict(value), separators=(",", ":"), default=str)
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


@dataclass
class _Variable:
    key: str


@dataclass
class _Section:
    key: str
    inverted: bool
    children: list[_Node] = field(default_factory=list)


_Node = Union[str, _Variable, _Section]


@dataclass
class _Frame:
    key: str
    inverted: bool
    opening: str
    children: list[_Node] = field(default_factory=list)


def _unwrap(frame: _Frame, into: list[_Node]) -> None:
    """Demote an unclosed section back to literal text plus its content."""
    into.append(frame.opening)
    into.extend(frame.children)


def parse(template: str) -> list[_Node]:
    """Tokenize a template and match section markers with a stack."""
    root: list[_Node] = []
    stack: list[_Frame] = []

    def current() -> list[_Node]:
        return stack[-1].children if stack else root

    position = 0
    for match in _TAG_PATTERN.finditer(template):
        if match.start() > position:
            current().append(template[position : match.start()])
        position = match.end()

        raw = match.group(0)
        if match.group("key") is None:
            current().append(raw)
            continue
        sigil = match.group("sigil")
        key = match.group("key").strip()

        if not key:
            current().append(raw)
        elif sigil in ("#", "^"):
            stack.append(_Frame(key=key, inverted=sigil == "^", opening=raw))
        elif sigil == "/":
            depth = next(
                (i for i in range(len(stack) - 1, -1, -1) if stack[i].key == key),
                None,
            )
            if depth is None:
                current().append(raw)
                continue
            while len(stack) > depth + 1:
                frame = stack.pop()
                _unwrap(frame, current())
            frame = stack.pop()
            current().append(
                _Section(key=frame.key, inverted=frame.inverted, children=frame.children)
            )
        else:
            current().append(_Variable(key=key))

    if position < len(template):
        current().append(template[position:])

    while stack:
        frame = stack.pop()
        _unwrap(frame, current())

    return root


def _render_section(
    section: _Section, context: Mapping[str, Any], json_mode: bool
) -> str:
    value = lookup(context, section.key)

    if section.inverted:
        if is_truthy(value):
            return ""
        return _render_nodes(section.children, context, json_mode)

    if not is_truthy(value):
        return ""

    kind = kind_of(value)
    if kind is ValueKind.SEQUENCE:
        parts = []
        for item in value:
            scope = item if kind_of(item) is ValueKind.MAPPING else {"item": item}
            parts.append(
                _render_nodes(section.children, ChainMap(scope, context), json_mode)
            )
        return "".join(parts)
    if kind is ValueKind.MAPPING:
        return _render_nodes(section.children, ChainMap(value, context), json_mode)
    return _render_nodes(section.children, context, json_mode)


def _render_nodes(
    nodes: list[_Node], context: Mapping[str, Any], json_mode: bool
) -> str:
    parts: list[str] = []
    for node in nodes:
        if isinstance(node, str):
            parts.append(node)
        elif isinstance(node, _Variable):
            text = stringify(lookup(context, node.key))
            if json_mode:
                text = text.replace("\\", "\\\\")
            parts.append(text)
        else:
            parts.append(_render_section(node, context, json_mode))
    return "".join(parts)


def render_template(
    template: str, context: Mapping[str, Any], *, json_mode: bool = False
) -> str:
    """Render ``template`` against ``context``.

    Args:
        template: Template text
        context: Nested mapping of values
        json_mode: Escape backslashes in substituted values so the output
            stays valid JSON

    Returns:
        Rendered text
    """
    return _render_nodes(parse(template), context, json_mode)


def is_json_output(path: Any) -> bool:
    """Return True when output written to ``path`` needs JSON escaping."""
    return str(path).lower().endswith(".json")
