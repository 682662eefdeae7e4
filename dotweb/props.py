import re
from typing import Any, Mapping, Optional, Tuple

from .errors import (
    BlockOnNonComponentPropError,
    ExpressionError,
    InvalidBooleanError,
    InvalidNumberError,
    InvalidPropSyntaxError,
    MissingBlockError,
    MissingPropValueError,
)
from .evaluator import eval_expression, to_text
from .parser import TreeNode

DIRECTIVE_MARKER = '*'
PROP_TYPES = ('string', 'number', 'boolean', 'Component', 'any')

# *key<type> value
_PROP_RE = re.compile(r"^([a-zA-Z0-9_]+)(?:<([a-zA-Z0-9_]+)>)?(?:\s+(.+))?$")
_INT_RE = re.compile(r"^[-+]?\d+$")
_METADATA_RE = re.compile(r"^([a-zA-Z0-9_-]+)(?:<[a-zA-Z0-9_]+>)?(?:\s+(.*))?$")


class Prop:
    """A parsed `*key<type> value` line, or a deferred Component block."""

    def __init__(self, key: str, type_: str = 'any', value: Any = None, block: Optional[TreeNode] = None):
        self.key = key
        self.type = type_
        self.value = value
        self.block = block

    @property
    def is_block(self) -> bool:
        return self.block is not None

    def __repr__(self) -> str:
        return f"Prop({self.key!r}, {self.type!r}, value={self.value!r}, block={self.is_block})"


def strip_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
        return value[1:-1]
    return value


def is_directive(node: TreeNode) -> bool:
    return node.value.startswith(DIRECTIVE_MARKER)


def _coerce(key: str, type_: str, raw: str, line: str) -> Any:
    if type_ == 'number':
        try:
            return int(raw) if _INT_RE.match(raw) else float(raw)
        except ValueError:
            raise InvalidNumberError(f"Invalid number value for {key}: {raw}", line) from None
    if type_ == 'boolean':
        if raw not in ('true', 'false'):
            raise InvalidBooleanError(f"Invalid boolean value for {key}: {raw}", line)
        return raw == 'true'
    return strip_quotes(raw)


def parse_prop(node: TreeNode, scope: Mapping[str, Any]) -> Prop:
    """
    Parses a directive child of a component invocation.

    Inline `{...}` values are evaluated against scope, the caller's scope at the
    point of invocation; an evaluation failure aborts the compile.
    """
    line = f"Line {node.line_number}"
    match = _PROP_RE.match(node.value[len(DIRECTIVE_MARKER):].strip())
    if not match:
        raise InvalidPropSyntaxError(f"Invalid prop syntax: {node.value}", line)
    key, type_, inline_value = match.group(1), match.group(2) or 'any', match.group(3)
    if type_ not in PROP_TYPES:
        raise InvalidPropSyntaxError(f"Unknown prop type <{type_}> for {key}", line)

    if node.children:
        if type_ != 'Component':
            raise BlockOnNonComponentPropError(f"Block input allowed only for <Component> prop: {key}", line)
        return Prop(key, type_, block=node)
    if type_ == 'Component':
        raise MissingBlockError(f"Block required for <Component> prop: {key}", line)
    if inline_value is None:
        raise MissingPropValueError(f"Prop {key} requires a value", line)

    raw = inline_value.strip()
    if raw.startswith('{') and raw.endswith('}'):
        try:
            return Prop(key, type_, eval_expression(raw[1:-1], scope))
        except ExpressionError as exc:
            raise ExpressionError(f"Expression error in prop {key}: {exc.message}", line) from exc
    return Prop(key, type_, _coerce(key, type_, raw, line))


def parse_metadata(node: TreeNode, scope: Mapping[str, Any]) -> Tuple[str, str]:
    """Parses a `*key value` line of a built-in into its key and text value."""
    match = _METADATA_RE.match(node.value[len(DIRECTIVE_MARKER):].strip())
    if not match:
        raise InvalidPropSyntaxError(f"Invalid prop syntax: {node.value}", f"Line {node.line_number}")
    key, raw = match.group(1), (match.group(2) or '').strip()
    if raw.startswith('{') and raw.endswith('}'):
        try:
            return key, to_text(eval_expression(raw[1:-1], scope))
        except ExpressionError as exc:
            raise ExpressionError(f"Expression error in prop {key}: {exc.message}",
                                  f"Line {node.line_number}") from exc
    return key, strip_quotes(raw)
