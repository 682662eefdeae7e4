"""
Sandboxed evaluation of the expressions embedded in DotWeb source.

Expressions are written with JavaScript-flavoured operators and `$name` bindings.
They are translated token by token into a Python expression, parsed with `ast`,
and walked by SandboxedEvaluator, which only knows the names of the current
scope plus a fixed table of pure helpers.
"""
import ast
import keyword
import logging
import re
from typing import Any, Callable, Dict, List, Mapping

from .errors import ExpressionError

logger = logging.getLogger(__name__)

MAX_EXPONENT = 1000
MAX_LENGTH = 100000
MAX_INT_BITS = 4096

# `$name` bindings and keyword-named bindings are renamed so they parse as identifiers
BINDING_PREFIX = '_v_'
_OPERATOR_KEYWORDS = {'and', 'or', 'not', 'in', 'is', 'if', 'else', 'True', 'False', 'None'}

_TOKEN_RE = re.compile(r"""
    (?P<string>"(?:\\.|[^"\\])*"|'(?:\\.|[^'\\])*')
  | (?P<number>\d+(?:\.\d+)?(?:[eE][-+]?\d+)?)
  | (?P<name>\$?[A-Za-z_][A-Za-z0-9_]*)
  | (?P<op>===|!==|==|!=|<=|>=|&&|\|\||\*\*|[-+*/%<>()\[\],.?:!])
  | (?P<space>\s+)
  | (?P<other>.)
""", re.VERBOSE)

_NAME_ALIASES = {'true': 'True', 'false': 'False', 'null': 'None', 'undefined': 'None'}
_OP_ALIASES = {'===': '==', '!==': '!=', '&&': 'and', '||': 'or', '!': 'not'}
_OPEN = {'(': ')', '[': ']'}

_INTERPOLATION_RE = re.compile(r"\{([^{}]+)\}")
_WHOLE_EXPRESSION_RE = re.compile(r"^\{([^{}]*)\}$")

_HELPERS: Dict[str, Callable[..., Any]] = {
    'len': len,
    'min': min,
    'max': max,
    'abs': abs,
    'round': round,
    'str': lambda value='': to_text(value),
    'int': int,
    'float': float,
}
_SAFE_STR_METHODS = {
    'lower', 'upper', 'title', 'strip', 'lstrip', 'rstrip', 'startswith', 'endswith',
    'capitalize', 'replace', 'split', 'join', 'count', 'find',
}
_CONSTANTS = {'True': True, 'False': False, 'None': None}


def to_text(value: Any) -> str:
    """Renders an evaluated value the way it appears in the HTML output."""
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple)):
        return ''.join(to_text(item) for item in value)
    return str(value)


def _tokenize(expression: str) -> List[str]:
    tokens: List[str] = []
    for match in _TOKEN_RE.finditer(expression):
        kind = match.lastgroup
        text = match.group(0)
        if kind == 'space':
            continue
        if kind == 'other':
            raise ExpressionError(f"Unexpected character {text!r} in expression '{expression}'")
        if kind == 'name':
            if text.startswith('$'):
                text = BINDING_PREFIX + text[1:]
            elif keyword.iskeyword(text) and text not in _OPERATOR_KEYWORDS:
                text = BINDING_PREFIX + text
            else:
                text = _NAME_ALIASES.get(text, text)
        elif kind == 'op':
            text = _OP_ALIASES.get(text, text)
        tokens.append(text)
    return tokens


def _matching_close(tokens: List[str], start: int) -> int:
    depth = 0
    for index in range(start, len(tokens)):
        if tokens[index] in _OPEN:
            depth += 1
        elif tokens[index] in (')', ']'):
            depth -= 1
            if depth == 0:
                if tokens[index] != _OPEN[tokens[start]]:
                    break
                return index
    raise ExpressionError(f"Unbalanced brackets in expression: {' '.join(tokens)}")


def _split_top_level(tokens: List[str], separator: str) -> List[List[str]]:
    parts: List[List[str]] = [[]]
    depth = 0
    for token in tokens:
        if token in _OPEN:
            depth += 1
        elif token in (')', ']'):
            depth -= 1
        if token == separator and depth == 0:
            parts.append([])
        else:
            parts[-1].append(token)
    return parts


def _fold_ternary(tokens: List[str]) -> List[str]:
    """Rewrites `cond ? a : b` into `(a) if (cond) else (b)`, innermost groups first."""
    grouped: List[str] = []
    index = 0
    while index < len(tokens):
        token = tokens[index]
        if token in _OPEN:
            close = _matching_close(tokens, index)
            arguments = _split_top_level(tokens[index + 1:close], ',')
            grouped.append(token)
            for position, argument in enumerate(arguments):
                if position:
                    grouped.append(',')
                grouped.extend(_fold_ternary(argument))
            grouped.append(tokens[close])
            index = close + 1
        else:
            grouped.append(token)
            index += 1

    depth = 0
    question = None
    for index, token in enumerate(grouped):
        if token in _OPEN:
            depth += 1
        elif token in (')', ']'):
            depth -= 1
        elif token == '?' and depth == 0:
            question = index
            break
    if question is None:
        return grouped

    nested = 0
    depth = 0
    for index in range(question + 1, len(grouped)):
        token = grouped[index]
        if token in _OPEN:
            depth += 1
        elif token in (')', ']'):
            depth -= 1
        elif depth == 0 and token == '?':
            nested += 1
        elif depth == 0 and token == ':':
            if nested == 0:
                condition = _fold_ternary(grouped[:question])
                when_true = _fold_ternary(grouped[question + 1:index])
                when_false = _fold_ternary(grouped[index + 1:])
                return ['(', '(', *when_true, ')', 'if', '(', *condition, ')',
                        'else', '(', *when_false, ')', ')']
            nested -= 1
    raise ExpressionError("Conditional expression is missing ':'")


def translate_expression(expression: str) -> str:
    """Translates DotWeb expression syntax into equivalent Python source."""
    return ' '.join(_fold_ternary(_tokenize(expression)))


def _bounded(value: Any) -> Any:
    if isinstance(value, (str, list, tuple)) and len(value) > MAX_LENGTH:
        raise ExpressionError(f"Result of {len(value)} items exceeds {MAX_LENGTH}")
    if isinstance(value, int) and not isinstance(value, bool) and value.bit_length() > MAX_INT_BITS:
        raise ExpressionError(f"Number exceeds {MAX_INT_BITS} bits")
    return value


def _check_str_method_size(text: str, method: str, arguments: List[Any]) -> None:
    """Rejects replace/join calls whose result would exceed MAX_LENGTH, before building it."""
    estimate = 0
    if method == 'replace' and len(arguments) >= 2 and all(isinstance(a, str) for a in arguments[:2]):
        old, new = arguments[0], arguments[1]
        matches = text.count(old) if old else len(text) + 1
        estimate = len(text) + matches * max(len(new) - len(old), 0)
    elif method == 'join' and arguments and isinstance(arguments[0], (list, tuple)):
        items = arguments[0]
        estimate = sum(len(item) for item in items if isinstance(item, str)) + len(text) * max(len(items) - 1, 0)
    if estimate > MAX_LENGTH:
        raise ExpressionError(f"Result of {method}() would exceed {MAX_LENGTH} characters")


class SandboxedEvaluator(ast.NodeVisitor):
    """Evaluates a restricted subset of the Python AST over a fixed variable set."""

    def __init__(self, scope: Mapping[str, Any]):
        self._scope = scope

    def evaluate(self, source: str) -> Any:
        try:
            tree = ast.parse(source, mode='eval')
        except SyntaxError as exc:
            raise ExpressionError(f"Invalid expression syntax: {source}") from exc
        return self.visit(tree)

    def visit(self, node: ast.AST) -> Any:
        method = getattr(self, f"visit_{type(node).__name__}", None)
        if method is None:
            raise ExpressionError(f"Unsupported expression element '{type(node).__name__}'")
        return method(node)

    def visit_Expression(self, node: ast.Expression) -> Any:
        return self.visit(node.body)

    def visit_Constant(self, node: ast.Constant) -> Any:
        return node.value

    def visit_Name(self, node: ast.Name) -> Any:
        identifier = node.id
        if identifier.startswith(BINDING_PREFIX):
            name = identifier[len(BINDING_PREFIX):]
            if name.startswith('__'):
                raise ExpressionError(f"Name '{name}' is not permitted")
            if name in self._scope:
                return self._scope[name]
            raise ExpressionError(f"Unknown name '{name}' in expression")
        if identifier.startswith('__'):
            raise ExpressionError(f"Name '{identifier}' is not permitted")
        if identifier in _CONSTANTS:
            return _CONSTANTS[identifier]
        if identifier in self._scope:
            return self._scope[identifier]
        if identifier in _HELPERS:
            return _HELPERS[identifier]
        raise ExpressionError(f"Unknown name '{identifier}' in expression")

    def visit_List(self, node: ast.List) -> Any:
        return [self.visit(element) for element in node.elts]

    def visit_Tuple(self, node: ast.Tuple) -> Any:
        return tuple(self.visit(element) for element in node.elts)

    def visit_BoolOp(self, node: ast.BoolOp) -> Any:
        # Returns the deciding operand, like `a || b` does in the browser
        value = None
        for value_node in node.values:
            value = self.visit(value_node)
            if isinstance(node.op, ast.And) and not value:
                return value
            if isinstance(node.op, ast.Or) and value:
                return value
        return value

    def visit_UnaryOp(self, node: ast.UnaryOp) -> Any:
        operand = self.visit(node.operand)
        if isinstance(node.op, ast.UAdd):
            return +operand
        if isinstance(node.op, ast.USub):
            return -operand
        if isinstance(node.op, ast.Not):
            return not operand
        raise ExpressionError("Unsupported unary operator")

    def visit_BinOp(self, node: ast.BinOp) -> Any:
        left = self.visit(node.left)
        right = self.visit(node.right)
        if isinstance(node.op, ast.Add):
            if isinstance(left, str) or isinstance(right, str):
                return _bounded(to_text(left) + to_text(right))
            return _bounded(left + right)
        if isinstance(node.op, ast.Sub):
            return left - right
        if isinstance(node.op, ast.Mult):
            if isinstance(left, (str, list)) or isinstance(right, (str, list)):
                sequence, count = (left, right) if isinstance(left, (str, list)) else (right, left)
                if isinstance(count, int) and len(sequence) * count > MAX_LENGTH:
                    raise ExpressionError(f"Repeated value would exceed {MAX_LENGTH} items")
            return _bounded(left * right)
        if isinstance(node.op, ast.Div):
            return left / right
        if isinstance(node.op, ast.FloorDiv):
            return left // right
        if isinstance(node.op, ast.Mod):
            return left % right
        if isinstance(node.op, ast.Pow):
            if isinstance(right, (int, float)) and abs(right) > MAX_EXPONENT:
                raise ExpressionError(f"Exponent {right} exceeds {MAX_EXPONENT}")
            if isinstance(left, int) and isinstance(right, int) and right > 0 \
                    and left.bit_length() * right > MAX_INT_BITS:
                raise ExpressionError(f"Power result would exceed {MAX_INT_BITS} bits")
            return _bounded(left ** right)
        raise ExpressionError("Unsupported binary operator")

    def visit_Compare(self, node: ast.Compare) -> Any:
        left = self.visit(node.left)
        for comparator, op in zip(node.comparators, node.ops):
            right = self.visit(comparator)
            if isinstance(op, ast.Eq):
                result = left == right
            elif isinstance(op, ast.NotEq):
                result = left != right
            elif isinstance(op, ast.Lt):
                result = left < right
            elif isinstance(op, ast.LtE):
                result = left <= right
            elif isinstance(op, ast.Gt):
                result = left > right
            elif isinstance(op, ast.GtE):
                result = left >= right
            elif isinstance(op, ast.In):
                result = left in right
            elif isinstance(op, ast.NotIn):
                result = left not in right
            else:
                raise ExpressionError("Unsupported comparison operator")
            if not result:
                return False
            left = right
        return True

    def visit_IfExp(self, node: ast.IfExp) -> Any:
        if self.visit(node.test):
            return self.visit(node.body)
        return self.visit(node.orelse)

    def visit_Subscript(self, node: ast.Subscript) -> Any:
        return self.visit(node.value)[self.visit(node.slice)]

    def visit_Index(self, node) -> Any:
        # Python 3.8 wraps subscripts in ast.Index
        return self.visit(node.value)

    def visit_Slice(self, node: ast.Slice) -> Any:
        lower = self.visit(node.lower) if node.lower is not None else None
        upper = self.visit(node.upper) if node.upper is not None else None
        step = self.visit(node.step) if node.step is not None else None
        return slice(lower, upper, step)

    def visit_Attribute(self, node: ast.Attribute) -> Any:
        value = self.visit(node.value)
        if node.attr == 'length' and isinstance(value, (str, list, tuple)):
            return len(value)
        if isinstance(value, str) and node.attr in _SAFE_STR_METHODS:
            return getattr(value, node.attr)
        raise ExpressionError(f"Attribute '{node.attr}' is not permitted")

    def visit_Call(self, node: ast.Call) -> Any:
        if node.keywords:
            raise ExpressionError("Keyword arguments are not supported")
        func = self.visit(node.func)
        owner = getattr(func, '__self__', None)
        allowed = func in _HELPERS.values() or (
            isinstance(owner, str) and getattr(func, '__name__', '') in _SAFE_STR_METHODS)
        if not allowed:
            raise ExpressionError("Call to unsupported function")
        arguments = [self.visit(argument) for argument in node.args]
        if isinstance(owner, str):
            _check_str_method_size(owner, func.__name__, arguments)
        return _bounded(func(*arguments))


def eval_expression(expression: str, scope: Mapping[str, Any]) -> Any:
    """Evaluates one expression (without its braces) against scope. Raises ExpressionError."""
    source = translate_expression(expression)
    if not source:
        raise ExpressionError("Empty expression")
    try:
        return SandboxedEvaluator(scope).evaluate(source)
    except ExpressionError:
        raise
    except (ArithmeticError, TypeError, ValueError, LookupError, MemoryError, RecursionError) as exc:
        raise ExpressionError(f"{type(exc).__name__}: {exc} in expression '{expression.strip()}'") from exc


def resolve_variable(name: str, scope: Mapping[str, Any]) -> Any:
    """Looks a bare `$name` reference up in scope, giving empty text when absent."""
    return scope.get(name.strip(), '')


def _evaluate_or_empty(expression: str, scope: Mapping[str, Any]) -> str:
    try:
        return to_text(eval_expression(expression, scope))
    except ExpressionError as exc:
        logger.warning("Expression error in {%s}: %s", expression.strip(), exc.message)
        return ''


def evaluate_text(text: str, scope: Mapping[str, Any]) -> str:
    """
    Renders a text line: a whole `{expr}`, literal text with `{expr}` spans, a bare
    `$name` reference, or plain text. Failing expressions render as empty text.
    """
    text = text.strip()
    whole = _WHOLE_EXPRESSION_RE.match(text)
    if whole:
        return _evaluate_or_empty(whole.group(1), scope)
    if '{' in text:
        return _INTERPOLATION_RE.sub(lambda match: _evaluate_or_empty(match.group(1), scope), text)
    if text.startswith('$'):
        return to_text(resolve_variable(text[1:], scope))
    return text
