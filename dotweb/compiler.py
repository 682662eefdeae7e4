import logging
import re
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, NamedTuple, Optional

from .aggregator import Aggregator
from .assembler import assemble, viewport_document
from .errors import CompileError, RecursiveComponentError
from .evaluator import evaluate_text, to_text
from .parser import TreeNode, parse_indent_tree
from .props import is_directive, parse_metadata, parse_prop
from .registry import ComponentRegistry, is_definition
from .scope import SLOT_KEY, Scope

logger = logging.getLogger(__name__)

SLOT_MARKER = '$slot'
VOID_ELEMENTS = {
    'area', 'base', 'br', 'col', 'embed', 'hr', 'img', 'input',
    'link', 'meta', 'source', 'track', 'wbr',
}

# tag[.class...][#id][[attr=val,...]] in any order after the tag
_ELEMENT_HEAD_RE = re.compile(r"^[a-z][a-zA-Z0-9-]*(?:\.[A-Za-z0-9_-]+|#[A-Za-z0-9_-]+|\[[^\]]*\])*$")
_TAG_RE = re.compile(r"^[a-z][a-zA-Z0-9-]*")
_HEAD_PART_RE = re.compile(r"\.([A-Za-z0-9_-]+)|#([A-Za-z0-9_-]+)|\[([^\]]*)\]")
_COMPONENT_COUNT_RE = re.compile(r"\$component\s+\w+")


class NodeKind(Enum):
    DEFINITION = 'definition'
    SLOT = 'slot'
    BUILTIN = 'builtin'
    DIRECTIVE = 'directive'
    INVOCATION = 'invocation'
    ELEMENT = 'element'
    TEXT = 'text'


class CompileResult(NamedTuple):
    html: Optional[str]
    error: Optional[str]

    @property
    def ok(self) -> bool:
        return self.error is None


def split_head(value: str) -> List[str]:
    """Splits an element line at the first space outside an attribute list."""
    depth = 0
    for index, char in enumerate(value):
        if char == '[':
            depth += 1
        elif char == ']':
            depth -= 1
        elif char == ' ' and depth <= 0:
            return [value[:index], value[index + 1:]]
    return [value, '']


class DotwebCompiler:
    """
    DotWeb Compiler
    Compiles DotWeb source into a standalone HTML document.

    Features:
    - Indentation-based hierarchy
    - Components ($component) with struct, style and class sections
    - Typed props (*key<type> value), Component block props and slots ($slot)
    - Element shorthand (tag.class#id[attr=value] text)
    - Sandboxed {expressions} and $variable references
    - ViewPort built-in for document metadata
    - Styles and behavior scripts gathered into the final document

    One instance holds the registry and aggregated styles/scripts of a single
    compile. Reusing an instance carries earlier definitions and styles forward.
    """

    def __init__(self):
        self.aggregator = Aggregator()
        self.registry = ComponentRegistry(self.aggregator)
        self.builtins: Dict[str, Callable[[TreeNode, Scope], str]] = {'ViewPort': self._render_viewport}
        self._active: List[str] = []  # components whose struct is being rendered

    def classify(self, node: TreeNode) -> NodeKind:
        value = node.value
        if is_definition(node):
            return NodeKind.DEFINITION
        if value == SLOT_MARKER:
            return NodeKind.SLOT
        if value in self.builtins:
            return NodeKind.BUILTIN
        if is_directive(node):
            return NodeKind.DIRECTIVE
        if value in self.registry:
            return NodeKind.INVOCATION
        if _ELEMENT_HEAD_RE.match(split_head(value)[0]):
            return NodeKind.ELEMENT
        return NodeKind.TEXT

    def render(self, node: TreeNode, scope: Scope) -> str:
        kind = self.classify(node)
        if kind is NodeKind.DEFINITION:
            self.registry.define(node)
            return ''
        if kind is NodeKind.SLOT:
            return to_text(scope.get(SLOT_KEY, ''))
        if kind is NodeKind.BUILTIN:
            return self.builtins[node.value](node, scope)
        if kind is NodeKind.DIRECTIVE:
            # consumed by the enclosing invocation or built-in
            return ''
        if kind is NodeKind.INVOCATION:
            return self._render_invocation(node, scope)
        if kind is NodeKind.ELEMENT:
            return self._render_element(node, scope)
        return evaluate_text(node.value, scope)

    def render_children(self, nodes: Iterable[TreeNode], scope: Scope) -> str:
        return ''.join(self.render(child, scope) for child in nodes)

    def _render_invocation(self, node: TreeNode, scope: Scope) -> str:
        """
        Renders a component usage. Simple props form the new scope, the slot is
        rendered in the caller's scope, and block props are rendered in the new
        scope (which already holds the props and the slot).
        """
        definition = self.registry.get(node.value)
        props = []
        slot_nodes = []
        for child in node.children:
            if is_directive(child):
                props.append(parse_prop(child, scope))
            else:
                slot_nodes.append(child)

        if definition.struct is None:
            return ''
        if definition.name in self._active:
            raise RecursiveComponentError(
                f"Component {definition.name} invokes itself", f"Line {node.line_number}")

        local = Scope({prop.key: prop.value for prop in props if not prop.is_block})
        local = local.extend(**{SLOT_KEY: tuple(self.render(child, scope) for child in slot_nodes)})
        blocks = {prop.key: self.render_children(prop.block.children, local) for prop in props if prop.is_block}
        local = local.extend(**blocks)

        self._active.append(definition.name)
        try:
            content = self.render_children(definition.struct.children, local)
        finally:
            self._active.pop()
        return f'<div data-component="{definition.name}">{content}</div>'

    def _parse_attributes(self, head: str, scope: Scope) -> str:
        """Turns the `.class#id[key=value]` parts of an element head into HTML attributes."""
        classes: List[str] = []
        element_id = ''
        others = ''
        for match in _HEAD_PART_RE.finditer(head, _TAG_RE.match(head).end()):
            class_name, id_value, attr_list = match.groups()
            if class_name:
                classes.append(class_name)
            elif id_value:
                element_id = id_value
            elif attr_list:
                for pair in attr_list.split(','):
                    name, has_value, value = pair.partition('=')
                    name = name.strip()
                    if not name:
                        continue
                    if not has_value:
                        others += f' {name}'
                        continue
                    value = evaluate_text(value.strip().strip('"\''), scope).replace('"', '&quot;')
                    others += f' {name}="{value}"'

        attrs = ''
        if classes:
            attrs += f' class="{" ".join(classes)}"'
        if element_id:
            attrs += f' id="{element_id}"'
        return attrs + others

    def _render_element(self, node: TreeNode, scope: Scope) -> str:
        head, rest = split_head(node.value)
        tag = _TAG_RE.match(head).group(0)
        attrs = self._parse_attributes(head, scope)

        inner = evaluate_text(rest, scope) if rest else ''
        inner += self.render_children(node.children, scope)

        if tag in VOID_ELEMENTS and not inner:
            return f"<{tag}{attrs}>"
        return f"<{tag}{attrs}>{inner}</{tag}>"

    def _render_viewport(self, node: TreeNode, scope: Scope) -> str:
        props: Dict[str, str] = {}
        content = []
        for child in node.children:
            if not is_directive(child):
                content.append(child)
                continue
            key, value = parse_metadata(child, scope)
            if key == 'style':
                self.aggregator.add_style_section(node.value, child)
            elif key == 'script' and child.children:
                self.aggregator.add_script_section(child)
            else:
                props[key] = value

        body = self.render_children(content, scope)
        return viewport_document(body, props, self.aggregator.styles, self.aggregator.scripts)

    def run(self, tree: TreeNode) -> str:
        body = self.render_children(tree.children, Scope())
        return assemble(body, self.aggregator.styles, self.aggregator.scripts)

    def compile(self, source: str) -> str:
        """Compiles DotWeb source code to HTML."""
        document = self.run(parse_indent_tree(source))
        logger.debug("Compiled %d component(s), %d style snippet(s), %d script(s)",
                     len(self.registry), len(self.aggregator.styles), len(self.aggregator.scripts))
        return document


def compile_source(source: str, headers: Iterable[str] = ()) -> str:
    """Compiles source with a fresh compiler, after compiling any header sources into it."""
    compiler = DotwebCompiler()
    for header in headers:
        compiler.compile(header)
    return compiler.compile(source)


def try_compile(source: str, headers: Iterable[str] = ()) -> CompileResult:
    try:
        return CompileResult(compile_source(source, headers), None)
    except CompileError as exc:
        return CompileResult(None, str(exc))


def source_stats(source: str) -> Dict[str, Any]:
    return {
        'characters': len(source),
        'lines': len(source.split('\n')),
        'components': len(_COMPONENT_COUNT_RE.findall(source)),
    }
