import logging
from typing import Iterable, Iterator, List

from .parser import TreeNode

logger = logging.getLogger(__name__)


class StyleSet:
    """Insertion-ordered set of CSS snippets; an exact duplicate is kept once."""

    def __init__(self):
        self._snippets = {}

    def add(self, css: str) -> None:
        self._snippets.setdefault(css, None)

    def __iter__(self) -> Iterator[str]:
        return iter(self._snippets)

    def __len__(self) -> int:
        return len(self._snippets)

    def __contains__(self, css: object) -> bool:
        return css in self._snippets


def behavior_class_name(component_name: str) -> str:
    return component_name[:1].upper() + component_name[1:] + 'Component'


def _flatten(node: TreeNode, depth: int) -> Iterator[str]:
    yield '  ' * depth + node.value
    for child in node.children:
        yield from _flatten(child, depth + 1)


def _css_rules(lines: Iterable[str]) -> Iterator[str]:
    """Groups style lines into whole rules by brace balance so shared lines like `}` stay with their rule."""
    rule: List[str] = []
    depth = 0
    for line in lines:
        rule.append(line)
        depth += line.count('{') - line.count('}')
        if depth <= 0:
            yield '\n'.join(rule)
            rule, depth = [], 0
    if rule:
        yield '\n'.join(rule)


def _is_method_signature(value: str) -> bool:
    return '(' in value and value.endswith(')')


def build_behavior_script(component_name: str, class_node: TreeNode) -> str:
    """
    Generates the browser script for a component's `*class` section: a handler
    class whose members come from the section lines, then a page-ready hook that
    instantiates it for every element tagged with the component's name.
    """
    class_name = behavior_class_name(component_name)
    lines: List[str] = [f"class {class_name} {{"]

    for member in class_node.children:
        if member.value == 'constructor':
            lines.append("  constructor(element) {")
            lines.extend(line for child in member.children for line in _flatten(child, 2))
            lines.append("  }")
        elif _is_method_signature(member.value):
            lines.append(f"  {member.value} {{")
            lines.extend(line for child in member.children for line in _flatten(child, 2))
            lines.append("  }")
        else:
            # Already braced members (`constructor(element) {`) and closing lines go through as written
            lines.extend(_flatten(member, 1))

    lines.append("}")
    lines.append("")
    lines.append("document.addEventListener('DOMContentLoaded', () => {")
    lines.append(f"  document.querySelectorAll('[data-component=\"{component_name}\"]').forEach(el => {{")
    lines.append(f"    new {class_name}(el);")
    lines.append("  });")
    lines.append("});")
    return '\n'.join(lines)


class Aggregator:
    """Collects the styles and behavior scripts discovered during one compile."""

    def __init__(self):
        self.styles = StyleSet()
        self.scripts: List[str] = []

    def add_styles(self, owner: str, declarations: Iterable[str]) -> None:
        self.styles.add(f"/* Styles for {owner} */")
        for css in declarations:
            self.styles.add(css)

    def add_style_section(self, owner: str, style_node: TreeNode) -> None:
        if style_node.children:
            self.add_styles(owner, _css_rules(line for child in style_node.children for line in _flatten(child, 0)))
        else:
            _, _, inline_css = style_node.value.partition(' ')
            self.add_styles(owner, [inline_css.strip()] if inline_css.strip() else [])

    def add_behavior(self, component_name: str, class_node: TreeNode) -> None:
        self.scripts.append(build_behavior_script(component_name, class_node))
        logger.debug("Registered behavior script for %s", component_name)

    def add_script_section(self, script_node: TreeNode) -> None:
        self.scripts.append('\n'.join(line for child in script_node.children for line in _flatten(child, 0)))
