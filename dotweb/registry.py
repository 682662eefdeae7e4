import logging
import re
from typing import Dict, Optional

from .aggregator import Aggregator
from .errors import InvalidDefinitionError
from .parser import TreeNode

logger = logging.getLogger(__name__)

DEFINITION_KEYWORD = '$component'
_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_-]*$")


class ComponentDefinition:
    """The struct, style and class sections declared under `$component Name`."""

    def __init__(self, name: str, struct: Optional[TreeNode] = None,
                 style: Optional[TreeNode] = None, class_: Optional[TreeNode] = None):
        self.name = name
        self.struct = struct
        self.style = style
        self.class_ = class_

    def __repr__(self) -> str:
        sections = [s for s, node in (('struct', self.struct), ('style', self.style), ('class', self.class_)) if node]
        return f"ComponentDefinition({self.name!r}, sections={sections})"


def is_definition(node: TreeNode) -> bool:
    return node.value == DEFINITION_KEYWORD or node.value.startswith(DEFINITION_KEYWORD + ' ')


def definition_name(node: TreeNode) -> str:
    """Returns the single identifier named by a `$component` line."""
    parts = node.value.split()
    if len(parts) != 2 or not _NAME_RE.match(parts[1]):
        raise InvalidDefinitionError(
            f"A component definition must name exactly one identifier: '{node.value}'",
            f"Line {node.line_number}")
    return parts[1]


class ComponentRegistry:
    """
    Named component definitions for one compile.

    Defining a component also hands its style and class sections to the
    aggregator, once, at definition time. A later definition with the same
    name replaces the earlier one.
    """

    def __init__(self, aggregator: Aggregator):
        self.aggregator = aggregator
        self.components: Dict[str, ComponentDefinition] = {}

    def define(self, node: TreeNode) -> ComponentDefinition:
        definition = ComponentDefinition(definition_name(node))

        for section in node.children:
            if section.value == '*struct':
                definition.struct = section
            elif section.value == '*style' or section.value.startswith('*style '):
                definition.style = section
            elif section.value.startswith('*class'):
                definition.class_ = section

        if definition.name in self.components:
            logger.debug("Component %s redefined at line %d", definition.name, node.line_number)
        self.components[definition.name] = definition

        if definition.style is not None:
            self.aggregator.add_style_section(definition.name, definition.style)
        if definition.class_ is not None:
            self.aggregator.add_behavior(definition.name, definition.class_)
        return definition

    def get(self, name: str) -> Optional[ComponentDefinition]:
        return self.components.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self.components

    def __len__(self) -> int:
        return len(self.components)
