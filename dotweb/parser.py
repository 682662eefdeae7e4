import re
from typing import List

TAB_WIDTH = 2


class TreeNode:
    """One trimmed source line plus the lines indented beneath it."""

    def __init__(self, value: str, indent: int, line_number: int = 0):
        self.value = value
        self.indent = indent
        self.line_number = line_number
        self.children: List['TreeNode'] = []

    def __repr__(self) -> str:
        return f"TreeNode({self.value!r}, indent={self.indent}, children={len(self.children)})"


def parse_indent_tree(source: str) -> TreeNode:
    """
    Builds the node tree for a DotWeb source text.

    Blank lines are dropped and tabs count as TAB_WIDTH spaces. A line's parent is
    the closest open line with a strictly smaller indent, so irregular indentation
    is grouped rather than rejected.
    """
    root = TreeNode('root', -1)
    stack: List[TreeNode] = [root]

    for line_number, line in enumerate(source.replace('\t', ' ' * TAB_WIDTH).splitlines(), start=1):
        if not line.strip():
            continue
        indent = len(re.match(r"^ *", line).group(0))
        node = TreeNode(line.strip(), indent, line_number)

        # root (indent -1) is never popped
        while stack[-1].indent >= indent:
            stack.pop()
        stack[-1].children.append(node)
        stack.append(node)

    return root
