"""Structural parser: indentation grouping."""

from dotweb.parser import parse_indent_tree


class TestIndentTree:
    def test_root_is_synthetic(self) -> None:
        root = parse_indent_tree("p Hello")
        assert root.indent == -1
        assert [n.value for n in root.children] == ["p Hello"]

    def test_children_keep_sibling_order(self) -> None:
        root = parse_indent_tree("div\n  a\n  b\n  c\nfooter")
        div, footer = root.children
        assert [n.value for n in div.children] == ["a", "b", "c"]
        assert footer.children == []

    def test_blank_lines_are_dropped_and_lines_trimmed(self) -> None:
        root = parse_indent_tree("\n\ndiv   \n\n    span x  \n")
        (div,) = root.children
        assert div.value == "div"
        assert div.children[0].value == "span x"
        assert div.children[0].line_number == 5

    def test_tabs_count_as_two_spaces(self) -> None:
        root = parse_indent_tree("ul\n\tli one\n\t\tb two")
        li = root.children[0].children[0]
        assert li.indent == 2
        assert li.children[0].indent == 4

    def test_irregular_indentation_is_grouped_not_rejected(self) -> None:
        """A line attaches to the nearest open line with a smaller indent."""
        root = parse_indent_tree("a\n      b\n  c\n    d")
        (a,) = root.children
        assert [n.value for n in a.children] == ["b", "c"]
        assert [n.value for n in a.children[1].children] == ["d"]

    def test_dedent_to_unseen_level(self) -> None:
        root = parse_indent_tree("a\n    b\n  c")
        (a,) = root.children
        b, c = a.children
        assert b.value == "b" and c.value == "c"
        assert b.children == []
