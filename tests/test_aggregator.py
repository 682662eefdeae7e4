"""Style and behavior-script aggregation."""

from dotweb.aggregator import StyleSet, behavior_class_name, build_behavior_script
from dotweb.compiler import compile_source
from dotweb.parser import parse_indent_tree


class TestStyles:
    def test_style_set_keeps_first_occurrence_order(self) -> None:
        styles = StyleSet()
        for css in ["a {}", "b {}", "a {}"]:
            styles.add(css)
        assert list(styles) == ["a {}", "b {}"]
        assert len(styles) == 2

    def test_single_line_style(self, render, compiler) -> None:
        render("$component A\n  *style .a { color: red }")
        assert list(compiler.aggregator.styles) == ["/* Styles for A */", ".a { color: red }"]

    def test_block_style_keeps_rules_whole(self, render, compiler) -> None:
        render("$component Card\n  *style\n    .card {\n      padding: 4px;\n    }\n    h3 { margin: 0; }")
        assert list(compiler.aggregator.styles) == [
            "/* Styles for Card */",
            ".card {\n  padding: 4px;\n}",
            "h3 { margin: 0; }",
        ]

    def test_identical_rules_are_emitted_once(self) -> None:
        source = """
$component A
  *style .shared { color: red }
$component B
  *style .shared { color: red }
p x
"""
        html = compile_source(source)
        assert html.count(".shared { color: red }") == 1
        assert "/* Styles for A */" in html and "/* Styles for B */" in html
        assert html.count("<style>") == 1

    def test_styles_registered_once_per_definition(self, render, compiler) -> None:
        render("$component A\n  *style .a { color: red }\n  *struct\n    p x\nA\nA")
        assert len(compiler.aggregator.styles) == 2


class TestBehaviorScripts:
    def test_class_name(self) -> None:
        assert behavior_class_name("card") == "CardComponent"
        assert behavior_class_name("Counter") == "CounterComponent"

    def test_constructor_and_methods(self) -> None:
        class_node = parse_indent_tree(
            "*class\n  constructor\n    this.count = 0;\n  increment()\n    this.count++;"
        ).children[0]
        assert build_behavior_script("Counter", class_node) == "\n".join([
            "class CounterComponent {",
            "  constructor(element) {",
            "    this.count = 0;",
            "  }",
            "  increment() {",
            "    this.count++;",
            "  }",
            "}",
            "",
            "document.addEventListener('DOMContentLoaded', () => {",
            "  document.querySelectorAll('[data-component=\"Counter\"]').forEach(el => {",
            "    new CounterComponent(el);",
            "  });",
            "});",
        ])

    def test_braced_members_are_copied(self) -> None:
        class_node = parse_indent_tree(
            "*class\n  constructor(element) {\n    this.element = element;\n  }"
        ).children[0]
        script = build_behavior_script("Card", class_node)
        assert "  constructor(element) {\n    this.element = element;\n  }\n}" in script

    def test_one_script_per_class_section(self, render, compiler) -> None:
        render("$component A\n  *class\n    constructor\n      x();\n$component B\n  *struct\n    p b")
        assert len(compiler.aggregator.scripts) == 1
        assert "class AComponent" in compiler.aggregator.scripts[0]
