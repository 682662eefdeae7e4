"""Document assembly, the ViewPort built-in and the compile entry points."""

from dotweb.assembler import DOCTYPE, assemble, render_error_page
from dotweb.compiler import DotwebCompiler, compile_source, source_stats, try_compile


class TestDefaultDocument:
    def test_shell_without_styles_or_scripts(self) -> None:
        html = compile_source("p Hi")
        assert html.startswith(DOCTYPE)
        assert "<title>DotWeb App</title>" in html
        assert "<p>Hi</p>" in html
        assert "<style>" not in html
        assert "<script" not in html

    def test_styles_in_head_scripts_in_body(self) -> None:
        source = """
$component A
  *struct
    p a
  *style p { color: red }
  *class
    constructor
      this.el = element;
A
"""
        html = compile_source(source)
        head, body = html.split("<body>")
        assert "<style>/* Styles for A */\np { color: red }</style>" in head
        assert "<script>class AComponent {" in body
        assert '<div data-component="A"><p>a</p></div>' in body

    def test_doctype_content_is_returned_unchanged(self) -> None:
        page = DOCTYPE + "\n<html></html>"
        assert assemble(page, ["a {}"], ["x();"]) == page


class TestViewPort:
    def test_title_and_body(self) -> None:
        html = compile_source('ViewPort\n  *title "X"\n  p Hello')
        assert html.startswith(DOCTYPE)
        assert html.count(DOCTYPE) == 1
        assert "<title>X</title>" in html
        assert "<p>Hello</p>" in html

    def test_metadata(self) -> None:
        source = """
ViewPort
  *lang "fr"
  *charset "ISO-8859-1"
  *description "A page"
  *keywords "a, b"
  *author "Ada"
  *styles "a.css, b.css"
  *scripts "app.js"
"""
        html = compile_source(source)
        assert '<html lang="fr">' in html
        assert '<meta charset="ISO-8859-1">' in html
        assert '<meta name="description" content="A page">' in html
        assert '<meta name="keywords" content="a, b">' in html
        assert '<meta name="author" content="Ada">' in html
        assert '<link rel="stylesheet" href="a.css">' in html
        assert '<link rel="stylesheet" href="b.css">' in html
        assert '<script src="app.js"></script>' in html

    def test_style_and_script_blocks(self) -> None:
        source = """
ViewPort
  *style
    body {
      margin: 0;
    }
  *script
    console.log('ready');
  p x
"""
        html = compile_source(source)
        assert "/* Styles for ViewPort */\nbody {\n  margin: 0;\n}" in html
        assert "<script>console.log('ready');</script>" in html

    def test_components_defined_before_viewport_contribute_styles(self) -> None:
        source = """
$component Card
  *struct
    div.card
      h3 {$title}
  *style .card { padding: 24px; }
ViewPort
  *title "Cards"
  Card
    *title<string> "One"
"""
        html = compile_source(source)
        assert ".card { padding: 24px; }" in html.split("</head>")[0]
        assert '<div data-component="Card"><div class="card"><h3>One</h3></div></div>' in html


class TestCompileEntryPoints:
    SOURCE = """
$component Card
  *struct
    div.card
      h3 {$title}
  *style .card { padding: 1px; }
Card
  *title "A"
"""

    def test_fresh_compiles_are_identical(self) -> None:
        assert compile_source(self.SOURCE) == compile_source(self.SOURCE)

    def test_reused_instance_leaks_definitions(self) -> None:
        compiler = DotwebCompiler()
        compiler.compile(self.SOURCE)
        assert 'data-component="Card"' in compiler.compile("Card")
        assert 'data-component="Card"' not in compile_source("Card")

    def test_headers_are_compiled_first(self) -> None:
        html = compile_source('Card\n  *title "B"', headers=[self.SOURCE])
        assert "<h3>B</h3>" in html
        assert html.count(DOCTYPE) == 1

    def test_try_compile_reports_errors(self) -> None:
        source = "$component A\n  *struct\n    p x\nA\n  *on<boolean> yes"
        result = try_compile(source)
        assert not result.ok
        assert result.html is None
        assert result.error == "DotWeb Compile Error (Line 5): Invalid boolean value for on: yes"

    def test_try_compile_success(self) -> None:
        result = try_compile("p ok")
        assert result.ok
        assert "<p>ok</p>" in result.html

    def test_text_expression_failure_is_not_fatal(self) -> None:
        assert try_compile("p {$nothing} here").ok

    def test_source_stats(self) -> None:
        stats = source_stats("$component A\n$component B\np x")
        assert stats == {"characters": 29, "lines": 3, "components": 2}


class TestErrorPage:
    def test_message_is_escaped(self) -> None:
        page = render_error_page("Block required for <Component> prop: body")
        assert page.startswith(DOCTYPE)
        assert "&lt;Component&gt;" in page
        assert "DotWeb Runtime Error" in page
