"""Pytest configuration and fixtures for DotWeb tests."""

import pytest

from dotweb.compiler import DotwebCompiler
from dotweb.parser import parse_indent_tree
from dotweb.scope import Scope


@pytest.fixture
def compiler():
    """A fresh compiler, as every compile should get."""
    return DotwebCompiler()


@pytest.fixture
def render(compiler):
    """Render source to its body markup (no document shell)."""

    def _render(source: str) -> str:
        return compiler.render_children(parse_indent_tree(source).children, Scope())

    return _render


@pytest.fixture
def node():
    """First top-level node of a one-construct source."""

    def _node(source: str):
        return parse_indent_tree(source).children[0]

    return _node
