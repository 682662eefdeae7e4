import html
from typing import Dict, Iterable, List, Optional

DOCTYPE = '<!DOCTYPE html>'
DEFAULT_TITLE = 'DotWeb App'
DEFAULT_VIEWPORT = 'width=device-width, initial-scale=1.0'


def _attr(value: str) -> str:
    return str(value).replace('"', '&quot;')


def _style_block(styles: Iterable[str]) -> str:
    styles = list(styles)
    if not styles:
        return ''
    css = '\n'.join(styles)
    return f"<style>{css}</style>"


def _script_block(scripts: Iterable[str]) -> str:
    scripts = list(scripts)
    if not scripts:
        return ''
    code = '\n\n'.join(scripts)
    return f"<script>{code}</script>"


def _split_links(value: str) -> List[str]:
    return [link.strip() for link in value.split(',') if link.strip()]


def _document(head: List[str], lang: str, body: str, scripts: Iterable[str]) -> str:
    lines = [DOCTYPE, f'<html lang="{_attr(lang)}">', '<head>']
    lines.extend(f"  {line}" for line in head if line)
    lines.append('</head>')
    lines.append('<body>')
    lines.append(f"  {body}")
    script = _script_block(scripts)
    if script:
        lines.append(f"  {script}")
    lines.append('</body>')
    lines.append('</html>')
    return '\n'.join(lines)


def viewport_document(body: str, props: Dict[str, str], styles: Iterable[str], scripts: Iterable[str]) -> str:
    """Builds the full document for a `ViewPort` root from its metadata props."""
    head = [
        f'<meta charset="{_attr(props.get("charset", "UTF-8"))}">',
        f'<meta name="viewport" content="{_attr(props.get("viewport", DEFAULT_VIEWPORT))}">',
        f'<title>{props.get("title") or DEFAULT_TITLE}</title>',
    ]
    for name in ('description', 'keywords', 'author'):
        if props.get(name):
            head.append(f'<meta name="{name}" content="{_attr(props[name])}">')
    head.extend(f'<link rel="stylesheet" href="{_attr(href)}">' for href in _split_links(props.get('styles', '')))
    head.append(_style_block(styles))
    head.extend(f'<script src="{_attr(src)}"></script>' for src in _split_links(props.get('scripts', '')))

    lang = props.get('lang') or props.get('language') or 'en'
    return _document(head, lang, body, scripts)


def assemble(body: str, styles: Iterable[str], scripts: Iterable[str],
             viewport_props: Optional[Dict[str, str]] = None) -> str:
    """
    Wraps rendered body content into a complete HTML document.

    Content that already starts with a doctype (a ViewPort root) is returned as is.
    """
    if body.startswith(DOCTYPE):
        return body
    return viewport_document(body, viewport_props or {}, styles, scripts)


def render_error_page(message: str) -> str:
    """Standalone document shown in place of the preview when a compile fails."""
    return '\n'.join([
        DOCTYPE,
        '<html>',
        '<head>',
        '  <style>',
        '    body { font-family: -apple-system, BlinkMacSystemFont, sans-serif; padding: 2rem; '
        'background: #fee; color: #c00; }',
        '  </style>',
        '</head>',
        '<body>',
        '  <h1>DotWeb Runtime Error</h1>',
        f'  <p><strong>{html.escape(message)}</strong></p>',
        '</body>',
        '</html>',
    ])
