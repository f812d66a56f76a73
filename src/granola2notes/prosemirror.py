"""ProseMirror JSON -> Markdown -> plain text for the note store.

Granola stores the body of each meeting note as a ProseMirror document.
Only headings, paragraphs, bullet lists and text runs carry meaning here;
every other node kind is flattened to the text of its children so new node
types never break a sync.
"""

from __future__ import annotations

import logging
import re

from .models import NodeKind

log = logging.getLogger(__name__)

_INDENT = "  "


def prosemirror_to_markdown(content: object) -> str:
    """Convert a ProseMirror document to markdown. Never raises."""
    if not isinstance(content, dict) or not isinstance(content.get("content"), list):
        return ""
    try:
        return _render_node(content, 0)
    except Exception:
        log.warning("Failed to render ProseMirror content", exc_info=True)
        return ""


def _children(node: dict) -> list[dict]:
    content = node.get("content")
    if not isinstance(content, list):
        return []
    return [child for child in content if isinstance(child, dict)]


def _render_nodes(nodes: list[dict], indent_level: int) -> str:
    return "".join(_render_node(node, indent_level) for node in nodes)


def _render_node(node: dict, indent_level: int) -> str:
    node_type = node.get("type", "")

    match node_type:
        case NodeKind.HEADING:
            text = _render_nodes(_children(node), indent_level)
            return f"{'#' * _heading_level(node)} {text}\n\n"

        case NodeKind.PARAGRAPH:
            # Single break only; the note store already spaces paragraphs
            return _render_nodes(_children(node), indent_level) + "\n"

        case NodeKind.BULLET_LIST:
            items = _render_list_items(node, indent_level)
            if not items:
                return ""
            return "\n\n".join(items) + "\n\n"

        case NodeKind.TEXT:
            text = node.get("text", "")
            return text if isinstance(text, str) else ""

        case _:
            # doc and unknown kinds: flatten children
            return _render_nodes(_children(node), indent_level)


def _heading_level(node: dict) -> int:
    attrs = node.get("attrs")
    level = attrs.get("level") if isinstance(attrs, dict) else None
    if isinstance(level, int) and not isinstance(level, bool) and level >= 1:
        return level
    return 1


def _render_list_items(list_node: dict, indent_level: int) -> list[str]:
    rendered: list[str] = []
    for item in _children(list_node):
        if item.get("type") != NodeKind.LIST_ITEM:
            continue
        text = _render_list_item(item, indent_level)
        if text:
            rendered.append(text)
    return rendered


def _render_list_item(item: dict, indent_level: int) -> str:
    """Render one list item; nested lists go one indent level deeper."""
    paragraphs: list[str] = []
    nested: list[str] = []

    for child in _children(item):
        child_type = child.get("type")
        if child_type == NodeKind.PARAGRAPH:
            text = _flatten_text(child).strip()
            if text:
                paragraphs.append(text)
        elif child_type == NodeKind.BULLET_LIST:
            nested.extend(_render_list_items(child, indent_level + 1))

    lines: list[str] = []
    if paragraphs:
        lines.append(f"{_INDENT * indent_level}- {' '.join(paragraphs)}")
    lines.extend(nested)
    return "\n".join(lines)


def _flatten_text(node: dict) -> str:
    if node.get("type") == NodeKind.TEXT:
        text = node.get("text", "")
        return text if isinstance(text, str) else ""
    return "".join(_flatten_text(child) for child in _children(node))


_HEADING_RE = re.compile(r"^#{1,6} (.*)$", re.MULTILINE)
_BOLD_RE = re.compile(r"\*\*(.*?)\*\*")
_ITALIC_RE = re.compile(r"\*(.*?)\*")
_FENCED_CODE_RE = re.compile(r"```.*?```", re.DOTALL)
_INLINE_CODE_RE = re.compile(r"`([^`]+)`")
_EXCESS_BREAKS_RE = re.compile(r"\n{3,}")


def markdown_to_plain_text(markdown: str) -> str:
    """Strip markdown syntax the note store would show literally."""
    if not markdown:
        return ""
    text = _HEADING_RE.sub(r"\n\1\n", markdown)
    text = _BOLD_RE.sub(r"\1", text)
    text = _ITALIC_RE.sub(r"\1", text)
    text = _FENCED_CODE_RE.sub("", text)
    text = _INLINE_CODE_RE.sub(r"\1", text)
    return _EXCESS_BREAKS_RE.sub("\n\n", text)
