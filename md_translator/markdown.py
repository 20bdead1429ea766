"""Markdown document tree built on markdown-it-py block tokens.

Only the block structure matters for translation, so the tree keeps block
nodes with character spans into the raw text instead of a full AST.
Serializing emits untouched regions verbatim from the raw text and renders
replacement (synthetic) nodes in place of the node they replaced, which keeps
parse -> serialize an exact round-trip for unmodified documents.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from markdown_it import MarkdownIt

from md_translator.errors import DocumentStructureError

FRONTMATTER_REGEX = re.compile(r"^---[ \t]*\n(?:.*\n)*?---[ \t]*(?:\n|$)")
LIST_MARKER_REGEX = re.compile(r"(\d{1,9}[.)]|[-*+])(?=\s|$)")
# leading blockquote and list markers of a line, e.g. "> - "
CONTAINER_PREFIX_REGEX = re.compile(r"(?:[ \t]*(?:>|(?:\d{1,9}[.)]|[-*+])(?=[ \t]|$)))*[ \t]*")

_md = MarkdownIt("commonmark").enable("table")


class NodeKind(str, Enum):
    ROOT = "root"
    HEADING = "heading"
    PARAGRAPH = "paragraph"
    BLOCKQUOTE = "blockquote"
    LIST = "list"
    LIST_ITEM = "list_item"
    FRONTMATTER = "frontmatter"
    OTHER = "other"


_KIND_BY_TOKEN = {
    "heading_open": NodeKind.HEADING,
    "paragraph_open": NodeKind.PARAGRAPH,
    "blockquote_open": NodeKind.BLOCKQUOTE,
    "bullet_list_open": NodeKind.LIST,
    "ordered_list_open": NodeKind.LIST,
    "list_item_open": NodeKind.LIST_ITEM,
}

# Children of these kinds are tracked; anything else is an opaque leaf.
_CONTAINER_KINDS = {NodeKind.ROOT, NodeKind.BLOCKQUOTE, NodeKind.LIST, NodeKind.LIST_ITEM}


# eq=False: nodes are matched by identity, two identical paragraphs are
# still different nodes.
@dataclass(eq=False)
class Node:
    kind: NodeKind
    start: Optional[int] = None
    end: Optional[int] = None
    children: List["Node"] = field(default_factory=list)
    parent: Optional["Node"] = None
    # Markdown source of a heading/paragraph with container markers removed.
    block_text: str = ""
    level: int = 0
    # Container markers in front of the first line ("> ", "- ") and of the
    # following lines ("> ", "  ").
    prefix: str = ""
    continuation: str = ""
    # Set on synthetic replacement nodes only.
    text: Optional[str] = None
    origin: Optional["Node"] = None
    modified: bool = False

    @property
    def is_synthetic(self) -> bool:
        return self.text is not None

    @property
    def has_position(self) -> bool:
        return self.start is not None and self.end is not None


@dataclass
class Document:
    text: str
    root: Node

    def walk(self):
        """Depth-first (node, parent) pairs in document order."""
        stack = [(self.root, None)]
        while stack:
            node, parent = stack.pop()
            yield node, parent
            for child in reversed(node.children):
                stack.append((child, node))


def synthetic(kind: NodeKind, text: str) -> Node:
    return Node(kind=kind, text=text)


def quote(text: str) -> str:
    lines = text.rstrip("\n").split("\n")
    return "\n".join(f"> {line}" if line else ">" for line in lines)


def _line_offsets(text: str) -> List[int]:
    offsets = [0]
    for i, ch in enumerate(text):
        if ch == "\n":
            offsets.append(i + 1)
    return offsets


def _offset(offsets: List[int], line: int, text_len: int) -> int:
    return offsets[line] if line < len(offsets) else text_len


def _continuation(prefix: str) -> str:
    return LIST_MARKER_REGEX.sub(lambda m: " " * len(m.group(1)), prefix)


def _set_prefixes(node: Node, text: str) -> None:
    line_end = text.find("\n", node.start)
    first_line = text[node.start:line_end if line_end != -1 else node.end].rstrip("\r")
    node.prefix = first_line[:CONTAINER_PREFIX_REGEX.match(first_line).end()]
    node.continuation = _continuation(node.prefix)


def parse_document(text: str) -> Document:
    root = Node(kind=NodeKind.ROOT, start=0, end=len(text))
    body = text
    match = FRONTMATTER_REGEX.match(text)
    if match:
        root.children.append(Node(kind=NodeKind.FRONTMATTER, start=0, end=match.end(), parent=root))
        # blank out the front matter so line numbers still line up
        body = "\n" * match.group(0).count("\n") + text[match.end():]

    offsets = _line_offsets(text)
    tokens = _md.parse(body)
    stack = [root]
    opaque_depth = 0
    for token in tokens:
        if opaque_depth:
            opaque_depth += token.nesting
            continue
        if token.type == "inline":
            current = stack[-1]
            if current.kind == NodeKind.HEADING:
                current.block_text = f"{'#' * current.level} {token.content}".rstrip()
            elif current.kind == NodeKind.PARAGRAPH:
                current.block_text = token.content
            continue
        if token.nesting == -1:
            node = stack.pop()
            if node.kind in (NodeKind.HEADING, NodeKind.PARAGRAPH) and node.has_position:
                _set_prefixes(node, text)
            continue

        kind = _KIND_BY_TOKEN.get(token.type, NodeKind.OTHER)
        node = Node(kind=kind, parent=stack[-1])
        if token.map:
            node.start = _offset(offsets, token.map[0], len(text))
            node.end = _offset(offsets, token.map[1], len(text))
        if kind == NodeKind.HEADING:
            node.level = int(token.tag[1:])
        stack[-1].children.append(node)
        if token.nesting == 1:
            if kind in _CONTAINER_KINDS or kind in (NodeKind.HEADING, NodeKind.PARAGRAPH):
                stack.append(node)
            else:
                opaque_depth = 1
    return Document(text=text, root=root)


def replace_node(parent: Node, node: Node, replacement: List[Node]) -> None:
    """Splice ``replacement`` into ``parent.children`` where ``node`` is."""
    for i, child in enumerate(parent.children):
        if child is node:
            break
    else:
        raise DocumentStructureError(f"{node.kind.value} node is not a child of its recorded parent")
    for new in replacement:
        new.parent = parent
        new.origin = node
    parent.children[i:i + 1] = replacement
    ancestor: Optional[Node] = parent
    while ancestor is not None:
        ancestor.modified = True
        ancestor = ancestor.parent


def _render_replacement(group: List[Node], origin: Node, source: str) -> str:
    body = "\n\n".join(n.text.strip("\n") for n in group)
    lines = body.split("\n")
    rendered = []
    for i, line in enumerate(lines):
        marker = origin.prefix if i == 0 else origin.continuation
        rendered.append(marker + line if line else marker.rstrip())
    out = "\n".join(rendered)
    original = source[origin.start:origin.end]
    if original.endswith("\r\n"):
        out = out.replace("\n", "\r\n") + "\r\n"
    elif original.endswith("\n"):
        out += "\n"
    return out


def _render(node: Node, source: str) -> str:
    if not node.modified:
        return source[node.start:node.end]
    parts = []
    pos = node.start
    children = node.children
    i = 0
    while i < len(children):
        child = children[i]
        if child.is_synthetic:
            origin = child.origin
            group = [child]
            while i + 1 < len(children) and children[i + 1].is_synthetic and children[i + 1].origin is origin:
                i += 1
                group.append(children[i])
            parts.append(source[pos:origin.start])
            parts.append(_render_replacement(group, origin, source))
            pos = origin.end
        elif child.has_position:
            parts.append(source[pos:child.start])
            parts.append(_render(child, source))
            pos = child.end
        i += 1
    parts.append(source[pos:node.end])
    return "".join(parts)


def serialize(document: Document) -> str:
    return _render(document.root, document.text)
