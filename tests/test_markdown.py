"""
Unit tests for the Markdown document tree.
"""

import pytest

from md_translator.errors import DocumentStructureError
from md_translator.markdown import (
    NodeKind,
    parse_document,
    quote,
    replace_node,
    serialize,
    synthetic,
)

SAMPLE = """---
title: Getting started
sidebar_position: 1
---

# Getting started

Install the package
with pip.

## Usage

- First item
- Second item
  continues here

> A quoted
> paragraph.

1. One
2. Two

```bash
pip install md-translator
```

| Option | Meaning |
|--------|---------|
| -f     | force   |

<div align="center">html</div>

Setext heading
--------------

Trailing paragraph without newline"""


def positioned(document):
    return [(node, parent) for node, parent in document.walk() if node.has_position]


class TestParseDocument:
    """Tests for parse_document."""

    @pytest.mark.parametrize(
        "text",
        [
            SAMPLE,
            "",
            "Just one line",
            "# Title\r\n\r\nWindows line endings.\r\n",
            "\n\n   \n",
        ],
    )
    def test_round_trip(self, text):
        """Tests that an unmodified tree serializes to its source."""
        assert serialize(parse_document(text)) == text

    def test_spans_nest(self):
        """Tests that children lie inside their parent and do not overlap."""
        document = parse_document(SAMPLE)
        for node, _ in positioned(document):
            previous_end = node.start
            for child in node.children:
                assert node.start <= child.start <= child.end <= node.end
                assert child.start >= previous_end
                previous_end = child.end

    def test_block_kinds(self):
        """Tests the kinds and texts collected for headings and paragraphs."""
        document = parse_document(SAMPLE)
        headings = [n for n, _ in document.walk() if n.kind == NodeKind.HEADING]
        assert [(h.level, h.block_text) for h in headings] == [
            (1, "# Getting started"),
            (2, "## Usage"),
            (2, "## Setext heading"),
        ]
        paragraphs = [n.block_text for n, _ in document.walk() if n.kind == NodeKind.PARAGRAPH]
        assert "Install the package\nwith pip." in paragraphs
        assert "A quoted\nparagraph." in paragraphs
        assert "Second item\ncontinues here" in paragraphs
        assert "pip install md-translator" not in paragraphs

    def test_front_matter_is_one_node(self):
        """Tests that front matter is kept as a single opaque node."""
        document = parse_document(SAMPLE)
        first = document.root.children[0]
        assert first.kind == NodeKind.FRONTMATTER
        assert SAMPLE[first.start:first.end].endswith("sidebar_position: 1\n---\n")

    def test_container_prefixes(self):
        """Tests the prefixes recorded for nested paragraphs."""
        document = parse_document("- Item\n  more\n\n> Quoted\n")
        paragraphs = [n for n, _ in document.walk() if n.kind == NodeKind.PARAGRAPH]
        assert [(p.prefix, p.continuation) for p in paragraphs] == [("- ", "  "), ("> ", "> ")]

    @pytest.mark.parametrize(
        "text, prefix, continuation",
        [
            ("1. 1\n", "1. ", "   "),
            ("- -1\n", "- ", "  "),
            ("> > 2\n", "> > ", "> > "),
            ("> - x\n", "> - ", ">   "),
        ],
    )
    def test_prefix_when_text_repeats_marker(self, text, prefix, continuation):
        """Tests that the prefix stops at the markers even when the text starts alike."""
        paragraph = [n for n, _ in parse_document(text).walk() if n.kind == NodeKind.PARAGRAPH][0]
        assert (paragraph.prefix, paragraph.continuation) == (prefix, continuation)

    def test_walk_reports_parents(self):
        """Tests that walk pairs every node with its parent."""
        document = parse_document("> Quoted\n")
        pairs = list(document.walk())
        assert pairs[0] == (document.root, None)
        for node, parent in pairs[1:]:
            assert node.parent is parent


class TestReplaceNode:
    """Tests for replace_node and serialization of replacements."""

    def test_replaces_by_identity(self):
        """Tests that only the given node of two equal siblings is replaced."""
        document = parse_document("Same.\n\nSame.\n")
        second = document.root.children[1]
        replace_node(document.root, second, [synthetic(NodeKind.PARAGRAPH, "Other.")])
        assert serialize(document) == "Same.\n\nOther.\n"

    def test_group_separated_by_blank_line(self):
        """Tests that several replacement nodes are separated by a blank line."""
        document = parse_document("Intro.\n\nBody.\n\nOutro.\n")
        body = document.root.children[1]
        replace_node(
            document.root, body, [synthetic(NodeKind.PARAGRAPH, "Corps."), synthetic(NodeKind.BLOCKQUOTE, quote("Body."))]
        )
        assert serialize(document) == "Intro.\n\nCorps.\n\n> Body.\n\nOutro.\n"

    def test_nested_replacement_uses_prefixes(self):
        """Tests multi-line replacements inside a list item."""
        document = parse_document("- Item\n- Next\n")
        paragraph = [n for n, _ in document.walk() if n.kind == NodeKind.PARAGRAPH][0]
        replace_node(paragraph.parent, paragraph, [synthetic(NodeKind.PARAGRAPH, "Line 1\nLine 2")])
        assert serialize(document) == "- Line 1\n  Line 2\n- Next\n"

    def test_keeps_crlf(self):
        """Tests that replacements keep Windows line endings."""
        document = parse_document("Hello\r\n\r\nWorld\r\n")
        replace_node(document.root, document.root.children[1], [synthetic(NodeKind.PARAGRAPH, "Mundo")])
        assert serialize(document) == "Hello\r\n\r\nMundo\r\n"

    def test_unknown_node(self):
        """Tests that a node missing from the parent is a structural error."""
        document = parse_document("One.\n\nTwo.\n")
        stranger = parse_document("Three.\n").root.children[0]
        with pytest.raises(DocumentStructureError):
            replace_node(document.root, stranger, [synthetic(NodeKind.PARAGRAPH, "x")])

    def test_marks_ancestors_modified(self):
        """Tests that only the path to the replaced node is re-rendered."""
        document = parse_document("> Quoted\n\nPlain.\n")
        quote_node = document.root.children[0]
        paragraph = quote_node.children[0]
        replace_node(quote_node, paragraph, [synthetic(NodeKind.PARAGRAPH, "Cité")])
        assert quote_node.modified and document.root.modified
        assert not document.root.children[1].modified
        assert serialize(document) == "> Cité\n\nPlain.\n"


class TestQuote:
    """Tests for quote."""

    def test_quotes_every_line(self):
        """Tests that blank lines stay inside the quote."""
        assert quote("a\n\nb\n") == "> a\n>\n> b"
