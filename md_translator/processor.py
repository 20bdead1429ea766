"""Turns a source document into its translated counterpart.

A processor parses the document, collects its translatable blocks (headings,
paragraphs and, for MDX, admonition directives), translates them one by one in
document order, splices the replacement nodes into the tree and serializes it.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

from md_translator import markdown
from md_translator.chunker import needs_split, rejoin_chunks, split_block
from md_translator.config import CONTEXT_MIN_TOKENS, MAX_CHUNK_CHARS
from md_translator.context import RunContext, TokenCounter, build_context, count_tokens
from md_translator.errors import DocumentStructureError
from md_translator.markdown import Document, Node, NodeKind
from md_translator.memory import MemoryEntry, NullTranslationMemory, TranslationMemory
from md_translator.translator import ProofreadTranslator

logger = logging.getLogger(__name__)

# images may carry inline base64 data, never send them to the oracle
IMAGE_REGEX = re.compile(r"^!\[.*?\]\(.*?\)")
HEADING_MARKER_REGEX = re.compile(r"^#+\s*")

# https://docusaurus.io/docs/markdown-features/toc#inline-table-of-contents
THEME_IMPORT_REGEX = re.compile(r"^\s*import\s+\w+\s+from\s+[\"']@theme/")
JSX_COMPONENT_REGEX = re.compile(r"<[A-Z][a-zA-Z0-9]*(?:\s+[^>]*)?\s*/?>", re.DOTALL)
# https://docusaurus.io/docs/markdown-features/admonitions
DIRECTIVE_OPEN_REGEX = re.compile(r"^:{3,}[ \t]*\w.*$")
DIRECTIVE_CLOSE_REGEX = re.compile(r"^:{3,}[ \t]*$")


class BlockKind(str, Enum):
    HEADING = "heading"
    PARAGRAPH = "paragraph"
    DIRECTIVE = "directive"
    PASSTHROUGH = "passthrough"


@dataclass(eq=False)
class Block:
    node: Node
    parent: Node
    kind: BlockKind
    text: str
    context: str
    chunks: List[str] = field(default_factory=list)
    replacement: Optional[List[Node]] = None


class MarkdownProcessor:
    def __init__(
        self,
        translator: ProofreadTranslator,
        memory: Optional[TranslationMemory] = None,
        token_counter: TokenCounter = count_tokens,
        context_tokens: int = CONTEXT_MIN_TOKENS,
        max_chunk_chars: int = MAX_CHUNK_CHARS,
    ):
        self.translator = translator
        self.memory = memory or NullTranslationMemory()
        self.token_counter = token_counter
        self.context_tokens = context_tokens
        self.max_chunk_chars = max_chunk_chars

    def process(self, ctx: RunContext, text: str) -> str:
        return self.run(ctx, text)

    def run(
        self,
        ctx: RunContext,
        text: str,
        prepass: Optional[Callable[[List[Block]], List[Block]]] = None,
    ) -> str:
        document = markdown.parse_document(text)
        blocks = self.collect_blocks(document)
        if prepass:
            blocks = prepass(blocks)
        self.translate_blocks(ctx, blocks)
        self.apply_replacements(blocks)
        return markdown.serialize(document)

    def collect_blocks(self, document: Document) -> List[Block]:
        blocks: List[Block] = []
        for node, parent in document.walk():
            if node.kind not in (NodeKind.HEADING, NodeKind.PARAGRAPH):
                continue
            if parent is None:
                raise DocumentStructureError(f"{node.kind.value} node has no parent")
            if not node.has_position:
                raise DocumentStructureError(f"{node.kind.value} node has no position: {node.block_text[:80]!r}")
            if IMAGE_REGEX.match(node.block_text):
                kind = BlockKind.PASSTHROUGH
            elif node.kind == NodeKind.HEADING:
                kind = BlockKind.HEADING
            else:
                kind = BlockKind.PARAGRAPH
            context = build_context(document.text, node.start, node.end, self.context_tokens, self.token_counter)
            block = Block(node=node, parent=parent, kind=kind, text=node.block_text, context=context)
            if kind == BlockKind.PARAGRAPH and needs_split(block.text, self.max_chunk_chars):
                block.chunks = split_block(block.text, self.max_chunk_chars)
            blocks.append(block)
        logger.debug(f"Collected {len(blocks)} blocks")
        return blocks

    def translate_blocks(self, ctx: RunContext, blocks: List[Block]) -> None:
        for block in blocks:
            if block.kind == BlockKind.PASSTHROUGH:
                continue
            if block.kind == BlockKind.HEADING:
                translated = self.translate_heading(ctx, block)
            elif block.kind == BlockKind.PARAGRAPH:
                translated = self.translate_paragraph(ctx, block)
            else:
                translated = self.translate_directive(ctx, block)
            block_id = ctx.next_block_id()
            self.memory.save(MemoryEntry(block.text, translated or block.text, block_id, block.kind.value))

    def apply_replacements(self, blocks: List[Block]) -> None:
        for block in blocks:
            if block.replacement is not None:
                markdown.replace_node(block.parent, block.node, block.replacement)

    def _translate(self, ctx: RunContext, block: Block, text: str, is_heading: bool) -> Optional[str]:
        translated = self.translator.translate(ctx, block.context, text, is_heading)
        if not translated or translated.strip() == text.strip():
            return None
        return translated

    def translate_heading(self, ctx: RunContext, block: Block) -> Optional[str]:
        # setext headings may span lines, the rendered heading is a single ATX line
        src_text = " ".join(block.text.strip().split("\n"))
        text = HEADING_MARKER_REGEX.sub("", src_text)
        if not text:
            return None
        translated = self._translate(ctx, block, text, is_heading=True)
        if translated is None:
            return None
        translated = " ".join(translated.split("\n")).strip()
        if ctx.quote_original:
            heading = f"{src_text} | {translated}"
        else:
            heading = f"{'#' * block.node.level} {translated}"
        block.replacement = [markdown.synthetic(NodeKind.HEADING, heading)]
        return translated

    def _translate_paragraph_text(self, ctx: RunContext, block: Block, text: str, chunks: List[str]) -> Optional[str]:
        if not chunks:
            return self._translate(ctx, block, text, is_heading=False)
        translated_chunks = []
        for i, chunk in enumerate(chunks, start=1):
            logger.debug(f"Translating chunk {i}/{len(chunks)} ({len(chunk)} chars)")
            translated_chunks.append(self._translate(ctx, block, chunk, is_heading=False) or chunk)
        translated = rejoin_chunks(translated_chunks, chunks)
        return None if translated == text else translated

    def _paragraph_nodes(self, ctx: RunContext, source: str, translated: str) -> List[Node]:
        nodes = [markdown.synthetic(NodeKind.PARAGRAPH, translated)]
        if ctx.quote_original:
            nodes.append(markdown.synthetic(NodeKind.BLOCKQUOTE, markdown.quote(source)))
        return nodes

    def translate_paragraph(self, ctx: RunContext, block: Block) -> Optional[str]:
        translated = self._translate_paragraph_text(ctx, block, block.text, block.chunks)
        if translated is None:
            return None
        block.replacement = self._paragraph_nodes(ctx, block.text, translated)
        return translated

    def translate_directive(self, ctx: RunContext, block: Block) -> Optional[str]:
        opening, body, closing = split_directive(block.text)
        if not body.strip():
            return None
        chunks = split_block(body, self.max_chunk_chars) if needs_split(body, self.max_chunk_chars) else []
        translated = self._translate_paragraph_text(ctx, block, body, chunks)
        if translated is None:
            return None
        nodes: List[Node] = []
        if opening is not None:
            nodes.append(markdown.synthetic(NodeKind.OTHER, opening))
        nodes.extend(self._paragraph_nodes(ctx, body, translated))
        if closing is not None:
            nodes.append(markdown.synthetic(NodeKind.OTHER, closing))
        block.replacement = nodes
        return translated


def split_directive(text: str):
    """Split an admonition paragraph into (opening line, body, closing line)."""
    lines = text.split("\n")
    opening = lines.pop(0) if lines and DIRECTIVE_OPEN_REGEX.match(lines[0]) else None
    closing = lines.pop() if lines and DIRECTIVE_CLOSE_REGEX.match(lines[-1]) else None
    return opening, "\n".join(lines), closing


def is_directive(text: str) -> bool:
    lines = text.split("\n")
    return bool(DIRECTIVE_OPEN_REGEX.match(lines[0]) or DIRECTIVE_CLOSE_REGEX.match(lines[-1]))


class DirectiveAwareProcessor:
    """MDX flavour: wraps a MarkdownProcessor and handles Docusaurus syntax."""

    def __init__(self, base: MarkdownProcessor):
        self.base = base

    def process(self, ctx: RunContext, text: str) -> str:
        return self.base.run(ctx, text, prepass=self.mark_directives)

    def mark_directives(self, blocks: List[Block]) -> List[Block]:
        kept: List[Block] = []
        for block in blocks:
            if block.kind == BlockKind.PARAGRAPH:
                if THEME_IMPORT_REGEX.match(block.text) or JSX_COMPONENT_REGEX.fullmatch(block.text.strip()):
                    logger.debug(f"Dropping framework directive: {block.text[:80]!r}")
                    continue
                if is_directive(block.text):
                    block.kind = BlockKind.DIRECTIVE
                    block.chunks = []
            kept.append(block)
        return kept


class NotebookProcessor:
    """Translates the markdown cells of a Jupyter notebook."""

    def __init__(self, inner):
        self.inner = inner

    def process(self, ctx: RunContext, text: str) -> str:
        notebook = json.loads(text)
        for cell in notebook.get("cells", []):
            if cell.get("cell_type") != "markdown":
                continue
            source = cell.get("source", "")
            md = "".join(source) if isinstance(source, list) else source
            result = self.inner.process(ctx, md)
            if result != md:
                cell["source"] = result.splitlines(keepends=True)
        return json.dumps(notebook, indent=1, ensure_ascii=False) + "\n"


class ProcessorFactory:
    def __init__(
        self,
        translator: ProofreadTranslator,
        memory: Optional[TranslationMemory] = None,
        token_counter: TokenCounter = count_tokens,
    ):
        self.translator = translator
        self.memory = memory
        self.token_counter = token_counter

    def _markdown(self) -> MarkdownProcessor:
        return MarkdownProcessor(self.translator, self.memory, token_counter=self.token_counter)

    def get_processor(self, ext: str):
        ext = ext.lower()
        if ext == ".md":
            return self._markdown()
        if ext == ".mdx":
            return DirectiveAwareProcessor(self._markdown())
        if ext == ".ipynb":
            return NotebookProcessor(DirectiveAwareProcessor(self._markdown()))
        return None
