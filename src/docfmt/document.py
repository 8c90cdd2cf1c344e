"""Markdown resource document split into headed sections.

A Terraform resource page looks like::

    # azurerm_storage_account           <- title section (position "default")
    ## Example Usage                    <- "example"
    ## Arguments Reference              <- "arguments"
    ## Attributes Reference             <- "attributes"
    ## Timeouts                         <- "timeouts"
    ## Import                           <- "import"

Sections start at level-1/level-2 headings outside code fences. Each
section parses its own content into a PropertyTree on first request and
keeps it until the content is replaced.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from docfmt.line_classifier import LINE_FENCE, classify, heading_position, heading_text
from docfmt.property_types import (
    POS_ARGUMENTS,
    POS_ATTRIBUTES,
    POS_DEFAULT,
    POS_OTHER,
    POS_TIMEOUTS,
    PropertyTree,
)
from docfmt.structure_builder import build_property_tree
from docfmt.vocabulary import DEFAULT_VOCABULARY, Vocabulary

_SECTION_LEVEL_MAX = 2


@dataclass(slots=True, eq=False)
class DocumentSection:
    """One headed section and its lazily built property tree."""

    heading: str                 # raw heading line, "" for text before any heading
    position: str
    content: list[str] = field(default_factory=list[str])
    first_line: int = 1          # document line number of content[0]
    vocab: Vocabulary = DEFAULT_VOCABULARY
    _tree: PropertyTree | None = field(default=None, repr=False)

    def set_content(self, lines: list[str]) -> None:
        """Replace the section body; the cached tree is dropped."""
        self.content = list(lines)
        self._tree = None

    def property_tree(self) -> PropertyTree:
        if self._tree is None:
            self._tree = build_property_tree(
                self.content,
                self.position,
                first_line=self.first_line,
                vocab=self.vocab,
            )
        return self._tree


@dataclass(slots=True, eq=False)
class MarkdownDocument:
    path: str = ""
    sections: list[DocumentSection] = field(default_factory=list[DocumentSection])

    @classmethod
    def from_text(
        cls,
        text: str,
        *,
        path: str = "",
        vocab: Vocabulary = DEFAULT_VOCABULARY,
    ) -> MarkdownDocument:
        doc = cls(path=path)
        current = DocumentSection(heading="", position=POS_DEFAULT, first_line=1, vocab=vocab)
        in_fence = False

        for idx, line in enumerate(text.splitlines()):
            line_number = idx + 1
            if classify(line, vocab).kind == LINE_FENCE:
                in_fence = not in_fence
            heading = None if in_fence else heading_text(line)
            if heading is not None and heading[0] <= _SECTION_LEVEL_MAX:
                if current.heading or current.content:
                    doc.sections.append(current)
                level, title = heading
                position = heading_position(title, vocab)
                if not position:
                    position = POS_DEFAULT if level == 1 else POS_OTHER
                current = DocumentSection(
                    heading=line.strip(),
                    position=position,
                    first_line=line_number + 1,
                    vocab=vocab,
                )
                continue
            current.content.append(line)

        if current.heading or current.content:
            doc.sections.append(current)
        return doc

    @classmethod
    def from_path(cls, path: Path, *, vocab: Vocabulary = DEFAULT_VOCABULARY) -> MarkdownDocument:
        return cls.from_text(path.read_text(encoding="utf-8"), path=str(path), vocab=vocab)

    def section(self, position: str) -> DocumentSection | None:
        """First section at *position*, or None."""
        for s in self.sections:
            if s.position == position:
                return s
        return None

    def tree(self, position: str) -> PropertyTree:
        s = self.section(position)
        return s.property_tree() if s is not None else PropertyTree()

    def arguments(self) -> PropertyTree:
        return self.tree(POS_ARGUMENTS)

    def attributes(self) -> PropertyTree:
        return self.tree(POS_ATTRIBUTES)

    def timeouts(self) -> PropertyTree:
        return self.tree(POS_TIMEOUTS)

    def link_same_names(self) -> int:
        """Point same-named argument/attribute entries at each other.

        ``identity`` is typically both an argument block and an attribute
        block with different fields. Returns the number of pairs linked.
        """
        args, attrs = self.arguments(), self.attributes()
        linked = 0
        for prop in args:
            other = attrs.get(prop.name)
            if other is None:
                continue
            prop.same_name_ref = other
            other.same_name_ref = prop
            linked += 1
        return linked
