"""Single-line classification for resource documentation.

Every line of a section falls into exactly one kind:

  section_heading "## Arguments Reference" (position in payload)
  block_head      "An `identity` block supports the following:"
  separator       "---", closes an open block body
  fence           "```hcl", toggles a fenced code region
  field           list item starting with "*" or "-"
  skippable       blank, "<!-- ... -->", "-> **Note:**", "~> **Note:**"
  plain           anything else (prose); ignored, never an error

Classification is total: unmatched input is ``plain``.
"""
from __future__ import annotations

from dataclasses import dataclass

from docfmt.vocabulary import (
    BLOCK_HEAD_RE,
    BLOCK_WORD_RE,
    CODE_RE,
    COMMENT_PREFIX,
    DEFAULT_VOCABULARY,
    FENCE_PREFIX,
    FIELD_PREFIXES,
    HEADING_RE,
    NOTE_PREFIXES,
    QUOTE_CHARS,
    RELATIONSHIP_SEPARATORS,
    SEPARATOR,
    Vocabulary,
)

LINE_SECTION_HEADING = "section_heading"
LINE_BLOCK_HEAD = "block_head"
LINE_SEPARATOR = "separator"
LINE_FENCE = "fence"
LINE_FIELD = "field"
LINE_SKIPPABLE = "skippable"
LINE_PLAIN = "plain"


@dataclass(frozen=True, slots=True)
class LineClass:
    """Classification of one line.

    ``position`` is set for section headings; ``block_names`` and
    ``block_of`` for block heads.
    """

    kind: str
    text: str                       # the whitespace-trimmed line
    position: str = ""
    block_names: tuple[str, ...] = ()
    block_of: str = ""


def first_code_value(text: str) -> str:
    """First backtick-quoted token in *text*, or ""."""
    m = CODE_RE.search(text)
    return m.group(1) if m else ""


def heading_text(line: str) -> tuple[int, str] | None:
    """(level, text) for a markdown ATX heading, else None."""
    m = HEADING_RE.match(line.strip())
    if not m:
        return None
    return len(m.group(1)), m.group(2)


def heading_position(text: str, vocab: Vocabulary = DEFAULT_VOCABULARY) -> str:
    """Position for heading text, or "" when the heading is not in the vocabulary."""
    lower = text.strip().lower()
    for pattern, position in vocab.heading_res:
        if pattern.search(lower):
            return position
    return ""


def extract_block_names(line: str) -> list[str]:
    """Names on a block head, scanning only up to the first word "block(s)".

    Stopping there keeps trailing tokens such as "`below`" out. A name that
    merely contains "block" (`ip_block`) does not end the scan.
    """
    if not BLOCK_HEAD_RE.match(line):
        return []
    word = BLOCK_WORD_RE.search(line)
    if word is None or word.start() == 0:
        return []
    names: list[str] = []
    for m in CODE_RE.finditer(line[:word.start()]):
        name = m.group(0).strip(QUOTE_CHARS)
        if name:
            names.append(name)
    return names


def block_relationship(line: str) -> str:
    """Parent block named after the earliest " of " / " within ", or ""."""
    hits = [idx for sep in RELATIONSHIP_SEPARATORS if (idx := line.find(sep)) > 0]
    if not hits:
        return ""
    return first_code_value(line[min(hits):])


def classify(line: str, vocab: Vocabulary = DEFAULT_VOCABULARY) -> LineClass:
    """Classify one raw line; never raises."""
    text = line.strip()

    if not text or text.startswith(COMMENT_PREFIX) or text.startswith(NOTE_PREFIXES):
        return LineClass(LINE_SKIPPABLE, text)
    if text == SEPARATOR:
        return LineClass(LINE_SEPARATOR, text)
    if text.startswith(FENCE_PREFIX):
        return LineClass(LINE_FENCE, text)

    if text.startswith("#"):
        heading = heading_text(text)
        if heading is not None:
            position = heading_position(heading[1], vocab)
            if position:
                return LineClass(LINE_SECTION_HEADING, text, position=position)
        return LineClass(LINE_PLAIN, text)

    if BLOCK_HEAD_RE.match(text):
        names = extract_block_names(text)
        if names:
            return LineClass(
                LINE_BLOCK_HEAD,
                text,
                block_names=tuple(names),
                block_of=block_relationship(text),
            )
        return LineClass(LINE_PLAIN, text)

    if text.startswith(FIELD_PREFIXES):
        return LineClass(LINE_FIELD, text)

    return LineClass(LINE_PLAIN, text)
