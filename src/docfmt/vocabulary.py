"""Phrase and pattern tables used to read Terraform-style resource docs.

All heuristics in the line classifier and field extractor are driven from
the tables here. They are grouped into one frozen ``Vocabulary`` so that a
lint config can extend them without touching control flow:

    vocab = DEFAULT_VOCABULARY.extended(
        headings=(("^data source arguments", "arguments"),),
        value_phrases=("one of the following",),
    )

Patterns have been checked against the azurerm website/docs tree, where the
list items look like::

    * `name` - (Required) The name of the thing. Changing this forces a new resource to be created.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field

from docfmt.property_types import (
    POS_ARGUMENTS,
    POS_ATTRIBUTES,
    POS_EXAMPLE,
    POS_IMPORT,
    POS_TIMEOUTS,
)

# ---------------------------------------------------------------------------
# Section headings
# ---------------------------------------------------------------------------

# (regex over the lowercased heading text, position)
HEADING_POSITIONS: tuple[tuple[str, str], ...] = (
    (r"^arguments? reference", POS_ARGUMENTS),
    (r"^attributes? reference", POS_ATTRIBUTES),
    (r"^timeouts?\b", POS_TIMEOUTS),
    (r"^example usage", POS_EXAMPLE),
    (r"^import\b", POS_IMPORT),
)

HEADING_RE = re.compile(r"^(#{1,6})\s*(.*?)\s*#*\s*$")

# ---------------------------------------------------------------------------
# Line shapes
# ---------------------------------------------------------------------------

# "* `name` - (Required) description"
FIELD_RE = re.compile(r"^[*-] *`(.*?)` +- +(\(Required\)|\(Optional\))? ?(.*)")

# Any backtick-quoted token.
CODE_RE = re.compile(r"`([^`]+)`")

# "An `identity` block supports the following:"
# "The `ip_rule` and `vnet_rule` blocks export the following:"
BLOCK_HEAD_RE = re.compile(r"^(an?|An?|The)[^`]+(`[a-zA-Z0-9_]+`[, and]*)+.*blocks?.*$")

# Standalone word only: `ip_block` does not match.
BLOCK_WORD_RE = re.compile(r"\bblocks?\b")

SEPARATOR = "---"
FENCE_PREFIX = "```"
COMMENT_PREFIX = "<!--"
NOTE_PREFIXES: tuple[str, ...] = ("->", "~>")
FIELD_PREFIXES: tuple[str, ...] = ("*", "-")

# Relationship words on a block head: "A `rule` block within the `policy` block".
RELATIONSHIP_SEPARATORS: tuple[str, ...] = (" of ", " within ")

# ---------------------------------------------------------------------------
# Field description heuristics
# ---------------------------------------------------------------------------

DEFAULTS_RE = re.compile(
    r"(?:^|[.,?;])(?: *[Tt]he)? *[Dd]efaults?[^`'\".]+(?:to|is) "
    r"('[^']+'|`[^`]+`|\"[^\"]+\")[ .,]?"
)

FORCE_NEW_RE = re.compile(r" ?Changing.*forces? a [^.]*(\.|$)")
# "Changing this forces a new resource to be created when `x` is set."
PARTIAL_FORCE_NEW_RE = re.compile(r" ?Changing.*forces? a [^.]* created when [^.]*(\.|$)")

POSSIBLE_VALUE_PHRASES: tuple[str, ...] = (
    "possible value",
    "must be one of",
    "be one of",
    "allowed value",
    "valid value",
    "supported value",
    "valid option",
    "accepted value",
)

# "One or more `rule` blocks as defined below", "An `identity` block as defined above"
BLOCK_PROPERTY_PATTERNS: tuple[str, ...] = (
    r"(?:[Oo]ne|[Ee]ach|more(?: \(.*\))?|[Tt]he|as|of|[Aa]n?) ['\"`]([^ ]+)['\"`] "
    r"(?:block|object)[^.]+(?:below|above)",
)
BLOCK_PROPERTY_PHRASES: tuple[str, ...] = ("A block to",)

QUOTE_CHARS = "`'\""


@dataclass(frozen=True, slots=True)
class Vocabulary:
    """Immutable bundle of the tables above, compiled once."""

    heading_positions: tuple[tuple[str, str], ...] = HEADING_POSITIONS
    value_phrases: tuple[str, ...] = POSSIBLE_VALUE_PHRASES
    block_property_patterns: tuple[str, ...] = BLOCK_PROPERTY_PATTERNS
    block_property_phrases: tuple[str, ...] = BLOCK_PROPERTY_PHRASES
    _heading_res: tuple[tuple[re.Pattern[str], str], ...] = field(
        init=False, repr=False, compare=False,
    )
    _block_property_res: tuple[re.Pattern[str], ...] = field(
        init=False, repr=False, compare=False,
    )

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "_heading_res",
            tuple((re.compile(pat), pos) for pat, pos in self.heading_positions),
        )
        object.__setattr__(
            self,
            "_block_property_res",
            tuple(re.compile(pat) for pat in self.block_property_patterns),
        )

    @property
    def heading_res(self) -> tuple[tuple[re.Pattern[str], str], ...]:
        return self._heading_res

    @property
    def block_property_res(self) -> tuple[re.Pattern[str], ...]:
        return self._block_property_res

    def extended(
        self,
        *,
        headings: tuple[tuple[str, str], ...] = (),
        value_phrases: tuple[str, ...] = (),
    ) -> Vocabulary:
        """Return a copy with extra headings and enum trigger phrases appended."""
        new_phrases = tuple(
            p.lower() for p in value_phrases if p.lower() not in self.value_phrases
        )
        return Vocabulary(
            heading_positions=self.heading_positions + tuple(headings),
            value_phrases=self.value_phrases + new_phrases,
            block_property_patterns=self.block_property_patterns,
            block_property_phrases=self.block_property_phrases,
        )


DEFAULT_VOCABULARY = Vocabulary()
