"""Field extraction from a single documentation list item.

Turns a line such as::

    * `sku` - (Required) The SKU to use. Possible values are `Basic` and `Standard`. Defaults to `Basic`.

into a :class:`~docfmt.property_types.Property`. Extraction is a total
function: it never raises and always returns a Property. Problems are
recorded in ``Property.parse_errors``; a Property with an empty ``name``
must not be inserted into a tree.

Steps (each independent of the others):
    1. Name: primary list-item shape, else the first backtick token.
    2. Requirement: "(Required)"/"(Optional)", else the bare words.
    3. Default value: "... Defaults to `x`."
    4. ForceNew: "Changing this forces a new ... created", unless the
       sentence continues with "created when ..." (conditional).
    5. Possible values: backtick tokens after an enum trigger phrase, up to
       the first period outside a token. A second trigger phrase later on
       the line discards the values (ambiguous description).
    6. Block detection: "An `x` block as defined below", "A block to ...".
"""
from __future__ import annotations

from docfmt.property_types import (
    POS_DEFAULT,
    REQ_DEFAULT,
    REQ_OPTIONAL,
    REQ_REQUIRED,
    Property,
)
from docfmt.vocabulary import (
    CODE_RE,
    DEFAULT_VOCABULARY,
    DEFAULTS_RE,
    FIELD_RE,
    FORCE_NEW_RE,
    PARTIAL_FORCE_NEW_RE,
    QUOTE_CHARS,
    Vocabulary,
)

ERR_NO_NAME = "no field name found"
ERR_FORMAT = "field does not follow the \"* `name` - (Required|Optional) description\" format"
ERR_MULTIPLE_ENUMS = (
    "multiple possible value sections detected, skipping enum extraction"
)


# ---------------------------------------------------------------------------
# Individual heuristics
# ---------------------------------------------------------------------------

def default_value(line: str) -> str:
    """Default value quoted after "Defaults to"/"Default is", or ""."""
    m = DEFAULTS_RE.search(line)
    if not m:
        return ""
    val = m.group(1)
    if len(val) > 2:
        return val[1:-1]
    return ""


def is_force_new(line: str) -> bool:
    return bool(FORCE_NEW_RE.search(line)) and not PARTIAL_FORCE_NEW_RE.search(line)


def requirement_status(line: str) -> int:
    """Explicit parenthetical first, then the bare word as a weaker signal.

    The bare-word fallback can misfire on prose that merely mentions
    "Required"; it only applies when no parenthetical is present.
    """
    if "(Required)" in line:
        return REQ_REQUIRED
    if "(Optional)" in line:
        return REQ_OPTIONAL
    if "Required" in line:
        return REQ_REQUIRED
    if "Optional" in line:
        return REQ_OPTIONAL
    return REQ_DEFAULT


def has_requirement_marker(line: str) -> bool:
    return "(Required)" in line or "(Optional)" in line


def find_value_phrase(
    line: str,
    start: int = 0,
    vocab: Vocabulary = DEFAULT_VOCABULARY,
) -> tuple[int, int]:
    """(index, length) of the earliest enum trigger phrase at or after *start*.

    Returns (-1, 0) when none is present. Case-insensitive.
    """
    lower = line.lower()
    best, best_len = -1, 0
    for phrase in vocab.value_phrases:
        idx = lower.find(phrase, start)
        if idx < 0:
            continue
        if best < 0 or idx < best or (idx == best and len(phrase) > best_len):
            best, best_len = idx, len(phrase)
    return best, best_len


def possible_values(
    line: str,
    vocab: Vocabulary = DEFAULT_VOCABULARY,
) -> tuple[list[str], int, int, bool]:
    """Scan the enum clause of *line*.

    Returns ``(values, clause_start, clause_end, ambiguous)``. The clause
    ends at the first period that is not inside a backtick token, so
    ``Possible values are `7.1`, `7.2` and `8.0`.`` keeps all three values.
    """
    sep_idx, sep_len = find_value_phrase(line, 0, vocab)
    if sep_idx < 0:
        return [], -1, -1, False

    sub = line[sep_idx:]
    point_end = sub.find(".")
    if point_end < 0:
        point_end = len(sub)

    values: list[str] = []
    clause_end = sep_idx + sep_len
    for m in CODE_RE.finditer(sub):
        start, end = m.start(), m.end()
        if start < point_end < end:
            # the period belongs to the token, look past it
            nxt = sub.find(".", end)
            point_end = nxt if nxt >= 0 else len(sub)
        if point_end < start:
            break
        values.append(sub[start:end].strip(QUOTE_CHARS))
        clause_end = sep_idx + end

    second, _ = find_value_phrase(line, sep_idx + sep_len, vocab)
    return values, sep_idx, clause_end, second >= 0


def is_block_property(line: str, vocab: Vocabulary = DEFAULT_VOCABULARY) -> bool:
    for pattern in vocab.block_property_res:
        if pattern.search(line):
            return True
    return any(phrase in line for phrase in vocab.block_property_phrases)


def block_type_name(
    line: str,
    field_name: str,
    vocab: Vocabulary = DEFAULT_VOCABULARY,
) -> str:
    """Block name quoted in the description, defaulting to *field_name*."""
    for pattern in vocab.block_property_res:
        m = pattern.search(line)
        if m:
            candidate = m.group(1).strip(QUOTE_CHARS)
            if candidate:
                return candidate
    return field_name


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------

def extract_field(
    line: str,
    line_number: int = 0,
    position: str = POS_DEFAULT,
    vocab: Vocabulary = DEFAULT_VOCABULARY,
) -> Property:
    """Parse one field line into a Property. Never raises."""
    text = line.strip()
    prop = Property(name="", line=line_number, position=position, content=text)

    m = FIELD_RE.match(text)
    if m and m.group(1):
        prop.name = m.group(1)
        description = m.group(3)
    else:
        first = CODE_RE.search(text)
        if first is None:
            prop.parse_errors.append(ERR_NO_NAME)
            return prop
        prop.name = first.group(1).strip(QUOTE_CHARS)
        if not prop.name:
            prop.parse_errors.append(ERR_NO_NAME)
            return prop
        prop.parse_errors.append(ERR_FORMAT)
        description = text[first.end():]
    prop.block_type_name = prop.name

    prop.requirement = requirement_status(text)
    prop.requirement_explicit = has_requirement_marker(text)
    prop.default_value = default_value(text)
    prop.force_new = is_force_new(text)

    if is_block_property(text, vocab):
        prop.block = True
        prop.block_type_name = block_type_name(text, prop.name, vocab)

    values, clause_start, clause_end, ambiguous = possible_values(text, vocab)
    if clause_start >= 0:
        prop.enum_start = clause_start
        prop.enum_end = clause_end
        if ambiguous:
            # TODO: keep the first clause's values once multi-clause
            # descriptions are audited; today the whole list is dropped.
            prop.parse_errors.append(ERR_MULTIPLE_ENUMS)
        else:
            prop.add_possible_values(*values)
    elif not prop.block:
        guesses = CODE_RE.findall(description)
        if guesses:
            prop.set_guessed_values(guesses)

    return prop
