"""Core types shared by the document parser and the schema cross-check.

Every layer uses these types:
  Property      one documented (or schema-declared) field or block
  PropertyTree  ordered name -> Property mapping for one section or block

A ``PropertyTree`` carries an explicit ordered name list next to its dict;
field order mirrors the documentation and is never permuted. Block bodies
("An `identity` block supports the following:") are kept in a separate
definitions registry keyed by dotted path, so a reference field and the
body it points to can share a name.

Ownership: a definition exclusively owns its ``nested`` tree. A reference
that has been linked holds the very same tree object plus a non-owning
``definition`` pointer back to the owner. Trees are read-only after the
structure builder returns them.
"""
from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

# ---------------------------------------------------------------------------
# Positions (which documentation section a property came from)
# ---------------------------------------------------------------------------

POS_DEFAULT = "default"
POS_EXAMPLE = "example"
POS_ARGUMENTS = "arguments"
POS_ATTRIBUTES = "attributes"
POS_TIMEOUTS = "timeouts"
POS_IMPORT = "import"
POS_OTHER = "other"

POSITIONS: frozenset[str] = frozenset({
    POS_DEFAULT, POS_EXAMPLE, POS_ARGUMENTS, POS_ATTRIBUTES,
    POS_TIMEOUTS, POS_IMPORT, POS_OTHER,
})

# ---------------------------------------------------------------------------
# Requirement status bit flags
# ---------------------------------------------------------------------------

REQ_DEFAULT = 0  # unknown / not stated
REQ_OPTIONAL = 1
REQ_REQUIRED = 2
REQ_COMPUTED = 4

_REQ_LABELS: tuple[tuple[int, str], ...] = (
    (REQ_REQUIRED, "Required"),
    (REQ_OPTIONAL, "Optional"),
    (REQ_COMPUTED, "Computed"),
)


def requirement_label(flags: int) -> str:
    """Render requirement flags, e.g. ``"Optional|Computed"`` or ``"Default"``."""
    if flags == REQ_DEFAULT:
        return "Default"
    return "|".join(label for bit, label in _REQ_LABELS if flags & bit) or "Unknown"


# ---------------------------------------------------------------------------
# Property
# ---------------------------------------------------------------------------

@dataclass(slots=True, eq=False)
class Property:
    """One documented or schema-declared field or block."""

    name: str
    line: int = 0                  # 1-based source line, 0 = no line (schema side)
    position: str = POS_DEFAULT
    requirement: int = REQ_DEFAULT
    requirement_explicit: bool = False  # "(Required)" / "(Optional)" marker present
    default_value: str = ""
    force_new: bool = False
    possible_values: list[str] = field(default_factory=list[str])
    guessed_values: list[str] = field(default_factory=list[str])
    block: bool = False
    block_type_name: str = ""
    nested: PropertyTree | None = None
    parent: str = ""               # dotted prefix from "of"/"within" on a block head
    content: str = ""              # raw markdown line ("" for schema properties)
    parse_errors: list[str] = field(default_factory=list[str])
    duplicate_count: int = 0
    # Schema-side attributes
    description: str = ""
    type_name: str = ""
    nested_type: str = ""
    deprecated: bool = False
    # Extraction bookkeeping
    enum_start: int = -1
    enum_end: int = -1
    aliases: tuple[str, ...] = ()
    block_head: bool = False
    # Non-owning links
    definition: Property | None = field(default=None, repr=False)
    same_name_ref: Property | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if not self.block_type_name:
            self.block_type_name = self.name

    @property
    def path(self) -> str:
        """Dotted path known to this property alone.

        Only the "of"/"within" prefix from a block head is stored, so a field
        inside a block body reports its bare name. Serializers that walk the
        tree pass the full ancestor chain themselves.
        """
        return f"{self.parent}.{self.name}" if self.parent else self.name

    @property
    def required(self) -> bool:
        return bool(self.requirement & REQ_REQUIRED)

    @property
    def optional(self) -> bool:
        return bool(self.requirement & REQ_OPTIONAL)

    @property
    def computed(self) -> bool:
        return bool(self.requirement & REQ_COMPUTED)

    @property
    def has_nested(self) -> bool:
        return self.nested is not None and len(self.nested) > 0

    @property
    def is_definition(self) -> bool:
        """Block that owns a populated nested tree."""
        return self.block and self.has_nested and self.definition is None

    @property
    def is_reference(self) -> bool:
        """Block field pointing at a definition (linked or still pending)."""
        return self.block and (not self.has_nested or self.definition is not None)

    def add_possible_values(self, *values: str) -> None:
        """Append enum values, trimming quotes and skipping duplicates."""
        for value in values:
            trimmed = value.strip("`'\"")
            if trimmed and trimmed not in self.possible_values:
                self.possible_values.append(trimmed)

    def set_guessed_values(self, values: list[str]) -> None:
        result: list[str] = []
        for value in values:
            trimmed = value.strip("`'\"")
            if trimmed and trimmed not in result:
                result.append(trimmed)
        self.guessed_values = result

    def add_nested(self, sub: Property) -> bool:
        if self.nested is None:
            self.nested = PropertyTree()
        return self.nested.add(sub)

    def find(self, name: str, _seen: set[int] | None = None) -> Property | None:
        """Depth-first search for *name*, starting with this property."""
        if self.name == name:
            return self
        if self.nested is None:
            return None
        seen = _seen if _seen is not None else set()
        if id(self.nested) in seen:
            return None
        seen.add(id(self.nested))
        for child in self.nested:
            found = child.find(name, seen)
            if found is not None:
                return found
        return None

    def find_blocks(self, name: str, need_block: bool, _seen: set[int] | None = None) -> list[Property]:
        if self.block and self.block_type_name == name:
            return [self]
        if not need_block and not self.block and self.name == name:
            return [self]
        if self.nested is None:
            return []
        seen = _seen if _seen is not None else set()
        if id(self.nested) in seen:
            return []
        seen.add(id(self.nested))
        result: list[Property] = []
        for child in self.nested:
            result.extend(child.find_blocks(name, need_block, seen))
        return result

    def nests_itself(self, _visited: set[str] | None = None) -> bool:
        """True when this block (transitively) contains a block of its own name."""
        if not (self.block and self.nested is not None):
            return False
        visited = _visited if _visited is not None else set()
        if self.name in visited:
            return True
        visited.add(self.name)
        try:
            return any(child.nests_itself(visited) for child in self.nested)
        finally:
            visited.discard(self.name)


# ---------------------------------------------------------------------------
# PropertyTree
# ---------------------------------------------------------------------------

@dataclass(slots=True, eq=False)
class PropertyTree:
    """Ordered name -> Property collection.

    ``add`` never overwrites: a second property with the same name bumps
    ``duplicate_count`` on the first and records a parse error there.
    """

    names: list[str] = field(default_factory=list[str])
    objects: dict[str, Property] = field(default_factory=dict[str, Property])
    definitions: dict[str, Property] = field(default_factory=dict[str, Property])

    def __len__(self) -> int:
        return len(self.names)

    def __iter__(self) -> Iterator[Property]:
        for name in self.names:
            yield self.objects[name]

    def __contains__(self, name: object) -> bool:
        return name in self.objects

    def get(self, name: str) -> Property | None:
        return self.objects.get(name)

    def add(self, prop: Property) -> bool:
        """Insert *prop*; returns False (and records the duplicate) if the name exists."""
        if not prop.name:
            return False
        existing = self.objects.get(prop.name)
        if existing is not None:
            _record_duplicate(existing, prop)
            return False
        self.names.append(prop.name)
        self.objects[prop.name] = prop
        return True

    def add_definition(self, prop: Property) -> bool:
        """Register a block body under its dotted path."""
        if not prop.name:
            return False
        existing = self.definitions.get(prop.path)
        if existing is not None:
            _record_duplicate(existing, prop)
            return False
        self.definitions[prop.path] = prop
        return True

    def find_definition(self, *names: str, container: str = "") -> Property | None:
        """Resolve a block body by name.

        Lookup order: ``container.name`` for each candidate name, then the
        bare name, then any definition whose name or aliases match.
        Definitions without fields never match.
        """
        candidates = [n for n in names if n]
        keys: list[str] = []
        if container:
            keys.extend(f"{container}.{n}" for n in candidates)
        keys.extend(candidates)
        for key in keys:
            found = self.definitions.get(key)
            if found is not None and found.has_nested:
                return found
        for definition in self.definitions.values():
            if not definition.has_nested:
                continue
            if definition.name in candidates or any(a in candidates for a in definition.aliases):
                return definition
        return None

    def lookup(self, name: str) -> Property | None:
        """Entry by name, falling back to a root-level definition of that name."""
        found = self.objects.get(name)
        if found is not None:
            return found
        definition = self.definitions.get(name)
        if definition is not None and definition.has_nested:
            return definition
        return None

    def find(self, name: str) -> Property | None:
        seen: set[int] = {id(self)}
        for prop in self:
            found = prop.find(name, seen)
            if found is not None:
                return found
        return None

    def find_blocks(self, name: str) -> list[Property]:
        """All blocks whose type name is *name*; plain fields if no block matches."""
        result: list[Property] = []
        for prop in self:
            result.extend(prop.find_blocks(name, True))
        if not result:
            for prop in self:
                result.extend(prop.find_blocks(name, False))
        return result

    def circular_reference(self) -> str:
        """Name of the first block found nested inside itself, or ""."""
        for prop in [*self, *self.definitions.values()]:
            if prop.block and prop.nests_itself():
                return prop.name
        return ""

    def merge(self, other: PropertyTree) -> None:
        """Add entries of *other* not present here; link same-named ones."""
        for prop in other:
            existing = self.objects.get(prop.name)
            if existing is not None:
                existing.same_name_ref = prop
            else:
                self.names.append(prop.name)
                self.objects[prop.name] = prop


def _record_duplicate(existing: Property, dup: Property) -> None:
    existing.duplicate_count += 1
    where = f" at line {dup.line}" if dup.line else ""
    existing.parse_errors.append(f"duplicate field `{dup.name}`{where}")


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------

def property_to_dict(
    prop: Property,
    *,
    with_source: bool = True,
    _emitted: dict[int, str] | None = None,
    _prefix: str = "",
) -> dict[str, Any]:
    emitted = _emitted if _emitted is not None else {}
    path = f"{_prefix}.{prop.name}" if _prefix else prop.path
    d: dict[str, Any] = {
        "name": prop.name,
        "path": path,
        "position": prop.position,
        "requirement": requirement_label(prop.requirement),
        "default_value": prop.default_value,
        "force_new": prop.force_new,
        "possible_values": list(prop.possible_values),
        "guessed_values": list(prop.guessed_values),
        "block": prop.block,
        "block_type_name": prop.block_type_name,
        "parse_errors": list(prop.parse_errors),
        "duplicate_count": prop.duplicate_count,
    }
    if with_source:
        d["line"] = prop.line
        d["content"] = prop.content
    if prop.same_name_ref is not None:
        d["same_name_ref"] = prop.same_name_ref.position
    if prop.nested is not None:
        key = id(prop.nested)
        if key in emitted:
            d["nested"] = {"$ref": emitted[key]}
        else:
            owner = prop.definition.path if prop.definition is not None else path
            emitted[key] = owner
            d["nested"] = tree_to_dict(
                prop.nested, with_source=with_source, _emitted=emitted, _prefix=path,
            )
    return d


def tree_to_dict(
    tree: PropertyTree,
    *,
    with_source: bool = True,
    _emitted: dict[int, str] | None = None,
    _prefix: str = "",
) -> list[dict[str, Any]]:
    """Serialize entries in documentation order.

    A nested tree shared by several references is written out once; later
    occurrences become ``{"$ref": <definition path>}``. Definitions only
    reachable through the registry are not included. Each ``path`` is the
    full dotted chain of the entries walked to reach it.
    """
    emitted = _emitted if _emitted is not None else {}
    return [
        property_to_dict(p, with_source=with_source, _emitted=emitted, _prefix=_prefix)
        for p in tree
    ]
