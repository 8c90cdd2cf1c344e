"""Schema-side PropertyTree from a serialized provider schema.

The provider's live schema is walked elsewhere and dumped as JSON; this
module only reads that dump. Expected shape (per field)::

    {
      "name": {"type": "String", "required": true, "force_new": true},
      "identity": {
        "type": "List", "optional": true,
        "elem": {"schema": {"type": {"type": "String", "required": true}}}
      },
      "zones": {"type": "Set", "optional": true, "elem": {"type": "String"}}
    }

``elem`` holding ``schema`` makes the field a block with a nested tree;
``elem`` holding only ``type`` records the element type. ``deprecated``
may be a bool or the deprecation message.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any

from docfmt.io_utils import load_json
from docfmt.property_types import (
    REQ_COMPUTED,
    REQ_OPTIONAL,
    REQ_REQUIRED,
    Property,
    PropertyTree,
)


class SchemaFormatError(ValueError):
    """Raised when a schema dump does not have the expected shape."""


def _requirement(spec: dict[str, Any]) -> int:
    flags = 0
    if spec.get("required"):
        flags |= REQ_REQUIRED
    if spec.get("optional"):
        flags |= REQ_OPTIONAL
    if spec.get("computed"):
        flags |= REQ_COMPUTED
    return flags


def _schema_property(name: str, spec: Any, path: str) -> Property:
    if not isinstance(spec, dict):
        raise SchemaFormatError(f"schema field `{path}` must be a mapping, got {type(spec).__name__}")

    default = spec.get("default")
    prop = Property(
        name=name,
        requirement=_requirement(spec),
        force_new=bool(spec.get("force_new", False)),
        deprecated=bool(spec.get("deprecated")),
        description=str(spec.get("description") or ""),
        type_name=str(spec.get("type") or "").removeprefix("Type"),
        default_value="" if default is None else str(default),
    )

    elem = spec.get("elem")
    if elem is None:
        return prop
    if not isinstance(elem, dict):
        raise SchemaFormatError(f"schema field `{path}.elem` must be a mapping")
    if "schema" in elem:
        prop.block = True
        prop.nested = schema_tree_from_dict(elem["schema"], _path=path)
    else:
        prop.nested_type = str(elem.get("type") or "").removeprefix("Type")
    return prop


def schema_tree_from_dict(schema: Any, *, _path: str = "") -> PropertyTree:
    """Build a schema tree; fields are inserted sorted by name."""
    if not isinstance(schema, dict):
        where = f"`{_path}`" if _path else "root"
        raise SchemaFormatError(f"schema at {where} must be a mapping of field name to field")
    tree = PropertyTree()
    for name in sorted(schema):
        path = f"{_path}.{name}" if _path else name
        tree.add(_schema_property(name, schema[name], path))
    return tree


def load_schema_tree(path: Path) -> PropertyTree:
    """Read a schema dump; accepts the bare mapping or ``{"schema": {...}}``."""
    payload = load_json(path)
    if isinstance(payload, dict) and isinstance(payload.get("schema"), dict):
        payload = payload["schema"]
    return schema_tree_from_dict(payload)
