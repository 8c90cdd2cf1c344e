"""Tests for docfmt.structure_builder: section lines into a PropertyTree."""
from __future__ import annotations

import logging

import pytest

from docfmt.property_types import (
    POS_ARGUMENTS,
    POS_ATTRIBUTES,
    Property,
    tree_to_dict,
)
from docfmt.structure_builder import (
    ERR_CIRCULAR,
    build_property_tree,
    link_references,
    scan_lines,
)

ARGUMENT_SECTION = [
    "The following arguments are supported:",
    "",
    "* `name` - (Required) The name of the resource.",
    "* `location` - (Optional) The Azure region where the resource exists.",
    "* `sku` - (Required) The SKU of the resource. Possible values are `Standard`, `Premium`, and `Basic`.",
    "* `force_new_field` - (Optional) A test field. Changing this forces a new resource to be created.",
    "",
    "---",
    "",
    "A `site_config` block supports the following:",
    "",
    "* `always_on` - (Optional) Should the app be loaded at all times? Defaults to `false`.",
    "* `http_logs_enabled` - (Optional) Should HTTP logs be enabled? Defaults to `false`.",
    "",
    "---",
    "",
    "An `identity` block supports the following:",
    "",
    "* `type` - (Required) The type of identity. Possible values are `SystemAssigned`, `UserAssigned`.",
]

SHARED_BODY_AFTER = [
    "* `primary_subnet` - (Required) A `subnet` block as defined below.",
    "* `secondary_subnet` - (Optional) A `subnet` block as defined below.",
    "",
    "---",
    "",
    "A `subnet` block supports the following:",
    "",
    "* `address_prefix` - (Required) The address prefix.",
]

SHARED_BODY_BEFORE = [
    "A `subnet` block supports the following:",
    "",
    "* `address_prefix` - (Required) The address prefix.",
    "",
    "---",
    "",
    "* `primary_subnet` - (Required) A `subnet` block as defined below.",
    "* `secondary_subnet` - (Optional) A `subnet` block as defined below.",
]


class TestScan:
    def test_root_entries_in_order(self) -> None:
        tree = build_property_tree(ARGUMENT_SECTION)
        assert tree.names == ["name", "location", "sku", "force_new_field"]

    def test_definitions_registered(self) -> None:
        tree = build_property_tree(ARGUMENT_SECTION)
        assert set(tree.definitions) == {"site_config", "identity"}
        site_config = tree.definitions["site_config"]
        assert site_config.block is True
        assert site_config.block_head is True
        assert site_config.nested is not None
        assert site_config.nested.names == ["always_on", "http_logs_enabled"]
        assert site_config.nested.get("always_on").default_value == "false"  # type: ignore[union-attr]

    def test_field_attributes(self) -> None:
        tree = build_property_tree(ARGUMENT_SECTION)
        assert tree.get("sku").possible_values == ["Standard", "Premium", "Basic"]  # type: ignore[union-attr]
        assert tree.get("force_new_field").force_new is True  # type: ignore[union-attr]
        identity_type = tree.definitions["identity"].nested.get("type")  # type: ignore[union-attr]
        assert identity_type.possible_values == ["SystemAssigned", "UserAssigned"]  # type: ignore[union-attr]

    def test_line_numbers(self) -> None:
        tree = build_property_tree(ARGUMENT_SECTION, first_line=40)
        assert tree.get("name").line == 42  # type: ignore[union-attr]
        assert tree.definitions["site_config"].line == 49

    def test_position_stamped(self) -> None:
        tree = build_property_tree(ARGUMENT_SECTION, POS_ATTRIBUTES)
        assert all(p.position == POS_ATTRIBUTES for p in tree)

    def test_heading_switches_position(self) -> None:
        tree = build_property_tree([
            "* `a` - (Required) x",
            "## Attributes Reference",
            "* `b` - The b.",
        ], POS_ARGUMENTS)
        assert tree.get("a").position == POS_ARGUMENTS  # type: ignore[union-attr]
        assert tree.get("b").position == POS_ATTRIBUTES  # type: ignore[union-attr]

    def test_fenced_lines_ignored(self) -> None:
        tree = build_property_tree([
            "```hcl",
            "* `fake` - (Required) Not a field.",
            "```",
            "* `real` - (Required) A field.",
        ])
        assert tree.names == ["real"]

    def test_skippable_lines_keep_block_open(self) -> None:
        tree = build_property_tree([
            "An `identity` block supports the following:",
            "",
            "-> **Note:** Only one identity is allowed.",
            "<!-- generated -->",
            "The following fields are supported:",
            "* `type` - (Required) The type.",
        ])
        assert len(tree) == 0
        assert tree.definitions["identity"].nested.names == ["type"]  # type: ignore[union-attr]

    def test_body_at_end_of_input_is_committed(self) -> None:
        tree = scan_lines(["A `x` block supports the following:", "* `y` - (Optional) y."])
        assert "x" in tree.definitions

    def test_consecutive_block_heads(self) -> None:
        tree = build_property_tree([
            "A `first` block supports the following:",
            "* `a` - (Optional) a.",
            "A `second` block supports the following:",
            "* `b` - (Optional) b.",
        ])
        assert tree.definitions["first"].nested.names == ["a"]  # type: ignore[union-attr]
        assert tree.definitions["second"].nested.names == ["b"]  # type: ignore[union-attr]

    def test_multi_name_head_records_aliases(self) -> None:
        tree = build_property_tree([
            "The `ip_rule` and `vnet_rule` blocks support the following:",
            "* `action` - (Optional) The action.",
        ])
        body = tree.definitions["ip_rule"]
        assert body.aliases == ("vnet_rule",)

    def test_nameless_field_dropped(self) -> None:
        tree = build_property_tree(["* no name here", "* `a` - (Optional) a."])
        assert tree.names == ["a"]

    def test_duplicate_field(self) -> None:
        tree = build_property_tree([
            "* `name` - (Required) The name.",
            "* `name` - (Required) The name again.",
        ])
        assert len(tree) == 1
        prop = tree.get("name")
        assert prop is not None
        assert prop.duplicate_count == 1
        assert prop.parse_errors == ["duplicate field `name` at line 2"]

    def test_duplicate_block_body(self) -> None:
        tree = build_property_tree([
            "A `x` block supports the following:",
            "* `a` - (Optional) a.",
            "---",
            "A `x` block supports the following:",
            "* `b` - (Optional) b.",
        ])
        body = tree.definitions["x"]
        assert body.duplicate_count == 1
        assert body.nested.names == ["a"]  # type: ignore[union-attr]


class TestLinking:
    def test_shared_nested_identity(self) -> None:
        tree = build_property_tree(SHARED_BODY_AFTER)
        primary = tree.get("primary_subnet")
        secondary = tree.get("secondary_subnet")
        body = tree.definitions["subnet"]
        assert primary is not None and secondary is not None
        assert primary.nested is body.nested
        assert secondary.nested is body.nested
        assert primary.definition is body
        assert primary.is_reference and not primary.is_definition

    def test_mutation_visible_through_every_reference(self) -> None:
        tree = build_property_tree(SHARED_BODY_AFTER)
        tree.definitions["subnet"].add_nested(Property(name="added"))
        assert "added" in tree.get("secondary_subnet").nested  # type: ignore[union-attr, operator]

    def test_declaration_order_does_not_matter(self) -> None:
        after = build_property_tree(SHARED_BODY_AFTER)
        before = build_property_tree(SHARED_BODY_BEFORE)
        assert tree_to_dict(after, with_source=False) == tree_to_dict(before, with_source=False)

    def test_shared_tree_serialized_once(self) -> None:
        out = tree_to_dict(build_property_tree(SHARED_BODY_AFTER))
        assert out[0]["nested"][0]["name"] == "address_prefix"
        assert out[1]["nested"] == {"$ref": "subnet"}

    def test_nested_paths_carry_ancestors(self) -> None:
        out = tree_to_dict(build_property_tree(SHARED_BODY_AFTER))
        assert out[0]["path"] == "primary_subnet"
        assert out[0]["nested"][0]["path"] == "primary_subnet.address_prefix"

    def test_body_name_containing_block(self) -> None:
        tree = build_property_tree([
            "* `ip_block` - (Optional) An `ip_block` block as defined below.",
            "",
            "---",
            "",
            "An `ip_block` block supports the following:",
            "",
            "* `cidr` - (Required) The CIDR range.",
        ])
        prop = tree.get("ip_block")
        assert prop is not None
        assert prop.nested is not None
        assert prop.nested.names == ["cidr"]
        assert tree.get("cidr") is None

    def test_unresolved_reference_left_alone(self) -> None:
        tree = build_property_tree(["* `identity` - (Optional) An `identity` block as defined below."])
        prop = tree.get("identity")
        assert prop is not None
        assert prop.block is True
        assert prop.nested is None
        assert prop.is_reference
        assert prop.parse_errors == []

    def test_link_returns_unresolved_count(self) -> None:
        tree = scan_lines([
            "* `identity` - (Optional) An `identity` block as defined below.",
            "* `network` - (Optional) A `network` block as defined below.",
            "---",
            "A `network` block supports the following:",
            "* `cidr` - (Required) The CIDR.",
        ])
        assert link_references(tree) == 1

    def test_nested_reference_linked(self) -> None:
        tree = build_property_tree([
            "* `network` - (Required) A `network` block as defined below.",
            "---",
            "A `network` block supports the following:",
            "* `subnet` - (Optional) A `subnet` block as defined below.",
            "---",
            "A `subnet` block within the `network` block supports the following:",
            "* `cidr` - (Required) The CIDR.",
        ])
        assert "network.subnet" in tree.definitions
        network = tree.get("network")
        assert network is not None and network.nested is not None
        subnet = network.nested.get("subnet")
        assert subnet is not None and subnet.nested is not None
        assert subnet.nested.names == ["cidr"]
        assert subnet.definition is tree.definitions["network.subnet"]

    def test_self_reference_refused(self) -> None:
        tree = build_property_tree([
            "A `rule` block supports the following:",
            "* `rule` - (Optional) A `rule` block as defined above.",
            "* `name` - (Required) The name.",
        ])
        inner = tree.definitions["rule"].nested.get("rule")  # type: ignore[union-attr]
        assert inner is not None
        assert inner.nested is None
        assert inner.parse_errors[0].startswith(ERR_CIRCULAR)
        assert tree.circular_reference() == ""

    def test_mutual_reference_refused(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="docfmt.structure_builder"):
            tree = build_property_tree([
                "An `alpha` block supports the following:",
                "* `beta` - (Optional) A `beta` block as defined below.",
                "---",
                "A `beta` block supports the following:",
                "* `alpha` - (Optional) An `alpha` block as defined above.",
            ])
        assert tree.circular_reference() == ""
        errors = [
            e
            for body in tree.definitions.values()
            for prop in body.nested  # type: ignore[union-attr]
            for e in prop.parse_errors
        ]
        assert errors
        assert all(e.startswith(ERR_CIRCULAR) for e in errors)
        assert "nested inside itself" not in caplog.text

    def test_build_is_repeatable(self) -> None:
        first = tree_to_dict(build_property_tree(ARGUMENT_SECTION))
        second = tree_to_dict(build_property_tree(ARGUMENT_SECTION))
        assert first == second
