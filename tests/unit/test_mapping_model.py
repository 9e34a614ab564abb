"""Unit tests for component mappings."""

import pytest

from contentwizard.models.mapping import (
    ComponentMapping,
    DEFAULT_REGION,
    build_tree,
    default_field_mappings,
    sort_by_weight,
    validate_against_plan,
)
from contentwizard.models.plan import PlanSection


def mapping(id, weight=0, parent=None, region=None, section_id="intro"):
    result = ComponentMapping(id=id, section_id=section_id, component_type="text", weight=weight)
    if parent:
        result = result.with_parent(parent, region)
    return result


class TestComponentMapping:
    """Test ComponentMapping helpers."""

    def test_full_component_id(self):
        assert ComponentMapping(id="m", section_id="s", component_type="card").full_component_id == "card"
        bundled = ComponentMapping(id="m", section_id="s", component_type="card", component_bundle="wide")
        assert bundled.full_component_id == "card:wide"

    def test_with_field_mappings_merges(self):
        base = ComponentMapping.create("s", "text", field_mappings={"body": "a"})
        updated = base.with_field_mappings({"title": "b"})
        assert updated.field_mappings == {"body": "a", "title": "b"}
        assert base.field_mappings == {"body": "a"}
        assert updated.get_field_mapping("missing", "x") == "x"

    def test_with_parent(self):
        child = mapping("child").with_parent("parent", "content")
        assert child.has_parent()
        assert child.region == "content"

    def test_from_section_uses_section_hint(self):
        section = PlanSection(id="s1", title="FAQ", content="Q and A", component_type="accordion")
        result = ComponentMapping.from_section(section, weight=4)
        assert result.component_type == "accordion"
        assert result.field_mappings == {"title": "FAQ", "content": "Q and A", "expanded": False}
        assert result.weight == 4


class TestDefaultFieldMappings:
    """Test per-type default field values."""

    def test_heading_level_from_config(self):
        section = PlanSection(id="s", title="Head", component_config={"heading_level": 3})
        assert default_field_mappings(section, "heading") == {"title": "Head", "level": 3}

    def test_heading_level_default(self):
        assert default_field_mappings(PlanSection(id="s", title="H"), "heading")["level"] == 2

    def test_unknown_type_falls_back_to_content(self):
        section = PlanSection(id="s", content="Body")
        assert default_field_mappings(section, "mystery") == {"content": "Body"}


class TestMappingTree:
    """Test arranging mappings into a tree."""

    def test_sort_by_weight(self):
        ordered = sort_by_weight([mapping("b", 2), mapping("a", 1)])
        assert [m.id for m in ordered] == ["a", "b"]

    def test_build_tree_groups_by_region(self):
        mappings = [
            mapping("root", 0),
            mapping("c2", 2, parent="root", region="content"),
            mapping("c1", 1, parent="root", region="content"),
            mapping("c3", 3, parent="root"),
            mapping("other", 4),
        ]
        roots = build_tree(mappings)

        assert [node.mapping.id for node in roots] == ["root", "other"]
        root = roots[0]
        assert [n.mapping.id for n in root.regions["content"]] == ["c1", "c2"]
        assert [n.mapping.id for n in root.regions[DEFAULT_REGION]] == ["c3"]
        assert len(root.children()) == 3


class TestValidateAgainstPlan:
    """Test mapping validation against the plan."""

    def test_known_sections_pass(self, nested_plan):
        validate_against_plan([mapping("m", section_id="setup_config")], nested_plan)

    def test_unknown_section_raises(self, nested_plan):
        with pytest.raises(ValueError, match="unknown section ghost"):
            validate_against_plan([mapping("m", section_id="ghost")], nested_plan)
