"""Component mappings: how a plan section populates a template component."""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from pydantic import BaseModel, Field

from contentwizard.models.plan import ContentPlan, PlanSection
from contentwizard.utils.ids import generate_id


DEFAULT_REGION = "default"


class ComponentMapping(BaseModel):
    """Immutable edge between one plan section and one destination component."""

    id: str = Field(..., description="Mapping identifier")
    section_id: str = Field(..., description="Plan section supplying the values")
    component_type: str = Field(..., description="Destination component type")
    component_bundle: Optional[str] = Field(default=None, description="Bundle or variant of the type")
    field_mappings: dict[str, Any] = Field(
        default_factory=dict,
        description="Destination input name -> value"
    )
    component_settings: dict[str, Any] = Field(default_factory=dict, description="Component options")
    weight: int = Field(default=0, description="Processing/render order")
    parent_mapping_id: Optional[str] = Field(default=None, description="Parent mapping for nesting")
    region: Optional[str] = Field(default=None, description="Slot within the parent")

    model_config = {"frozen": True}

    @classmethod
    def create(
        cls,
        section_id: str,
        component_type: str,
        component_bundle: Optional[str] = None,
        field_mappings: Optional[dict[str, Any]] = None,
        weight: int = 0,
    ) -> "ComponentMapping":
        return cls(
            id=generate_id("mapping"),
            section_id=section_id,
            component_type=component_type,
            component_bundle=component_bundle,
            field_mappings=field_mappings or {},
            weight=weight,
        )

    @classmethod
    def from_section(cls, section: PlanSection, weight: int = 0) -> "ComponentMapping":
        """Mapping for a section using its own type hint and default field mappings."""
        return cls.create(
            section_id=section.id,
            component_type=section.component_type,
            field_mappings=default_field_mappings(section, section.component_type),
            weight=weight,
        )

    def with_field_mappings(self, mappings: dict[str, Any]) -> "ComponentMapping":
        return self.model_copy(update={"field_mappings": {**self.field_mappings, **mappings}})

    def with_component_settings(self, settings: dict[str, Any]) -> "ComponentMapping":
        return self.model_copy(
            update={"component_settings": {**self.component_settings, **settings}}
        )

    def with_parent(self, parent_id: str, region: Optional[str] = None) -> "ComponentMapping":
        return self.model_copy(update={"parent_mapping_id": parent_id, "region": region})

    def with_weight(self, weight: int) -> "ComponentMapping":
        return self.model_copy(update={"weight": weight})

    def has_parent(self) -> bool:
        return self.parent_mapping_id is not None

    def get_field_mapping(self, name: str, default: Any = None) -> Any:
        return self.field_mappings.get(name, default)

    def get_component_setting(self, name: str, default: Any = None) -> Any:
        return self.component_settings.get(name, default)

    @property
    def full_component_id(self) -> str:
        """Return "type:bundle", or just the type when there is no bundle."""
        if self.component_bundle:
            return f"{self.component_type}:{self.component_bundle}"
        return self.component_type

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ComponentMapping":
        return cls.model_validate(data)


def default_field_mappings(section: PlanSection, component_type: str) -> dict[str, Any]:
    """Field values a section would supply to a component of the given type."""
    match component_type:
        case "text" | "rich_text":
            return {"body": section.content}
        case "heading":
            return {
                "title": section.title,
                "level": section.component_config.get("heading_level", 2),
            }
        case "image":
            return {"alt": section.title, "caption": section.content}
        case "accordion":
            return {"title": section.title, "content": section.content, "expanded": False}
        case "card":
            return {"title": section.title, "body": section.content}
        case _:
            return {"content": section.content}


def sort_by_weight(mappings: Iterable[ComponentMapping]) -> list[ComponentMapping]:
    return sorted(mappings, key=lambda mapping: mapping.weight)


@dataclass
class MappingNode:
    """A mapping with its nested children grouped by region."""

    mapping: ComponentMapping
    regions: dict[str, list["MappingNode"]] = field(default_factory=dict)

    def children(self) -> list["MappingNode"]:
        return [node for nodes in self.regions.values() for node in nodes]


def build_tree(mappings: Iterable[ComponentMapping]) -> list[MappingNode]:
    """
    Arrange mappings into a forest.

    Mappings without a parent are roots; the others are grouped by region
    (DEFAULT_REGION when unset) under their parent, each level sorted by weight.
    """
    ordered = sort_by_weight(mappings)
    by_parent: dict[Optional[str], list[ComponentMapping]] = defaultdict(list)
    for mapping in ordered:
        by_parent[mapping.parent_mapping_id].append(mapping)

    def build(mapping: ComponentMapping) -> MappingNode:
        node = MappingNode(mapping=mapping)
        for child in by_parent.get(mapping.id, []):
            node.regions.setdefault(child.region or DEFAULT_REGION, []).append(build(child))
        return node

    return [build(mapping) for mapping in by_parent.get(None, [])]


def validate_against_plan(mappings: Iterable[ComponentMapping], plan: ContentPlan) -> None:
    """
    Check that every mapping points at a section of the plan.

    Raises:
        ValueError: For the first mapping whose section_id is unknown
    """
    known = plan.section_ids()
    for mapping in mappings:
        if mapping.section_id not in known:
            raise ValueError(
                f"Mapping {mapping.id} references unknown section {mapping.section_id}"
            )
