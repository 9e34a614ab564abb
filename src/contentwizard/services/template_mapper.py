"""Template mapping engine: fill a template's components from a content plan.

The algorithm is positional and deterministic:

1. Flatten the plan depth-first (siblings by ascending order, parents first).
2. Collect fillable components from the template forest, pre-order in
   declared order. A component is fillable when it declares at least one
   title-like or content-like input.
3. Pair the Nth section with the Nth fillable component for
   N < min(section count, fillable count).
4. For each pair, write the section title into the first declared
   title-like input and the section content into the first declared
   content-like input, skipping empty values.

Extra sections are reported as unmapped; extra components keep their
template defaults. Inputs are never mutated: the engine works on a deep
copy of the component tree.
"""

from dataclasses import dataclass, field
from typing import Iterable, Literal, Optional, Sequence

from contentwizard.models.mapping import ComponentMapping, validate_against_plan
from contentwizard.models.plan import ContentPlan, PlanSection
from contentwizard.models.template import TemplateComponent
from contentwizard.utils.ids import generate_deterministic_id
from contentwizard.utils.logging import get_logger


logger = get_logger(__name__)

TITLE_INPUTS = ("title", "heading", "label", "name")
CONTENT_INPUTS = ("text", "body", "content", "rich_text", "description")

MismatchPolicy = Literal["warn", "skip"]


def flatten_sections(plan: ContentPlan) -> list[PlanSection]:
    """Plan sections in fill order."""
    return plan.flatten_sections()


def first_matching_input(component: TemplateComponent, candidates: Sequence[str]) -> Optional[str]:
    """First candidate name (in candidate priority order) the component declares."""
    for name in candidates:
        if name in component.inputs:
            return name
    return None


def is_fillable(component: TemplateComponent) -> bool:
    return (
        first_matching_input(component, TITLE_INPUTS) is not None
        or first_matching_input(component, CONTENT_INPUTS) is not None
    )


@dataclass(frozen=True)
class FillTarget:
    """A fillable component and its nearest fillable ancestor."""

    component: TemplateComponent
    parent: Optional[TemplateComponent]


def find_fillable_components(components: Iterable[TemplateComponent]) -> list[FillTarget]:
    """Fillable components, pre-order, in declared order."""
    targets: list[FillTarget] = []

    def visit(component: TemplateComponent, parent: Optional[TemplateComponent]) -> None:
        if is_fillable(component):
            targets.append(FillTarget(component, parent))
            parent = component
        for child in component.children:
            visit(child, parent)

    for component in components:
        visit(component, None)
    return targets


@dataclass(frozen=True)
class TypeMismatch:
    """A pairing whose section type hint differs from the component type."""

    position: int
    section_id: str
    section_type: str
    component_uuid: str
    component_type: str


@dataclass
class MappingResult:
    """Filled component tree plus an account of what happened."""

    components: list[TemplateComponent]
    filled_count: int = 0
    unmapped_count: int = 0
    skipped_count: int = 0
    unmapped_section_ids: list[str] = field(default_factory=list)
    mismatches: list[TypeMismatch] = field(default_factory=list)
    mappings: list[ComponentMapping] = field(default_factory=list)

    @property
    def fully_mapped(self) -> bool:
        return self.unmapped_count == 0 and self.skipped_count == 0


class TemplateMapper:
    """
    Maps content plans onto template component trees.

    Stateless apart from its policy, so one instance may be shared across
    threads.

    Args:
        mismatch_policy: What to do when a section's component_type differs
            from the paired component's type. "warn" records the mismatch
            and fills anyway; "skip" records it and leaves the component at
            its template defaults (the section is not re-paired).
    """

    def __init__(self, mismatch_policy: MismatchPolicy = "warn"):
        if mismatch_policy not in ("warn", "skip"):
            raise ValueError(f"Unknown mismatch policy: {mismatch_policy}")
        self.mismatch_policy = mismatch_policy

    def map(self, plan: ContentPlan, components: Sequence[TemplateComponent]) -> MappingResult:
        """Fill a copy of components from plan. Never raises for empty inputs."""
        tree = [component.model_copy(deep=True) for component in components]
        sections = flatten_sections(plan)
        targets = find_fillable_components(tree)

        pair_count = min(len(sections), len(targets))
        result = MappingResult(
            components=tree,
            unmapped_count=max(0, len(sections) - len(targets)),
            unmapped_section_ids=[section.id for section in sections[pair_count:]],
        )
        mapping_ids: dict[str, str] = {}

        for position in range(pair_count):
            section = sections[position]
            target = targets[position]
            component = target.component

            if section.component_type != component.component_type:
                mismatch = TypeMismatch(
                    position=position,
                    section_id=section.id,
                    section_type=section.component_type,
                    component_uuid=component.uuid,
                    component_type=component.component_type,
                )
                result.mismatches.append(mismatch)
                logger.warning(
                    "component_type_mismatch",
                    position=position,
                    section_id=section.id,
                    section_type=section.component_type,
                    component_type=component.component_type,
                    policy=self.mismatch_policy,
                )
                if self.mismatch_policy == "skip":
                    result.skipped_count += 1
                    continue

            written = fill_component(component, section)
            result.filled_count += 1

            mapping = ComponentMapping(
                id=generate_deterministic_id("mapping", section.id, component.uuid),
                section_id=section.id,
                component_type=component.component_type,
                field_mappings=written,
                component_settings={"component_id": component.component_id, "uuid": component.uuid},
                weight=position,
            )
            if target.parent is not None and target.parent.uuid in mapping_ids:
                mapping = mapping.with_parent(mapping_ids[target.parent.uuid], component.slot)
            mapping_ids[component.uuid] = mapping.id
            result.mappings.append(mapping)

        validate_against_plan(result.mappings, plan)

        if result.unmapped_count:
            logger.warning(
                "sections_unmapped",
                plan_id=plan.id,
                unmapped_count=result.unmapped_count,
                section_ids=result.unmapped_section_ids,
            )
        logger.info(
            "template_mapped",
            plan_id=plan.id,
            section_count=len(sections),
            fillable_count=len(targets),
            filled_count=result.filled_count,
            unmapped_count=result.unmapped_count,
            skipped_count=result.skipped_count,
            mismatch_count=len(result.mismatches),
        )
        return result


def fill_component(component: TemplateComponent, section: PlanSection) -> dict[str, str]:
    """
    Write section values into the component's first matching inputs.

    Returns:
        The inputs that were written, name -> value
    """
    written: dict[str, str] = {}

    title_input = first_matching_input(component, TITLE_INPUTS)
    if title_input is not None and section.title:
        written[title_input] = section.title

    content_input = first_matching_input(component, CONTENT_INPUTS)
    if content_input is not None and section.content:
        written[content_input] = section.content

    component.inputs.update(written)
    return written
