"""Content plan models: the plan tree, its status and its refinement history.

All models here are immutable. Updates go through ``with_*`` methods that
return a new instance, so a plan can be swapped atomically after each
refinement or title edit.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar, Iterator, Optional

from pydantic import BaseModel, Field, model_validator

from contentwizard.utils.ids import generate_id
from contentwizard.utils.text import count_words, estimate_read_time, slugify, truncate


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PlanStatus(str, Enum):
    """Lifecycle status of a content plan."""

    DRAFT = "draft"
    GENERATING = "generating"
    READY = "ready"
    REFINING = "refining"
    APPROVED = "approved"
    CREATING = "creating"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def label(self) -> str:
        match self:
            case PlanStatus.DRAFT:
                return "Draft"
            case PlanStatus.GENERATING:
                return "Generating"
            case PlanStatus.READY:
                return "Ready for Review"
            case PlanStatus.REFINING:
                return "Refining"
            case PlanStatus.APPROVED:
                return "Approved"
            case PlanStatus.CREATING:
                return "Creating Content"
            case PlanStatus.COMPLETED:
                return "Completed"
            case PlanStatus.FAILED:
                return "Failed"

    def can_refine(self) -> bool:
        match self:
            case PlanStatus.DRAFT | PlanStatus.READY | PlanStatus.APPROVED:
                return True
            case (
                PlanStatus.GENERATING
                | PlanStatus.REFINING
                | PlanStatus.CREATING
                | PlanStatus.COMPLETED
                | PlanStatus.FAILED
            ):
                return False

    def can_create(self) -> bool:
        match self:
            case PlanStatus.READY | PlanStatus.APPROVED:
                return True
            case (
                PlanStatus.DRAFT
                | PlanStatus.GENERATING
                | PlanStatus.REFINING
                | PlanStatus.CREATING
                | PlanStatus.COMPLETED
                | PlanStatus.FAILED
            ):
                return False

    def is_terminal(self) -> bool:
        return self in (PlanStatus.COMPLETED, PlanStatus.FAILED)

    def is_processing(self) -> bool:
        return self in (PlanStatus.GENERATING, PlanStatus.REFINING, PlanStatus.CREATING)

    def allowed_transitions(self) -> frozenset["PlanStatus"]:
        """
        Statuses reachable from this one.

        Progress is forward-only apart from the refine/approve cycle
        (READY -> REFINING -> READY, APPROVED -> REFINING) and retrying
        a failed plan from DRAFT.
        """
        match self:
            case PlanStatus.DRAFT:
                targets = {PlanStatus.GENERATING, PlanStatus.READY, PlanStatus.FAILED}
            case PlanStatus.GENERATING:
                targets = {PlanStatus.READY, PlanStatus.FAILED}
            case PlanStatus.READY:
                targets = {PlanStatus.REFINING, PlanStatus.APPROVED, PlanStatus.CREATING, PlanStatus.FAILED}
            case PlanStatus.REFINING:
                targets = {PlanStatus.READY, PlanStatus.FAILED}
            case PlanStatus.APPROVED:
                targets = {PlanStatus.REFINING, PlanStatus.READY, PlanStatus.CREATING, PlanStatus.FAILED}
            case PlanStatus.CREATING:
                targets = {PlanStatus.COMPLETED, PlanStatus.FAILED}
            case PlanStatus.COMPLETED:
                targets = set()
            case PlanStatus.FAILED:
                targets = {PlanStatus.DRAFT}
        return frozenset(targets)

    def can_transition_to(self, target: "PlanStatus") -> bool:
        return target is self or target in self.allowed_transitions()


class PlanSection(BaseModel):
    """One node of the content plan tree."""

    id: str = Field(..., min_length=1, description="Identifier, unique across the whole plan")
    title: str = Field(default="", description="Section heading")
    content: str = Field(default="", description="Section body text (may be empty)")
    component_type: str = Field(default="text", description="Suggested component type hint")
    order: int = Field(default=0, description="Sequence among siblings")
    component_config: dict[str, Any] = Field(
        default_factory=dict,
        description="Type-specific hints, e.g. heading_level"
    )
    children: list["PlanSection"] = Field(default_factory=list, description="Nested sections")

    model_config = {"frozen": True}

    REQUIRED_KEYS: ClassVar[tuple[str, ...]] = ("id", "title", "content", "component_type", "order")

    @classmethod
    def create(
        cls,
        title: str,
        content: str = "",
        component_type: str = "text",
        order: int = 0,
        component_config: Optional[dict[str, Any]] = None,
    ) -> "PlanSection":
        """Create a section with a freshly generated id."""
        return cls(
            id=generate_id("section"),
            title=title,
            content=content,
            component_type=component_type,
            order=order,
            component_config=component_config or {},
        )

    def _replace(self, **changes: Any) -> "PlanSection":
        return type(self)(**{**dict(self), **changes})

    def with_title(self, title: str) -> "PlanSection":
        return self._replace(title=title)

    def with_content(self, content: str) -> "PlanSection":
        return self._replace(content=content)

    def with_component_type(self, component_type: str) -> "PlanSection":
        return self._replace(component_type=component_type)

    def with_order(self, order: int) -> "PlanSection":
        return self._replace(order=order)

    def with_child(self, child: "PlanSection") -> "PlanSection":
        return self._replace(children=[*self.children, child])

    def with_children(self, children: list["PlanSection"]) -> "PlanSection":
        return self._replace(children=list(children))

    def with_component_config(self, config: dict[str, Any]) -> "PlanSection":
        """Return a copy with config merged over the existing component_config."""
        return self._replace(component_config={**self.component_config, **config})

    def has_children(self) -> bool:
        return bool(self.children)

    def sorted_children(self) -> list["PlanSection"]:
        """Children by ascending order; ties keep their stored sequence."""
        return sorted(self.children, key=lambda child: child.order)

    def flatten(self) -> list["PlanSection"]:
        """This section followed by all descendants, depth-first."""
        result = [self]
        for child in self.sorted_children():
            result.extend(child.flatten())
        return result

    @property
    def word_count(self) -> int:
        return count_words(self.content)

    @property
    def total_word_count(self) -> int:
        return self.word_count + sum(child.total_word_count for child in self.children)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PlanSection":
        """
        Rebuild a section from its storage shape.

        Raises:
            ValueError: If a required key is missing
        """
        missing = [key for key in cls.REQUIRED_KEYS if key not in data]
        if missing:
            raise ValueError(f"Plan section is missing required keys: {', '.join(missing)}")
        children = [cls.from_dict(child) for child in data.get("children") or []]
        return cls(
            id=data["id"],
            title=data["title"],
            content=data["content"],
            component_type=data["component_type"],
            order=int(data["order"]),
            component_config=dict(data.get("component_config") or {}),
            children=children,
        )


class RefinementEntry(BaseModel):
    """Audit record of one refinement round. Append-only."""

    id: str = Field(..., description="Refinement identifier")
    instructions: str = Field(..., description="Free-text instructions from the user")
    response: str = Field(default="", description="Summary of what changed")
    created_at: datetime = Field(default_factory=utcnow, description="When the refinement ran")
    affected_sections: list[str] = Field(default_factory=list, description="Ids of changed sections")
    user_id: Optional[str] = Field(default=None, description="User who requested the refinement")

    model_config = {"frozen": True}

    @classmethod
    def create(
        cls,
        instructions: str,
        response: str,
        affected_sections: Optional[list[str]] = None,
        user_id: Optional[str] = None,
    ) -> "RefinementEntry":
        return cls(
            id=generate_id("refinement"),
            instructions=instructions,
            response=response,
            affected_sections=list(affected_sections or []),
            user_id=user_id,
        )

    def affected_section(self, section_id: str) -> bool:
        return section_id in self.affected_sections

    @property
    def affected_section_count(self) -> int:
        return len(self.affected_sections)

    def summary(self, max_length: int = 100) -> str:
        """Instructions shortened for history listings."""
        return truncate(self.instructions, max_length)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RefinementEntry":
        return cls.model_validate(data)


class ContentPlan(BaseModel):
    """Root aggregate of a generated content plan."""

    id: str = Field(..., description="Plan identifier")
    title: str = Field(..., description="Proposed page title")
    summary: str = Field(default="", description="One-paragraph summary")
    target_audience: str = Field(default="General audience", description="Intended readers")
    estimated_read_time: int = Field(default=0, ge=0, description="Minutes")
    sections: list[PlanSection] = Field(default_factory=list, description="Top-level sections")
    status: PlanStatus = Field(default=PlanStatus.DRAFT, description="Lifecycle status")
    refinement_history: list[RefinementEntry] = Field(
        default_factory=list,
        description="Refinement audit trail, oldest first"
    )
    generated_at: datetime = Field(default_factory=utcnow, description="Generation time")
    source_document_ids: list[str] = Field(default_factory=list, description="Documents the plan came from")
    template_id: Optional[str] = Field(default=None, description="Template the plan targets")

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_unique_section_ids(self) -> "ContentPlan":
        seen: set[str] = set()
        for section in self.iter_sections():
            if section.id in seen:
                raise ValueError(f"Duplicate section id in plan: {section.id}")
            seen.add(section.id)
        return self

    @classmethod
    def create(
        cls,
        title: str,
        summary: str,
        sections: list[PlanSection],
        target_audience: str = "General audience",
        estimated_read_time: int = 0,
        status: PlanStatus = PlanStatus.DRAFT,
        source_document_ids: Optional[list[str]] = None,
        template_id: Optional[str] = None,
    ) -> "ContentPlan":
        return cls(
            id=generate_id("plan"),
            title=title,
            summary=summary,
            target_audience=target_audience,
            estimated_read_time=estimated_read_time,
            sections=list(sections),
            status=status,
            source_document_ids=list(source_document_ids or []),
            template_id=template_id,
        )

    def _replace(self, **changes: Any) -> "ContentPlan":
        return type(self)(**{**dict(self), **changes})

    def with_title(self, title: str) -> "ContentPlan":
        return self._replace(title=title)

    def with_summary(self, summary: str) -> "ContentPlan":
        return self._replace(summary=summary)

    def with_sections(self, sections: list[PlanSection]) -> "ContentPlan":
        return self._replace(sections=list(sections))

    def with_estimated_read_time(self, minutes: int) -> "ContentPlan":
        return self._replace(estimated_read_time=minutes)

    def with_revision(self, revised: "ContentPlan") -> "ContentPlan":
        """Take the content of revised, keeping this plan's identity, status and history."""
        return self._replace(
            title=revised.title,
            summary=revised.summary,
            target_audience=revised.target_audience,
            estimated_read_time=revised.estimated_read_time,
            sections=revised.sections,
        )

    def with_template_id(self, template_id: Optional[str]) -> "ContentPlan":
        return self._replace(template_id=template_id)

    def with_status(self, status: PlanStatus) -> "ContentPlan":
        """
        Return a copy in the given status.

        Raises:
            ValueError: If the transition is not allowed from the current status
        """
        if not self.status.can_transition_to(status):
            raise ValueError(
                f"Cannot change plan status from {self.status.value} to {status.value}"
            )
        if status is self.status:
            return self
        return self._replace(status=status)

    def with_refinement(self, entry: RefinementEntry) -> "ContentPlan":
        return self._replace(refinement_history=[*self.refinement_history, entry])

    def iter_sections(self) -> Iterator[PlanSection]:
        for section in self.sections:
            yield from section.flatten()

    def flatten_sections(self) -> list[PlanSection]:
        """All sections depth-first: siblings by ascending order, parents before children."""
        result: list[PlanSection] = []
        for section in sorted(self.sections, key=lambda s: s.order):
            result.extend(section.flatten())
        return result

    def find_section(self, section_id: str) -> Optional[PlanSection]:
        for section in self.iter_sections():
            if section.id == section_id:
                return section
        return None

    def section_ids(self) -> set[str]:
        return {section.id for section in self.iter_sections()}

    @property
    def refinement_count(self) -> int:
        return len(self.refinement_history)

    @property
    def total_section_count(self) -> int:
        return sum(1 for _ in self.iter_sections())

    @property
    def total_word_count(self) -> int:
        return sum(section.total_word_count for section in self.sections)

    def computed_read_time(self, words_per_minute: int = 200) -> int:
        return estimate_read_time(self.total_word_count, words_per_minute)

    def suggested_path(self) -> str:
        """URL alias derived from the title, e.g. "/getting-started-guide"."""
        return "/" + slugify(self.title)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ContentPlan":
        data = dict(data)
        data["sections"] = [PlanSection.from_dict(s) for s in data.get("sections") or []]
        data["refinement_history"] = [
            RefinementEntry.from_dict(e) for e in data.get("refinement_history") or []
        ]
        return cls.model_validate(data)
