"""Template pages and their component trees."""

import re
from datetime import datetime, timezone
from typing import Any, Iterator, Optional

from pydantic import BaseModel, Field

from contentwizard.utils.ids import generate_id, generate_random_uuid


class TemplateComponent(BaseModel):
    """
    A component instance placed on a page.

    ``inputs`` holds every declared input of the component with its current
    value; for a template these are the template defaults.
    """

    uuid: str = Field(default_factory=generate_random_uuid, description="Instance identifier")
    component_id: str = Field(..., description="Component type identifier, e.g. 'sdc.site.hero'")
    label: Optional[str] = Field(default=None, description="Editor-facing label")
    slot: Optional[str] = Field(default=None, description="Slot of the parent this component sits in")
    inputs: dict[str, Any] = Field(default_factory=dict, description="Declared input name -> value")
    children: list["TemplateComponent"] = Field(default_factory=list, description="Nested components")

    model_config = {"frozen": False}

    @property
    def component_type(self) -> str:
        """Last segment of the component id ('sdc.site.hero' -> 'hero', 'canvas:text' -> 'text')."""
        return re.split(r"[:.]", self.component_id)[-1]

    def walk(self) -> Iterator["TemplateComponent"]:
        """This component then its descendants, pre-order, declared order."""
        yield self
        for child in self.children:
            yield from child.walk()


class Page(BaseModel):
    """A page (or a template page) made of a component forest."""

    id: str = Field(default_factory=lambda: generate_id("page"), description="Page identifier")
    title: str = Field(default="", description="Page title")
    published: bool = Field(default=False, description="Publish status")
    description: Optional[str] = Field(default=None, description="Meta description")
    path_alias: Optional[str] = Field(default=None, description="URL alias")
    components: list[TemplateComponent] = Field(default_factory=list, description="Root components")
    template_id: Optional[str] = Field(default=None, description="Template this page was created from")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = {"frozen": False}

    def walk(self) -> Iterator[TemplateComponent]:
        for component in self.components:
            yield from component.walk()

    def component_count(self) -> int:
        return sum(1 for _ in self.walk())

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Page":
        return cls.model_validate(data)
