"""Wizard session: the stateful root of one user's wizard run."""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from pydantic import BaseModel, Field

from contentwizard.models.context import AIContext
from contentwizard.models.document import ProcessedDocument, ProcessedWebpage
from contentwizard.models.plan import ContentPlan
from contentwizard.models.wizard_step import WizardStep
from contentwizard.utils.ids import generate_random_uuid


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WizardSession(BaseModel):
    """
    Mutable session state.

    Every mutator refreshes ``updated_at``. Step changes should go through
    WizardSessionManager, which enforces can_proceed() and emits events.
    """

    id: str = Field(default_factory=generate_random_uuid, description="Session identifier")
    user_id: str = Field(..., description="Owner of the session")
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    current_step: WizardStep = Field(default=WizardStep.UPLOAD)
    processed_documents: dict[str, ProcessedDocument] = Field(default_factory=dict)
    processed_webpages: dict[str, ProcessedWebpage] = Field(default_factory=dict)
    content_plan: Optional[ContentPlan] = Field(default=None)
    selected_contexts: list[AIContext] = Field(default_factory=list)
    template_id: Optional[str] = Field(default=None)
    uploaded_file_ids: list[str] = Field(default_factory=list)
    refinement_instructions: Optional[str] = Field(
        default=None,
        description="Scratch text for an in-flight refinement"
    )

    model_config = {"frozen": False}

    def touch(self, now: Optional[datetime] = None) -> None:
        self.updated_at = now or _utcnow()

    def add_processed_document(self, document: ProcessedDocument) -> None:
        self.processed_documents[document.id] = document
        if document.file_id:
            self.add_uploaded_file_id(document.file_id)
        self.touch()

    def remove_processed_document(self, document_id: str) -> bool:
        removed = self.processed_documents.pop(document_id, None)
        self.touch()
        return removed is not None

    def clear_processed_documents(self) -> None:
        self.processed_documents = {}
        self.touch()

    def add_processed_webpage(self, webpage: ProcessedWebpage) -> None:
        self.processed_webpages[webpage.id] = webpage
        self.touch()

    def set_content_plan(self, plan: Optional[ContentPlan]) -> None:
        self.content_plan = plan
        self.touch()

    def clear_content_plan(self) -> None:
        self.set_content_plan(None)

    def set_selected_contexts(self, contexts: list[AIContext]) -> None:
        self.selected_contexts = list(contexts)
        self.touch()

    def set_template_id(self, template_id: Optional[str]) -> None:
        self.template_id = template_id
        self.touch()

    def set_uploaded_file_ids(self, file_ids: list[str]) -> None:
        self.uploaded_file_ids = list(dict.fromkeys(file_ids))
        self.touch()

    def add_uploaded_file_id(self, file_id: str) -> None:
        if file_id not in self.uploaded_file_ids:
            self.uploaded_file_ids.append(file_id)
        self.touch()

    def set_refinement_instructions(self, instructions: Optional[str]) -> None:
        self.refinement_instructions = instructions
        self.touch()

    def has_sources(self) -> bool:
        return bool(self.processed_documents or self.processed_webpages)

    def can_proceed(self) -> bool:
        """Whether the current step's prerequisites are satisfied."""
        match self.current_step:
            case WizardStep.UPLOAD:
                return self.has_sources() and bool(self.template_id)
            case WizardStep.PLAN:
                return self.content_plan is not None
            case WizardStep.CREATE:
                return True

    def missing_prerequisites(self) -> list[str]:
        """Human-readable reasons why can_proceed() is false."""
        missing = []
        match self.current_step:
            case WizardStep.UPLOAD:
                if not self.has_sources():
                    missing.append("at least one processed document")
                if not self.template_id:
                    missing.append("a selected template")
            case WizardStep.PLAN:
                if self.content_plan is None:
                    missing.append("a content plan")
            case WizardStep.CREATE:
                pass
        return missing

    def is_expired(self, timeout_seconds: int, now: Optional[datetime] = None) -> bool:
        now = now or _utcnow()
        return now - self.updated_at > timedelta(seconds=timeout_seconds)

    def to_dict(self) -> dict[str, Any]:
        """Logical storage shape (JSON-compatible)."""
        return self.model_dump(mode="json")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "WizardSession":
        data = dict(data)
        if data.get("content_plan") is not None:
            data["content_plan"] = ContentPlan.from_dict(data["content_plan"])
        return cls.model_validate(data)
