"""End-to-end wizard workflow used by the CLI.

Ties the session state machine to source processing, plan generation and
page creation. Every error raised here is recoverable: the session stays
as it was and the caller can report the problem and retry.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Optional

from contentwizard.models.plan import ContentPlan, PlanStatus
from contentwizard.models.session import WizardSession
from contentwizard.models.wizard_step import WizardStep
from contentwizard.services.component_catalog import ComponentCatalog
from contentwizard.services.document_processing import DocumentProcessingService
from contentwizard.services.exceptions import (
    DocumentProcessingError,
    InvalidWizardStateError,
    PlanGenerationError,
)
from contentwizard.services.page_creator import PageCreationResult, PageCreator, PageOptions
from contentwizard.services.plan_generator import PlanGenerator
from contentwizard.services.session_manager import WizardSessionManager
from contentwizard.utils.logging import get_logger


logger = get_logger(__name__)


@dataclass
class SourceBatchResult:
    added: list[str]
    failures: list[DocumentProcessingError]


class WizardWorkflow:
    """Operations a user performs while walking through the wizard."""

    def __init__(
        self,
        sessions: WizardSessionManager,
        processing: DocumentProcessingService,
        generator: Optional[PlanGenerator],
        creator: PageCreator,
        catalog: Optional[ComponentCatalog] = None,
    ):
        """
        Args:
            generator: Plan generator, or None when no AI provider is configured
                (plan generation and refinement then fail with PlanGenerationError)
        """
        self.sessions = sessions
        self.processing = processing
        self._generator = generator
        self.creator = creator
        self.catalog = catalog or ComponentCatalog()

    @property
    def generator(self) -> PlanGenerator:
        if self._generator is None:
            raise PlanGenerationError("No AI provider is configured")
        return self._generator

    def _require_step(self, session: WizardSession, step: WizardStep) -> None:
        if session.current_step != step:
            raise InvalidWizardStateError(
                session.current_step,
                step,
                f"This action is only available on the '{step.label}' step "
                f"(current step: '{session.current_step.label}')",
            )

    def _require_plan(self, session: WizardSession) -> ContentPlan:
        if session.content_plan is None:
            raise InvalidWizardStateError(
                session.current_step, WizardStep.PLAN, "No content plan has been generated yet"
            )
        return session.content_plan

    def _component_types(self, session: WizardSession) -> Optional[list[str]]:
        """Component types offered by the selected template, if any.

        Raises:
            CanvasCreationError: If the selected template is missing or unreadable
        """
        if not session.template_id:
            return None
        template = self.creator.load_template(session.template_id)
        return list(self.catalog.list_component_types(template))

    def add_sources(self, session: WizardSession, paths: Iterable[Path]) -> SourceBatchResult:
        """
        Process files and attach the successful ones to the session.

        Raises:
            InvalidWizardStateError: If the session is not on the upload step
            DocumentProcessingError: If every file fails
        """
        self._require_step(session, WizardStep.UPLOAD)
        documents, failures = self.processing.process_all(paths)
        for document in documents:
            session.add_processed_document(document)
        self.sessions.update_session(session)
        return SourceBatchResult(added=[d.file_name for d in documents], failures=failures)

    def add_webpages(self, session: WizardSession, urls: Iterable[str]) -> SourceBatchResult:
        """
        Fetch web pages and attach the successful ones to the session.

        Raises:
            InvalidWizardStateError: If the session is not on the upload step
            DocumentProcessingError: If every URL fails
        """
        self._require_step(session, WizardStep.UPLOAD)
        webpages, failures = self.processing.process_urls(urls)
        for webpage in webpages:
            session.add_processed_webpage(webpage)
        self.sessions.update_session(session)
        return SourceBatchResult(added=[w.url for w in webpages], failures=failures)

    def select_template(self, session: WizardSession, template_id: str) -> None:
        """
        Raises:
            InvalidWizardStateError: If the template does not exist
        """
        if template_id not in self.creator.storage.list_templates():
            raise InvalidWizardStateError(
                session.current_step, session.current_step, f"Template '{template_id}' not found"
            )
        self.sessions.set_template_id(session, template_id)

    def generate_plan(self, session: WizardSession, options: Optional[dict[str, Any]] = None) -> ContentPlan:
        """
        Generate (or regenerate) the plan for the session's sources.

        Raises:
            InvalidWizardStateError: If the session is not on the plan step
            CanvasCreationError: If the selected template cannot be loaded
            PlanGenerationError: If generation fails; any existing plan is kept
        """
        self._require_step(session, WizardStep.PLAN)
        options = dict(options or {})
        if "component_types" not in options:
            component_types = self._component_types(session)
            if component_types:
                options["component_types"] = component_types

        plan = self.generator.generate(
            list(session.processed_documents.values()),
            session.selected_contexts,
            session.template_id,
            options,
            webpages=list(session.processed_webpages.values()),
        )
        self.sessions.set_content_plan(session, plan)
        return plan

    def refine_plan(self, session: WizardSession, instructions: str) -> ContentPlan:
        """
        Refine the current plan. The instructions stay in the session until
        the refinement succeeds.

        Raises:
            InvalidWizardStateError: If there is no plan
            CanvasCreationError: If the selected template cannot be loaded
            PlanGenerationError: If refinement is rejected or fails; the plan is unchanged
        """
        self._require_step(session, WizardStep.PLAN)
        plan = self._require_plan(session)
        self.sessions.set_refinement_instructions(session, instructions)

        refined = self.generator.refine(
            plan,
            instructions,
            session.selected_contexts,
            session.user_id,
            component_types=self._component_types(session),
        )

        session.set_content_plan(refined)
        session.set_refinement_instructions(None)
        self.sessions.update_session(session)
        return refined

    def can_refine(self, session: WizardSession) -> bool:
        return (
            self._generator is not None
            and session.content_plan is not None
            and self._generator.can_refine(session.content_plan)
        )

    def retitle_plan(self, session: WizardSession, title: str) -> ContentPlan:
        plan = self._require_plan(session)
        if not title.strip():
            raise ValueError("Title cannot be empty")
        updated = plan.with_title(title.strip())
        self.sessions.set_content_plan(session, updated)
        return updated

    def approve_plan(self, session: WizardSession) -> ContentPlan:
        """
        Raises:
            InvalidWizardStateError: If there is no plan
            ValueError: If the plan's status cannot move to APPROVED
        """
        plan = self._require_plan(session)
        approved = plan.with_status(PlanStatus.APPROVED)
        self.sessions.set_content_plan(session, approved)
        logger.info("plan_approved", plan_id=approved.id)
        return approved

    def create_page(self, session: WizardSession, options: Optional[PageOptions] = None) -> PageCreationResult:
        """
        Create the page and end the session.

        Raises:
            InvalidWizardStateError: If the session is not on the create step
                or lacks a plan or template
            CanvasCreationError: If page creation fails; the session is kept
        """
        self._require_step(session, WizardStep.CREATE)
        plan = self._require_plan(session)
        if not session.template_id:
            raise InvalidWizardStateError(
                session.current_step, WizardStep.CREATE, "No template has been selected"
            )

        result = self.creator.create_from_template(plan, session.template_id, options)
        self.sessions.clear_session(session.user_id)
        return result
