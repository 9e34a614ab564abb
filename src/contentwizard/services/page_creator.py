"""Page creation: duplicate a template, fill it from a plan, validate, save."""

from dataclasses import dataclass
from typing import Optional

from contentwizard.models.plan import ContentPlan
from contentwizard.models.template import Page
from contentwizard.services.events import EventDispatcher, PagePublished
from contentwizard.services.exceptions import CanvasCreationError
from contentwizard.services.storage import EntityStorage
from contentwizard.services.template_mapper import MappingResult, TemplateMapper
from contentwizard.utils.logging import get_logger


logger = get_logger(__name__)


@dataclass(frozen=True)
class PageOptions:
    """Page-level overrides applied to the duplicated template."""

    title: Optional[str] = None
    published: bool = False
    description: Optional[str] = None
    alias: Optional[str] = None


@dataclass(frozen=True)
class PageCreationResult:
    page: Page
    mapping: MappingResult


class PageCreator:
    """
    Creates pages from templates.

    Either every step succeeds and the saved page is returned, or a
    CanvasCreationError is raised and nothing has been saved.
    """

    def __init__(
        self,
        storage: EntityStorage,
        dispatcher: Optional[EventDispatcher] = None,
        mapper: Optional[TemplateMapper] = None,
    ):
        self.storage = storage
        self.dispatcher = dispatcher or EventDispatcher()
        self.mapper = mapper or TemplateMapper()

    def create_from_template(
        self,
        plan: ContentPlan,
        template_id: str,
        options: Optional[PageOptions] = None,
    ) -> PageCreationResult:
        """
        Create and persist a page from template_id filled with plan.

        Raises:
            CanvasCreationError: If the plan is not ready, the template is
                missing, duplication fails, validation reports violations, or
                saving fails
        """
        options = options or PageOptions()
        title = (options.title or plan.title).strip()

        logger.info("page_creation_started", plan_id=plan.id, template_id=template_id, title=title)

        if not plan.status.can_create():
            raise self._fail(
                f"Plan status '{plan.status.label}' does not allow page creation", title
            )

        template = self.load_template(template_id, title)

        try:
            page = self.storage.duplicate(template)
        except Exception as e:
            raise self._fail(f"Template {template_id} could not be duplicated: {e}", title) from e

        page.title = title
        page.published = options.published
        page.description = options.description or plan.summary
        page.path_alias = options.alias or plan.suggested_path()
        page.template_id = template_id

        mapping = self.mapper.map(plan, page.components)
        page.components = mapping.components

        try:
            violations = self.storage.validate(page)
        except Exception as e:
            raise self._fail(f"Page could not be validated: {e}", title) from e
        if violations:
            logger.error("page_validation_failed", title=title, violations=violations)
            raise CanvasCreationError(
                "Page validation failed: " + "; ".join(violations),
                page_title=title,
                validation_errors=violations,
            )

        try:
            saved = self.storage.save(page)
        except Exception as e:
            raise self._fail(f"Page could not be saved: {e}", title) from e

        logger.info(
            "page_created",
            page_id=saved.id,
            title=saved.title,
            template_id=template_id,
            filled_count=mapping.filled_count,
            unmapped_count=mapping.unmapped_count,
        )
        self.dispatcher.dispatch(PagePublished(saved, plan))
        return PageCreationResult(page=saved, mapping=mapping)

    def load_template(self, template_id: str, title: str = "") -> Page:
        """
        Raises:
            CanvasCreationError: If the template is missing or cannot be read
        """
        try:
            template = self.storage.load(template_id)
        except Exception as e:
            raise self._fail(f"Template {template_id} could not be loaded: {e}", title) from e
        if template is None:
            raise self._fail(f"Template {template_id} not found", title)
        return template

    def _fail(self, message: str, title: str) -> CanvasCreationError:
        logger.error("page_creation_failed", title=title, error=message)
        return CanvasCreationError(message, page_title=title)
