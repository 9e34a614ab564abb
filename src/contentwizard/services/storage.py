"""Entity storage: templates in, validated pages out."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from contentwizard.models.template import Page
from contentwizard.services.file_operations import read_json, write_json
from contentwizard.utils.ids import generate_id, generate_random_uuid
from contentwizard.utils.logging import get_logger


logger = get_logger(__name__)

MAX_TITLE_LENGTH = 255


class EntityStorage(ABC):
    """Storage collaborator used by the page creator."""

    @abstractmethod
    def load(self, template_id: str) -> Optional[Page]:
        """Return the template page, or None if it does not exist."""
        pass

    @abstractmethod
    def save(self, page: Page) -> Page:
        """Persist a page and return the stored version."""
        pass

    @abstractmethod
    def list_templates(self) -> dict[str, str]:
        """Available templates, id -> title."""
        pass

    def duplicate(self, template: Page) -> Page:
        """
        Deep-copy a template into a new, unsaved page.

        The copy gets a new page id and fresh component UUIDs; nothing is
        persisted.
        """
        page = template.model_copy(deep=True)
        page.id = generate_id("page")
        page.template_id = template.id
        page.published = False
        for component in page.walk():
            component.uuid = generate_random_uuid()
        return page

    def validate(self, page: Page) -> list[str]:
        """Violations as "path: message" strings; empty when the page is valid."""
        violations = []
        if not page.title.strip():
            violations.append("title: This value should not be blank.")
        elif len(page.title) > MAX_TITLE_LENGTH:
            violations.append(
                f"title: This value is too long. It should have {MAX_TITLE_LENGTH} characters or less."
            )
        seen: set[str] = set()
        for index, component in enumerate(page.walk()):
            if not component.component_id:
                violations.append(f"components.{index}.component_id: This value should not be blank.")
            if component.uuid in seen:
                violations.append(f"components.{index}.uuid: Duplicate component UUID {component.uuid}.")
            seen.add(component.uuid)
        return violations


class InMemoryEntityStorage(EntityStorage):
    """Dictionary-backed storage for tests and embedding."""

    def __init__(self, templates: Optional[dict[str, Page]] = None):
        self.templates: dict[str, Page] = dict(templates or {})
        self.pages: dict[str, Page] = {}

    def add_template(self, template: Page) -> None:
        self.templates[template.id] = template

    def load(self, template_id: str) -> Optional[Page]:
        template = self.templates.get(template_id)
        return template.model_copy(deep=True) if template is not None else None

    def save(self, page: Page) -> Page:
        self.pages[page.id] = page.model_copy(deep=True)
        return page

    def list_templates(self) -> dict[str, str]:
        return {template_id: page.title for template_id, page in self.templates.items()}


class JsonEntityStorage(EntityStorage):
    """
    Directory-backed storage.

    Layout::

        <data_dir>/templates/<template_id>.json
        <data_dir>/pages/<page_id>.json
    """

    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)
        self.templates_dir = self.data_dir / "templates"
        self.pages_dir = self.data_dir / "pages"

    def load(self, template_id: str) -> Optional[Page]:
        data = read_json(self.templates_dir / f"{template_id}.json")
        if data is None:
            return None
        data.setdefault("id", template_id)
        try:
            return Page.from_dict(data)
        except ValidationError as e:
            logger.error("template_invalid", template_id=template_id, error=str(e))
            raise ValueError(f"Template {template_id} is not a valid page: {e}") from e

    def save(self, page: Page) -> Page:
        write_json(self.pages_dir / f"{page.id}.json", page.to_dict())
        logger.info("page_saved", page_id=page.id, title=page.title)
        return page

    def save_template(self, template: Page) -> None:
        write_json(self.templates_dir / f"{template.id}.json", template.to_dict())

    def load_page(self, page_id: str) -> Optional[Page]:
        data = read_json(self.pages_dir / f"{page_id}.json")
        return Page.from_dict(data) if data is not None else None

    def list_templates(self) -> dict[str, str]:
        templates: dict[str, str] = {}
        if not self.templates_dir.is_dir():
            return templates
        for path in sorted(self.templates_dir.glob("*.json")):
            data = read_json(path) or {}
            templates[path.stem] = data.get("title") or path.stem
        return templates
