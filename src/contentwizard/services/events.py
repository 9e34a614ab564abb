"""Side-channel notifications emitted after the core commits a change.

Listeners receive events synchronously, but nothing they do (including
raising) feeds back into the operation that emitted the event.
"""

from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, Optional

from contentwizard.models.document import ProcessedDocument, ProcessedWebpage
from contentwizard.models.plan import ContentPlan
from contentwizard.models.session import WizardSession
from contentwizard.models.template import Page
from contentwizard.models.wizard_step import WizardStep
from contentwizard.utils.logging import get_logger


logger = get_logger(__name__)

Listener = Callable[[Any], None]


@dataclass(frozen=True)
class WizardStepChanged:
    """The session moved from previous_step to new_step."""

    session: WizardSession
    previous_step: WizardStep
    new_step: WizardStep


@dataclass(frozen=True)
class DocumentProcessed:
    """A source document was converted successfully."""

    document: ProcessedDocument
    processor_id: str


@dataclass(frozen=True)
class WebpageProcessed:
    """A web page was fetched and converted successfully."""

    webpage: ProcessedWebpage
    extractor_id: str


@dataclass(frozen=True)
class PagePublished:
    """A page was created from a template and persisted."""

    page: Page
    plan: ContentPlan


class EventDispatcher:
    """Synchronous, fire-and-forget event dispatcher."""

    def __init__(self) -> None:
        self._listeners: dict[type, list[Listener]] = defaultdict(list)

    def subscribe(self, event_type: type, listener: Listener) -> None:
        self._listeners[event_type].append(listener)

    def unsubscribe(self, event_type: type, listener: Listener) -> None:
        if listener in self._listeners.get(event_type, []):
            self._listeners[event_type].remove(listener)

    def listener_count(self, event_type: Optional[type] = None) -> int:
        if event_type is None:
            return sum(len(listeners) for listeners in self._listeners.values())
        return len(self._listeners.get(event_type, []))

    def dispatch(self, event: Any) -> None:
        """
        Deliver an event to every listener subscribed to its type.

        Listener failures are logged and swallowed.
        """
        event_name = type(event).__name__
        for listener in list(self._listeners.get(type(event), [])):
            try:
                listener(event)
            except Exception as e:
                logger.error(
                    "event_listener_failed",
                    event_type=event_name,
                    listener=getattr(listener, "__qualname__", repr(listener)),
                    error=str(e),
                    exc_info=True,
                )
