"""Wizard session state machine and session persistence.

Sessions live in a keyed store (one session per user). The store holds the
logical storage shape produced by WizardSession.to_dict(); concurrent
writers for the same user are not coordinated, the last write wins.
"""

import copy
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Optional
from urllib.parse import quote

from contentwizard.models.context import AIContext
from contentwizard.models.document import ProcessedDocument, ProcessedWebpage
from contentwizard.models.plan import ContentPlan
from contentwizard.models.session import WizardSession
from contentwizard.models.wizard_step import WizardStep
from contentwizard.services.events import EventDispatcher, WizardStepChanged
from contentwizard.services.exceptions import InvalidWizardStateError
from contentwizard.services.file_operations import read_json, write_json
from contentwizard.utils.logging import get_logger


logger = get_logger(__name__)

Clock = Callable[[], datetime]


class SessionStore(ABC):
    """Keyed store for serialized sessions."""

    @abstractmethod
    def get(self, key: str) -> Optional[dict[str, Any]]:
        """Return the stored data for key, or None."""
        pass

    @abstractmethod
    def set(self, key: str, data: dict[str, Any]) -> None:
        """Store data under key, replacing any previous value."""
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove key if present."""
        pass


class InMemorySessionStore(SessionStore):
    """Process-local store. Values are copied in and out."""

    def __init__(self) -> None:
        self._data: dict[str, dict[str, Any]] = {}

    def get(self, key: str) -> Optional[dict[str, Any]]:
        data = self._data.get(key)
        return copy.deepcopy(data) if data is not None else None

    def set(self, key: str, data: dict[str, Any]) -> None:
        self._data[key] = copy.deepcopy(data)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._data


class JsonFileSessionStore(SessionStore):
    """One JSON file per key under a directory, written atomically."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{quote(key, safe='')}.json"

    def get(self, key: str) -> Optional[dict[str, Any]]:
        return read_json(self._path(key))

    def set(self, key: str, data: dict[str, Any]) -> None:
        write_json(self._path(key), data)

    def delete(self, key: str) -> None:
        path = self._path(key)
        if path.exists():
            path.unlink()


class WizardSessionManager:
    """
    Owns the UPLOAD -> PLAN -> CREATE state machine.

    Forward moves require the current step's prerequisites
    (WizardSession.can_proceed()); backward moves are always allowed. Every
    successful move is persisted first and then announced with a
    WizardStepChanged event.
    """

    def __init__(
        self,
        store: SessionStore,
        dispatcher: Optional[EventDispatcher] = None,
        session_timeout: Optional[int] = 3600,
        clock: Optional[Clock] = None,
    ):
        """
        Args:
            store: Keyed session store
            dispatcher: Event sink for step changes (optional)
            session_timeout: Seconds of inactivity after which a stored session
                is discarded; None disables expiry
            clock: Returns the current time (tests inject a fixed clock)
        """
        self.store = store
        self.dispatcher = dispatcher or EventDispatcher()
        self.session_timeout = session_timeout
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @staticmethod
    def _key(user_id: str) -> str:
        return f"wizard_session:{user_id}"

    def get_session(self, user_id: str) -> Optional[WizardSession]:
        """Load the user's session, treating expired sessions as absent."""
        data = self.store.get(self._key(user_id))
        if data is None:
            return None

        session = WizardSession.from_dict(data)
        if self.session_timeout is not None and session.is_expired(
            self.session_timeout, now=self._clock()
        ):
            logger.info("session_expired", session_id=session.id, user_id=user_id)
            self.store.delete(self._key(user_id))
            return None
        return session

    def create_session(self, user_id: str) -> WizardSession:
        now = self._clock()
        session = WizardSession(user_id=user_id, created_at=now, updated_at=now)
        self.store.set(self._key(user_id), session.to_dict())
        logger.info("session_created", session_id=session.id, user_id=user_id)
        return session

    def get_or_create_session(self, user_id: str) -> WizardSession:
        return self.get_session(user_id) or self.create_session(user_id)

    def update_session(self, session: WizardSession) -> None:
        """Persist the session as it is now."""
        self.store.set(self._key(session.user_id), session.to_dict())
        logger.debug("session_saved", session_id=session.id, step=session.current_step.name)

    def clear_session(self, user_id: str) -> None:
        self.store.delete(self._key(user_id))
        logger.info("session_cleared", user_id=user_id)

    def can_proceed(self, session: WizardSession) -> bool:
        return session.can_proceed()

    def advance(self, session: WizardSession) -> WizardStep:
        """
        Move to the next step.

        Returns:
            The new current step

        Raises:
            InvalidWizardStateError: If the current step's prerequisites are not
                met, or the session is already on the last step. The session is
                left unchanged.
        """
        current = session.current_step
        target = current.next

        if target is None:
            logger.warning("step_advance_rejected", session_id=session.id, step=current.name, reason="last_step")
            raise InvalidWizardStateError(current, None)

        if not session.can_proceed():
            missing = session.missing_prerequisites()
            logger.warning(
                "step_advance_rejected",
                session_id=session.id,
                step=current.name,
                target=target.name,
                missing=missing,
            )
            raise InvalidWizardStateError(
                current,
                target,
                f"Cannot continue to '{target.label}': requires {' and '.join(missing)}",
            )

        self._change_step(session, target)
        return target

    def go_back(self, session: WizardSession) -> bool:
        """
        Move to the previous step. Always permitted.

        Returns:
            False when already on the first step (nothing changes), True otherwise
        """
        target = session.current_step.previous
        if target is None:
            return False
        self._change_step(session, target)
        return True

    def set_current_step(self, session: WizardSession, step: WizardStep) -> None:
        """Jump backwards to an earlier step; forward jumps must use advance()."""
        if step > session.current_step:
            raise InvalidWizardStateError(
                session.current_step,
                step,
                f"Cannot jump forward to '{step.label}'; use advance()",
            )
        if step != session.current_step:
            self._change_step(session, step)

    def _change_step(self, session: WizardSession, target: WizardStep) -> None:
        previous, previous_updated_at = session.current_step, session.updated_at
        session.current_step = target
        session.touch(self._clock())
        try:
            self.update_session(session)
        except Exception:
            session.current_step = previous
            session.updated_at = previous_updated_at
            raise

        logger.info(
            "step_changed",
            session_id=session.id,
            previous_step=previous.name,
            new_step=target.name,
        )
        self.dispatcher.dispatch(WizardStepChanged(session, previous, target))

    def add_processed_document(self, session: WizardSession, document: ProcessedDocument) -> None:
        session.add_processed_document(document)
        self.update_session(session)

    def add_processed_webpage(self, session: WizardSession, webpage: ProcessedWebpage) -> None:
        session.add_processed_webpage(webpage)
        self.update_session(session)

    def remove_processed_document(self, session: WizardSession, document_id: str) -> bool:
        removed = session.remove_processed_document(document_id)
        self.update_session(session)
        return removed

    def set_template_id(self, session: WizardSession, template_id: Optional[str]) -> None:
        session.set_template_id(template_id)
        self.update_session(session)

    def set_selected_contexts(self, session: WizardSession, contexts: list[AIContext]) -> None:
        session.set_selected_contexts(contexts)
        self.update_session(session)

    def set_content_plan(self, session: WizardSession, plan: Optional[ContentPlan]) -> None:
        session.set_content_plan(plan)
        self.update_session(session)

    def clear_content_plan(self, session: WizardSession) -> None:
        session.clear_content_plan()
        self.update_session(session)

    def set_refinement_instructions(self, session: WizardSession, instructions: Optional[str]) -> None:
        session.set_refinement_instructions(instructions)
        self.update_session(session)
