"""Custom exceptions for content wizard services.

All of these are recoverable at the orchestration boundary: callers show
the message and keep the session alive.
"""

from typing import Optional, Sequence

from contentwizard.models.wizard_step import WizardStep


class WizardError(Exception):
    """Base class for wizard errors.

    Attributes:
        message: Human-readable error message
    """

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class DocumentProcessingError(WizardError):
    """Raised when a single source fails extraction.

    Non-fatal to a batch unless every source fails.

    Attributes:
        file_name: Name of the source that failed
        processor_id: Processor that attempted the conversion, if any
        message: Human-readable error message
    """

    def __init__(
        self,
        file_name: str,
        message: str = "Document processing failed",
        processor_id: Optional[str] = None,
    ):
        self.file_name = file_name
        self.processor_id = processor_id
        detail = f"{message}: {file_name}"
        if processor_id:
            detail += f" (processor: {processor_id})"
        super().__init__(detail)
        self.message = message


class PlanGenerationError(WizardError):
    """Raised when AI generation or refinement fails or returns an unusable result.

    Attributes:
        ai_provider: Provider used for the call
        ai_model: Model used for the call
        message: Human-readable error message
    """

    def __init__(
        self,
        message: str,
        ai_provider: Optional[str] = None,
        ai_model: Optional[str] = None,
    ):
        self.ai_provider = ai_provider
        self.ai_model = ai_model
        super().__init__(message)


class InvalidWizardStateError(WizardError):
    """Raised on an illegal step transition or missing prerequisite session data.

    The session is never mutated when this is raised.

    Attributes:
        current_step: Step the session is on
        target_step: Step that was requested (None past the last step)
        message: Human-readable error message
    """

    def __init__(
        self,
        current_step: WizardStep,
        target_step: Optional[WizardStep],
        message: Optional[str] = None,
    ):
        self.current_step = current_step
        self.target_step = target_step
        if message is None:
            target = target_step.label if target_step else "beyond the last step"
            message = f"Cannot move from '{current_step.label}' to '{target}'"
        super().__init__(message)


class CanvasCreationError(WizardError):
    """Raised when a page cannot be created from a template.

    Covers a missing template, failed duplication, failed validation and
    failed persistence. No partial page is left behind.

    Attributes:
        page_title: Title of the page being created
        validation_errors: Structured violations (empty unless validation failed)
        message: Human-readable error message
    """

    def __init__(
        self,
        message: str,
        page_title: str = "",
        validation_errors: Optional[Sequence[str]] = None,
    ):
        self.page_title = page_title
        self.validation_errors = list(validation_errors or [])
        super().__init__(message)

    def has_validation_errors(self) -> bool:
        return bool(self.validation_errors)
