"""Wizard step enum."""

from enum import Enum
from typing import Optional


class WizardStep(int, Enum):
    """The three linear steps of the content wizard."""

    UPLOAD = 1
    PLAN = 2
    CREATE = 3

    @property
    def label(self) -> str:
        match self:
            case WizardStep.UPLOAD:
                return "Upload Content"
            case WizardStep.PLAN:
                return "Review Plan"
            case WizardStep.CREATE:
                return "Create Content"

    @property
    def description(self) -> str:
        match self:
            case WizardStep.UPLOAD:
                return "Upload your source documents or provide URLs to import."
            case WizardStep.PLAN:
                return "Review and approve the AI-generated content plan."
            case WizardStep.CREATE:
                return "Generate and review the final content."

    @property
    def next(self) -> Optional["WizardStep"]:
        """Following step, or None at the last step."""
        match self:
            case WizardStep.UPLOAD:
                return WizardStep.PLAN
            case WizardStep.PLAN:
                return WizardStep.CREATE
            case WizardStep.CREATE:
                return None

    @property
    def previous(self) -> Optional["WizardStep"]:
        """Preceding step, or None at the first step."""
        match self:
            case WizardStep.UPLOAD:
                return None
            case WizardStep.PLAN:
                return WizardStep.UPLOAD
            case WizardStep.CREATE:
                return WizardStep.PLAN

    @property
    def is_first(self) -> bool:
        return self.previous is None

    @property
    def is_last(self) -> bool:
        return self.next is None

    @property
    def progress(self) -> int:
        """Completion percentage shown in progress indicators."""
        match self:
            case WizardStep.UPLOAD:
                return 33
            case WizardStep.PLAN:
                return 66
            case WizardStep.CREATE:
                return 100
