"""Pydantic data models for the content wizard."""

from contentwizard.models.context import AIContext
from contentwizard.models.document import ProcessedDocument, ProcessedWebpage
from contentwizard.models.mapping import ComponentMapping
from contentwizard.models.plan import ContentPlan, PlanSection, PlanStatus, RefinementEntry
from contentwizard.models.session import WizardSession
from contentwizard.models.template import Page, TemplateComponent
from contentwizard.models.wizard_step import WizardStep

__all__ = [
    "AIContext",
    "ComponentMapping",
    "ContentPlan",
    "Page",
    "PlanSection",
    "PlanStatus",
    "ProcessedDocument",
    "ProcessedWebpage",
    "RefinementEntry",
    "TemplateComponent",
    "WizardSession",
    "WizardStep",
]
