"""Shared test fixtures for all test modules."""

import json
from typing import Any

import pytest

from contentwizard.llm.client import CompletionClient
from contentwizard.models.document import DocumentMetadata, FileType, ProcessedDocument
from contentwizard.models.plan import ContentPlan, PlanSection, PlanStatus
from contentwizard.models.template import Page, TemplateComponent


class ScriptedClient(CompletionClient):
    """CompletionClient returning queued replies (strings, dicts or exceptions)."""

    def __init__(self, *replies: Any, provider_id: str = "test-provider", model: str = "test-model"):
        self.replies = list(replies)
        self.provider_id = provider_id
        self.model = model
        self.calls: list[list[dict[str, str]]] = []

    def complete(self, messages, stage="completion"):
        self.calls.append(messages)
        if not self.replies:
            raise AssertionError("ScriptedClient has no more replies")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, dict):
            return json.dumps(reply)
        return reply


@pytest.fixture
def scripted_client():
    """Factory for ScriptedClient instances."""
    return ScriptedClient


@pytest.fixture
def document():
    """A processed Markdown document."""
    return ProcessedDocument.create(
        file_name="guide.md",
        file_type=FileType.MD,
        markdown_content="# Getting Started\n\nInstall the tool and run it.",
        metadata=DocumentMetadata(title="Getting Started", headings=["Getting Started"]),
    )


@pytest.fixture
def nested_plan():
    """Plan with 3 top-level sections, the second holding 2 children, and one refinement."""
    from contentwizard.models.plan import RefinementEntry

    sections = [
        PlanSection(id="intro", title="Intro", content="Welcome to the guide.", component_type="hero", order=1),
        PlanSection(
            id="setup",
            title="Setup",
            content="How to set things up.",
            order=2,
            children=[
                PlanSection(id="setup_install", title="Install", content="Run the installer.", order=1),
                PlanSection(
                    id="setup_config",
                    title="Configure",
                    content="Edit the config file.",
                    order=2,
                    component_config={"heading_level": 3},
                ),
            ],
        ),
        PlanSection(id="faq", title="FAQ", content="Common questions.", component_type="accordion", order=3),
    ]
    plan = ContentPlan(
        id="plan_test",
        title="Getting Started Guide",
        summary="How to install and configure the tool.",
        target_audience="New users",
        estimated_read_time=2,
        sections=sections,
        status=PlanStatus.READY,
        source_document_ids=["doc_1"],
        template_id="landing",
    )
    entry = RefinementEntry.create(
        instructions="Make the intro friendlier",
        response="Rewrote the intro.",
        affected_sections=["intro"],
        user_id="alice",
    )
    return plan.with_refinement(entry)


@pytest.fixture
def landing_template():
    """Template page: hero{title,text}, text{body}, a divider, card{title,body} with nested text."""
    return Page(
        id="landing",
        title="Landing template",
        components=[
            TemplateComponent(
                uuid="c-hero",
                component_id="sdc.site.hero",
                inputs={"title": "Hero title", "text": "Hero text", "image": "hero.png"},
            ),
            TemplateComponent(uuid="c-text-1", component_id="sdc.site.text", inputs={"body": "Lorem ipsum"}),
            TemplateComponent(uuid="c-divider", component_id="sdc.site.divider", inputs={"style": "solid"}),
            TemplateComponent(
                uuid="c-card",
                component_id="sdc.site.card",
                inputs={"title": "Card", "body": "Card body"},
                children=[
                    TemplateComponent(
                        uuid="c-card-text",
                        component_id="sdc.site.text",
                        slot="content",
                        inputs={"body": "Nested default"},
                    )
                ],
            ),
        ],
    )
