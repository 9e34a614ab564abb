"""Content plan generation and refinement.

The AI collaborator is trusted for shape but validated defensively: a
response that is missing a required field fails the whole operation with
PlanGenerationError rather than producing a partial plan.
"""

import json
import math
import re
from typing import Any, Iterable, Optional, Sequence

from contentwizard.llm.client import CompletionClient, LLMError
from contentwizard.llm.prompts import (
    DEFAULT_COMPONENT_TYPES,
    build_corpus,
    build_generation_messages,
    build_refinement_messages,
)
from contentwizard.models.config import WizardConfig
from contentwizard.models.context import AIContext
from contentwizard.models.document import ProcessedDocument, ProcessedWebpage
from contentwizard.models.plan import ContentPlan, PlanSection, PlanStatus, RefinementEntry
from contentwizard.services.exceptions import PlanGenerationError
from contentwizard.utils.logging import get_logger


logger = get_logger(__name__)

_FENCE_RE = re.compile(r"^```(?:json)?\s*\n?(.*?)\n?```$", re.DOTALL | re.IGNORECASE)

DEFAULT_AUDIENCE = "General audience"
DEFAULT_SECTION_TITLE = "Untitled Section"
DEFAULT_REFINEMENT_RESPONSE = "Plan refined based on instructions."


class PlanGenerator:
    """Builds content plans from sources and refines them on request."""

    def __init__(self, client: CompletionClient, config: Optional[WizardConfig] = None):
        self.client = client
        self.config = config or WizardConfig()

    @property
    def max_refinement_iterations(self) -> int:
        return self.config.max_refinement_iterations

    def _error(self, message: str) -> PlanGenerationError:
        return PlanGenerationError(
            message, ai_provider=self.client.provider_id, ai_model=self.client.model
        )

    def generate(
        self,
        documents: Sequence[ProcessedDocument],
        contexts: Iterable[AIContext] = (),
        template_id: Optional[str] = None,
        options: Optional[dict[str, Any]] = None,
        webpages: Sequence[ProcessedWebpage] = (),
    ) -> ContentPlan:
        """
        Generate a plan from processed sources.

        Returns:
            A new plan in READY status

        Raises:
            PlanGenerationError: If there are no sources, the AI call fails, or
                the response is unusable
        """
        if not documents and not webpages:
            raise self._error("At least one processed document is required to generate a plan")

        corpus = build_corpus(documents, webpages)
        context_block = AIContext.combine_for_prompt(contexts)
        messages = build_generation_messages(corpus, context_block, template_id, options)

        logger.info(
            "plan_generation_started",
            document_count=len(documents),
            webpage_count=len(webpages),
            template_id=template_id,
            provider=self.client.provider_id,
            model=self.client.model,
        )

        data = self._request_json(messages, stage="plan_generation")
        plan = self._parse_plan(
            data,
            source_document_ids=[document.id for document in documents],
            template_id=template_id,
        )

        logger.info(
            "plan_generated",
            plan_id=plan.id,
            section_count=plan.total_section_count,
            word_count=plan.total_word_count,
        )
        return plan

    def can_refine(self, plan: ContentPlan) -> bool:
        """Refinement enabled, status allows it, and the iteration cap is not reached."""
        return (
            self.config.enable_refinement
            and plan.status.can_refine()
            and plan.refinement_count < self.max_refinement_iterations
        )

    def refine(
        self,
        plan: ContentPlan,
        instructions: str,
        contexts: Iterable[AIContext] = (),
        user_id: Optional[str] = None,
        component_types: Optional[Iterable[str]] = None,
    ) -> ContentPlan:
        """
        Produce a refined copy of plan following free-text instructions.

        The result keeps the plan's id, status, generation time, sources and
        template, and its history gains exactly one RefinementEntry. The
        input plan is never modified.

        Raises:
            PlanGenerationError: If instructions are empty, refinement is not
                allowed for this plan, or the AI call fails
        """
        instructions = (instructions or "").strip()
        if not instructions:
            raise self._error("Refinement instructions cannot be empty")

        if not self.can_refine(plan):
            reason = self._refine_rejection_reason(plan)
            logger.warning("plan_refinement_rejected", plan_id=plan.id, reason=reason)
            raise self._error(f"This plan cannot be refined: {reason}")

        context_block = AIContext.combine_for_prompt(contexts)
        messages = build_refinement_messages(
            plan, instructions, context_block, component_types or DEFAULT_COMPONENT_TYPES
        )

        logger.info(
            "plan_refinement_started",
            plan_id=plan.id,
            iteration=plan.refinement_count + 1,
            provider=self.client.provider_id,
            model=self.client.model,
        )

        data = self._request_json(messages, stage="plan_refinement")
        refined = self._parse_plan(
            data,
            source_document_ids=plan.source_document_ids,
            template_id=plan.template_id,
        )

        affected = data.get("affected_sections")
        if not isinstance(affected, list) or not all(isinstance(a, str) for a in affected):
            affected = diff_section_ids(plan, refined)

        response = data.get("refinement_summary")
        if not isinstance(response, str) or not response.strip():
            response = DEFAULT_REFINEMENT_RESPONSE

        entry = RefinementEntry.create(
            instructions=instructions,
            response=response.strip(),
            affected_sections=affected,
            user_id=user_id,
        )
        result = plan.with_revision(refined).with_refinement(entry)

        logger.info(
            "plan_refined",
            plan_id=result.id,
            refinement_count=result.refinement_count,
            affected_sections=len(affected),
        )
        return result

    def _refine_rejection_reason(self, plan: ContentPlan) -> str:
        if not self.config.enable_refinement:
            return "refinement is disabled"
        if not plan.status.can_refine():
            return f"plan status is '{plan.status.label}'"
        return f"the limit of {self.max_refinement_iterations} refinements has been reached"

    def _request_json(self, messages: list[dict[str, str]], stage: str) -> dict[str, Any]:
        """
        Call the AI and parse a JSON object from its reply.

        Unparseable replies are retried up to config.max_retries attempts in
        total; transport errors fail immediately.
        """
        attempts = self.config.max_retries
        last_error: Optional[Exception] = None

        for attempt in range(1, attempts + 1):
            try:
                text = self.client.complete(messages, stage=stage)
            except LLMError as e:
                logger.error(
                    "plan_ai_call_failed",
                    stage=stage,
                    provider=self.client.provider_id,
                    model=self.client.model,
                    error=str(e),
                )
                raise self._error(f"AI request failed: {e}") from e

            try:
                return parse_json_response(text)
            except ValueError as e:
                last_error = e
                logger.warning(
                    "plan_response_unparseable",
                    stage=stage,
                    attempt=attempt,
                    max_attempts=attempts,
                    error=str(e),
                )

        logger.error("plan_response_retries_exhausted", stage=stage, attempts=attempts)
        raise self._error(
            f"AI response could not be parsed after {attempts} attempts: {last_error}"
        ) from last_error

    def _parse_plan(
        self,
        data: dict[str, Any],
        source_document_ids: list[str],
        template_id: Optional[str],
    ) -> ContentPlan:
        for key in ("title", "summary"):
            value = data.get(key)
            if not isinstance(value, str) or not value.strip():
                raise self._error(f"AI response is missing required field '{key}'")

        raw_sections = data.get("sections")
        if not isinstance(raw_sections, list) or not raw_sections:
            raise self._error("AI response is missing required field 'sections'")

        used_ids: set[str] = set()
        sections = [
            self._parse_section(raw, index, used_ids, prefix="section")
            for index, raw in enumerate(raw_sections)
        ]

        audience = data.get("target_audience")
        if not isinstance(audience, str) or not audience.strip():
            audience = DEFAULT_AUDIENCE

        plan = ContentPlan.create(
            title=data["title"].strip(),
            summary=data["summary"].strip(),
            sections=sections,
            target_audience=audience.strip(),
            status=PlanStatus.READY,
            source_document_ids=source_document_ids,
            template_id=template_id,
        )

        read_time = _as_int(data.get("estimated_read_time"))
        if read_time is None or read_time <= 0:
            read_time = max(1, plan.computed_read_time(self.config.words_per_minute))
        return plan.with_estimated_read_time(read_time)

    def _parse_section(
        self, raw: Any, index: int, used_ids: set[str], prefix: str
    ) -> PlanSection:
        if not isinstance(raw, dict):
            raise self._error(f"Section {index + 1} in AI response is not an object")

        section_id = raw.get("id")
        if not isinstance(section_id, str) or not section_id.strip():
            section_id = f"{prefix}_{index + 1:03d}"
        section_id = _unique_id(section_id.strip(), used_ids)

        title = raw.get("title")
        content = raw.get("content")
        component_type = raw.get("component_type")
        config = raw.get("component_config")
        order = _as_int(raw.get("order"))

        raw_children = raw.get("children")
        children = []
        if isinstance(raw_children, list):
            children = [
                self._parse_section(child, child_index, used_ids, prefix=section_id)
                for child_index, child in enumerate(raw_children)
            ]

        return PlanSection(
            id=section_id,
            title=title.strip() if isinstance(title, str) and title.strip() else DEFAULT_SECTION_TITLE,
            content=content if isinstance(content, str) else "",
            component_type=component_type.strip() if isinstance(component_type, str) and component_type.strip() else "text",
            order=order if order is not None else index + 1,
            component_config=config if isinstance(config, dict) else {},
            children=children,
        )


def parse_json_response(text: str) -> dict[str, Any]:
    """
    Parse a JSON object from an AI reply, tolerating a Markdown code fence.

    Raises:
        ValueError: If the text is not a JSON object
    """
    cleaned = (text or "").strip()
    match = _FENCE_RE.match(cleaned)
    if match:
        cleaned = match.group(1).strip()
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        preview = cleaned[:200] + "..." if len(cleaned) > 200 else cleaned
        raise ValueError(f"Invalid JSON ({e.msg}): {preview}") from e
    if not isinstance(data, dict):
        raise ValueError("Expected a JSON object at the top level")
    return data


def diff_section_ids(before: ContentPlan, after: ContentPlan) -> list[str]:
    """Ids of sections added, removed or changed between two plans, sorted."""
    old = {section.id: section for section in before.iter_sections()}
    new = {section.id: section for section in after.iter_sections()}
    changed = set(old) ^ set(new)
    for section_id in set(old) & set(new):
        a, b = old[section_id], new[section_id]
        if (a.title, a.content, a.component_type, a.order, a.component_config) != (
            b.title, b.content, b.component_type, b.order, b.component_config
        ):
            changed.add(section_id)
    return sorted(changed)


def _unique_id(candidate: str, used: set[str]) -> str:
    section_id = candidate
    suffix = 2
    while section_id in used:
        section_id = f"{candidate}_{suffix}"
        suffix += 1
    used.add(section_id)
    return section_id


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None
