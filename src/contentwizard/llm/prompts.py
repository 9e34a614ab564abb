"""Prompt builders for content plan generation and refinement.

All prompt text the wizard sends to the AI collaborator is assembled here.
"""

import json
from textwrap import dedent
from typing import Any, Dict, Iterable, List, Optional

from contentwizard.models.document import ProcessedDocument, ProcessedWebpage
from contentwizard.models.plan import ContentPlan

DOCUMENT_SEPARATOR = "\n\n---\n\n"
JSON_ONLY_INSTRUCTION = "Respond with only valid JSON, no additional text."
DEFAULT_COMPONENT_TYPES = ("heading", "text", "rich_text", "image", "list", "quote", "callout")

_SECTION_SCHEMA = """\
{{
      "id": "string - {id_hint}",
      "title": "string - Section heading",
      "content": "string - The planned content for this section",
      "component_type": "string - One of: {component_types}",
      "order": "integer - Display order among siblings (starting from 1)",
      "component_config": "object - Optional component configuration (e.g. heading_level)",
      "children": "array - Nested child sections (same structure)"
    }}"""


def build_corpus(
    documents: Iterable[ProcessedDocument],
    webpages: Iterable[ProcessedWebpage] = (),
) -> str:
    """Combine every source into one Markdown corpus."""
    blocks = [
        f"## Document: {document.file_name}\n\n{document.markdown_content}"
        for document in documents
    ]
    blocks.extend(
        f"## Webpage: {webpage.title or webpage.url} ({webpage.url})\n\n{webpage.markdown_content}"
        for webpage in webpages
    )
    return DOCUMENT_SEPARATOR.join(blocks)


def _section_schema(component_types: Iterable[str], preserve_ids: bool) -> str:
    id_hint = (
        "Section identifier (preserve existing IDs when possible)"
        if preserve_ids
        else "Unique section identifier (e.g., section_001)"
    )
    return _SECTION_SCHEMA.format(id_hint=id_hint, component_types=", ".join(component_types))


def build_generation_messages(
    corpus: str,
    context_block: str = "",
    template_id: Optional[str] = None,
    options: Optional[Dict[str, Any]] = None,
) -> List[Dict[str, str]]:
    """Build the chat messages for initial plan generation.

    Args:
        corpus: Combined source text (see build_corpus)
        context_block: Enabled AI contexts, already combined by priority
        template_id: Target template, mentioned so the plan fits its layout
        options: tone, max_sections, target_audience, component_types

    Returns:
        List of message dicts for the chat completion API
    """
    options = options or {}
    component_types = options.get("component_types") or DEFAULT_COMPONENT_TYPES

    guidelines = [
        "Base every section on the provided documents; do not invent facts.",
        "Give each section a clear heading and self-contained content.",
        "Choose the component_type that best presents each section.",
        "Nest sections only when the content is genuinely hierarchical.",
    ]
    if options.get("max_sections"):
        guidelines.append(f"Use at most {int(options['max_sections'])} top-level sections.")
    if options.get("tone"):
        guidelines.append(f"Write in a {options['tone']} tone.")
    if options.get("target_audience"):
        guidelines.append(f"Write for this audience: {options['target_audience']}.")
    if template_id:
        guidelines.append(
            f"The plan will fill the components of template '{template_id}' in order, "
            "so list sections in the order they should appear on the page."
        )

    system_prompt = dedent("""
        You are a content planning assistant specializing in creating structured
        content plans for web pages. Analyze the provided documents and create a
        content plan.

        Return a JSON object with this structure:
        {{
          "title": "string - The suggested page title",
          "summary": "string - A 2-3 sentence summary of the planned content",
          "target_audience": "string - Description of the intended audience",
          "estimated_read_time": "integer - Estimated reading time in minutes",
          "sections": [
            {section}
          ]
        }}
    """).strip().format(section=_section_schema(component_types, preserve_ids=False))
    system_prompt += "\n\nGuidelines:\n" + "\n".join(f"- {line}" for line in guidelines)

    user_prompt = f"Source documents:\n\n{corpus}"
    if context_block:
        user_prompt += f"\n\nAdditional context:\n\n{context_block}"
    user_prompt += f"\n\n{JSON_ONLY_INSTRUCTION}"

    return [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": user_prompt},
    ]


def build_refinement_messages(
    plan: ContentPlan,
    instructions: str,
    context_block: str = "",
    component_types: Iterable[str] = DEFAULT_COMPONENT_TYPES,
) -> List[Dict[str, str]]:
    """Build the chat messages for refining an existing plan.

    The current plan is sent as JSON; the model must answer with a complete
    replacement plan plus a refinement summary and the ids it changed.
    """
    system_prompt = dedent("""
        You are a content planning assistant helping to refine an existing
        content plan based on user feedback.

        Return the COMPLETE updated plan as a JSON object with this structure:
        {{
          "title": "string - The page title (updated if requested)",
          "summary": "string - Updated summary",
          "target_audience": "string - Target audience",
          "estimated_read_time": "integer - Estimated reading time in minutes",
          "sections": [
            {section}
          ],
          "refinement_summary": "string - Brief description of changes made",
          "affected_sections": ["ids of sections that were added, changed or removed"]
        }}

        Guidelines:
        - Apply the instructions and keep everything else as it is.
        - Keep the ids of sections you did not remove.
        - Return every section, not only the changed ones.
    """).strip().format(section=_section_schema(component_types, preserve_ids=True))

    current_plan = {
        "title": plan.title,
        "summary": plan.summary,
        "target_audience": plan.target_audience,
        "estimated_read_time": plan.estimated_read_time,
        "sections": [section.to_dict() for section in plan.sections],
    }
    user_prompt = (
        f"Current plan:\n{json.dumps(current_plan, indent=2, ensure_ascii=False)}\n\n"
        f"Refinement instructions:\n{instructions}"
    )
    if context_block:
        user_prompt += f"\n\nAdditional context:\n\n{context_block}"
    user_prompt += f"\n\n{JSON_ONLY_INSTRUCTION}"

    return [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": user_prompt},
    ]
