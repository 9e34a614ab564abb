"""Component type labels for user-facing choices.

Only used to present options; the mapping engine never consults it.
"""

from typing import Optional

from contentwizard.models.template import Page

BUILTIN_COMPONENT_TYPES = {
    "text": "Text",
    "heading": "Heading",
    "image": "Image",
    "accordion": "Accordion",
    "card": "Card",
    "list": "List",
    "quote": "Quote",
    "table": "Table",
    "hero": "Hero",
    "cta": "Call to Action",
}

TEMPLATE_MARKER = " ★"


class ComponentCatalog:
    """Lists component types, marking the ones a template actually uses."""

    def __init__(self, builtin: Optional[dict[str, str]] = None):
        self.builtin = dict(BUILTIN_COMPONENT_TYPES if builtin is None else builtin)

    def list_component_types(self, template: Optional[Page] = None) -> dict[str, str]:
        """Component type id -> label, sorted by label."""
        types = dict(self.builtin)
        if template is not None:
            for component in template.walk():
                type_id = component.component_type
                label = types.get(type_id) or component.label or type_id.replace("_", " ").title()
                types[type_id] = label.removesuffix(TEMPLATE_MARKER) + TEMPLATE_MARKER
        return dict(sorted(types.items(), key=lambda item: item[1].lower()))
