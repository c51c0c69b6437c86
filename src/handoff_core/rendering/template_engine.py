"""Markdown rendering for escalations.

Builds the comment text posted to the ticket from the escalation fields and,
when one was used, the troubleshooting template.
"""

import logging
from typing import Any, Dict, Optional

import jinja2

from handoff_core.errors import TemplateRenderError
from handoff_core.models import EscalationInput, Template

logger = logging.getLogger(__name__)

ESCALATION_MARKDOWN = """\
## Escalation: {{ ticket_id }}
{% if template %}
**Template:** {{ template.name }}{{ " | **L2 Team:** " ~ template.l2_team if template.l2_team else "" }}
{% endif %}

### Problem Summary
{{ problem_summary }}

### Troubleshooting Steps
{% for item in checklist %}
- [{{ "x" if item.checked else " " }}] {{ item.text }}
{% endfor %}

### Current Status
{{ current_status }}

### Next Steps
{{ next_steps }}
{% if llm_summary %}

### AI Summary
{{ llm_summary }}
(Confidence: {{ llm_confidence or "Unknown" }})
{% endif %}
"""


class MarkdownRenderer:
    """Renders an escalation into markdown.

    The output is deterministic for a given input, so callers may cache it.
    """

    def __init__(self, source: str = ESCALATION_MARKDOWN, jinja_env: Optional[jinja2.Environment] = None):
        self.env = jinja_env or jinja2.Environment(
            undefined=jinja2.StrictUndefined,
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        try:
            self._template = self.env.from_string(source)
        except jinja2.TemplateError as e:
            raise TemplateRenderError(f"Invalid escalation template: {e}") from e

    @staticmethod
    def build_context(template: Optional[Template], data: EscalationInput) -> Dict[str, Any]:
        return {
            "ticket_id": data.ticket_id,
            "template": template.model_dump() if template else None,
            "problem_summary": data.problem_summary,
            "checklist": [item.model_dump() for item in data.checklist],
            "current_status": data.current_status,
            "next_steps": data.next_steps,
            "llm_summary": data.llm_summary,
            "llm_confidence": data.llm_confidence,
        }

    def render(self, template: Optional[Template], data: EscalationInput) -> str:
        """Render markdown for an escalation.

        Raises:
            TemplateRenderError: If rendering fails
        """
        try:
            markdown = self._template.render(**self.build_context(template, data))
        except jinja2.TemplateError as e:
            raise TemplateRenderError(f"Failed to render escalation {data.ticket_id}: {e}") from e

        logger.debug(f"Rendered {len(markdown)} chars of markdown for {data.ticket_id}")
        return markdown
