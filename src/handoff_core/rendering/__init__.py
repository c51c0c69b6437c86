"""Markdown rendering of escalations."""

from handoff_core.rendering.template_engine import ESCALATION_MARKDOWN, MarkdownRenderer

__all__ = ["ESCALATION_MARKDOWN", "MarkdownRenderer"]
