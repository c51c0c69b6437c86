"""Local LLM helpers."""

from handoff_core.infrastructure.llm.ollama_summarizer import OllamaSummarizer

__all__ = ["OllamaSummarizer"]
