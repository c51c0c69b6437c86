"""
Local LLM summarizer.

This module turns a troubleshooting checklist into a short structured summary
using a self-hosted Ollama server. The confidence label is derived from the
checklist itself, not from the model.
"""

import asyncio
import logging
from typing import List, Sequence, Tuple

import aiohttp

from handoff_core.errors import SummarizerError
from handoff_core.models import ChecklistItem, SummaryResult

PROMPT_TEMPLATE = """You are summarizing troubleshooting steps for an L2 support engineer.

Given the following problem and checklist of troubleshooting steps, generate a structured summary.

Problem: {problem}

Troubleshooting checklist:
{checklist}

Generate output in exactly this format:

✓ Completed steps:
- [step description]

✗ Steps not attempted:
- [step description]

? Recommendations for L2:
- [what L2 should investigate next]

Keep it concise. Only include steps from the checklist above. Do not invent steps."""


class OllamaSummarizer:
    """Summarizer backed by an Ollama server"""

    def __init__(self, endpoint: str = "http://localhost:11434", model: str = "llama3", timeout: float = 30.0):
        self.endpoint = endpoint.rstrip("/")
        self.model = model
        self.timeout = timeout
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    async def is_available(self) -> bool:
        """Check whether the Ollama server answers; never raises."""
        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(
                    f"{self.endpoint}/api/tags",
                    timeout=aiohttp.ClientTimeout(total=5),
                ) as response:
                    return response.status == 200
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.logger.debug(f"Ollama not reachable at {self.endpoint}: {e}")
            return False

    async def summarize(self, checklist: Sequence[ChecklistItem], problem: str) -> SummaryResult:
        """Generate a summary of the checklist.

        Raises:
            SummarizerError: Server unreachable (transient) or returned an error
        """
        payload = {
            "model": self.model,
            "prompt": self.build_prompt(checklist, problem),
            "stream": False,
        }

        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    f"{self.endpoint}/api/generate",
                    json=payload,
                    timeout=aiohttp.ClientTimeout(total=self.timeout),
                ) as response:

                    if response.status != 200:
                        error_text = await response.text()
                        raise SummarizerError(
                            f"Ollama API error {response.status}: {error_text}",
                            transient=response.status >= 500,
                            status_code=response.status,
                        )

                    data = await response.json()
        except asyncio.TimeoutError as e:
            raise SummarizerError(f"Ollama request timed out after {self.timeout}s", transient=True) from e
        except aiohttp.ClientConnectionError as e:
            raise SummarizerError(f"Ollama connection failed: {e}", transient=True) from e
        except aiohttp.ClientError as e:
            raise SummarizerError(f"Ollama request failed: {e}") from e

        content = (data.get("response") or "").strip()
        if not content:
            raise SummarizerError("Ollama API returned no response content")

        confidence, reason = self.calculate_confidence(checklist)
        self.logger.info(f"Generated summary with {self.model} ({len(content)} chars, confidence={confidence})")

        return SummaryResult(summary=content, confidence=confidence, confidence_reason=reason)

    @staticmethod
    def build_prompt(checklist: Sequence[ChecklistItem], problem: str) -> str:
        lines: List[str] = []
        for item in checklist:
            checkbox = "[x]" if item.checked else "[ ]"
            lines.append(f"- {checkbox} {item.text}")
        return PROMPT_TEMPLATE.format(problem=problem, checklist="\n".join(lines))

    @staticmethod
    def calculate_confidence(checklist: Sequence[ChecklistItem]) -> Tuple[str, str]:
        """
        Confidence heuristic:
        - High: 5+ items, 60%+ checked
        - Medium: 3-4 items, or 5+ items with <60% checked
        - Low: fewer than 3 items
        """
        total = len(checklist)
        checked = sum(1 for item in checklist if item.checked)

        if total == 0:
            return "Low", "No troubleshooting steps provided"

        percentage = checked / total * 100

        if total >= 5 and percentage >= 60:
            return "High", f"Based on {total} checklist items, {checked} completed ({percentage:.0f}%)"
        if 3 <= total <= 4:
            return "Medium", f"Based on {total} checklist items, {checked} completed ({percentage:.0f}%)"
        if total >= 5:
            return "Medium", f"Based on {total} checklist items, only {checked} completed ({percentage:.0f}%)"
        return "Low", f"Only {total} checklist items provided"
