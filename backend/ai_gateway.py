"""
Gateway to the generative text service.

Each public call returns a well-defined fallback instead of raising, so callers
never see service-specific errors or response shapes.
"""
import json
import logging

import anthropic

import config
from models import Category, Task
from prompts import CATEGORIZE_PROMPT, SUBTASKS_PROMPT, PRIORITIZE_PROMPT

logger = logging.getLogger(__name__)


class AIServiceError(Exception):
    """Network, empty-response or parse failure talking to the AI service."""


def strip_code_fence(text: str) -> str:
    """Strip a markdown code block wrapper if present."""
    text = text.strip()
    if text.startswith("```"):
        lines = text.split("\n")
        lines = lines[1:]  # Remove first line (```json)
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]  # Remove last line (```)
        text = "\n".join(lines).strip()
    return text


def parse_string_array(text: str) -> list[str]:
    """Parse a JSON array of strings, raising AIServiceError on any other shape."""
    try:
        parsed = json.loads(strip_code_fence(text))
    except json.JSONDecodeError as e:
        raise AIServiceError(f"Malformed JSON in AI response: {e}") from e
    if not isinstance(parsed, list) or not all(isinstance(item, str) for item in parsed):
        raise AIServiceError("AI response is not a JSON array of strings")
    return parsed


class AIGateway:
    def __init__(
        self,
        client=None,
        model: str = config.MODEL_ID,
        max_tokens: int = config.MAX_TOKENS,
        tokens_per_task: int = config.TOKENS_PER_PRIORITIZED_TASK,
    ):
        self.client = client
        self.model = model
        self.max_tokens = max_tokens
        self.tokens_per_task = tokens_per_task

    async def _complete(self, prompt: str, max_tokens: int | None = None) -> str:
        """Send one instruction and return the non-empty, complete response text."""
        if self.client is None:
            raise AIServiceError("API key not configured")
        budget = max_tokens or self.max_tokens
        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=budget,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.APIError as e:
            raise AIServiceError(f"API error: {e}") from e

        if getattr(response, "stop_reason", None) == "max_tokens":
            raise AIServiceError(f"AI response truncated at max_tokens={budget}")
        try:
            text = response.content[0].text
        except (AttributeError, IndexError, TypeError) as e:
            raise AIServiceError("AI response has no text content") from e
        if not text or not text.strip():
            raise AIServiceError("Empty AI response")
        logger.debug("AI response: %s", text)
        return text

    async def categorize(self, text: str) -> Category:
        """Suggest a category for a task. Falls back to Personal."""
        categories = ", ".join(c.value for c in Category)
        try:
            answer = await self._complete(CATEGORIZE_PROMPT.format(text=text, categories=categories))
        except AIServiceError as e:
            logger.warning("Categorization failed: %s", e)
            return Category.PERSONAL
        return Category.from_label(strip_code_fence(answer))

    async def suggest_subtasks(self, text: str) -> list[str]:
        """
        Break a task down into a few actionable subtasks.
        An empty list means the suggestions could not be generated.
        """
        try:
            answer = await self._complete(SUBTASKS_PROMPT.format(text=text))
            return parse_string_array(answer)
        except AIServiceError as e:
            logger.warning("Failed to suggest subtasks: %s", e)
            return []

    def prioritize_budget(self, task_count: int) -> int:
        """Token budget for a prioritize answer listing task_count ids."""
        return max(self.max_tokens, 64 + self.tokens_per_task * task_count)

    async def prioritize(self, tasks: list[Task]) -> list[str]:
        """Suggest a priority order as a list of task ids. Falls back to the input order."""
        if not tasks:
            return []
        original_order = [t.id for t in tasks]
        simple_tasks = [
            {"id": t.id, "text": t.text, "category": t.category.value}
            for t in tasks
        ]
        try:
            answer = await self._complete(
                PRIORITIZE_PROMPT.format(tasks=json.dumps(simple_tasks)),
                max_tokens=self.prioritize_budget(len(tasks)),
            )
            return parse_string_array(answer)
        except AIServiceError as e:
            logger.warning("Prioritization failed: %s", e)
            return original_order


def build_gateway() -> AIGateway:
    """Gateway wired from configuration. Without an API key every call falls back."""
    if not config.api_key_configured():
        logger.warning("ANTHROPIC_API_KEY not configured; AI features will use fallbacks")
        return AIGateway(client=None)
    return AIGateway(client=anthropic.AsyncAnthropic(api_key=config.ANTHROPIC_API_KEY))
