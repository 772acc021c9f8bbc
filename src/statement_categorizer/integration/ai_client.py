from collections.abc import Sequence
from typing import Protocol

from openai import OpenAI, OpenAIError

from statement_categorizer.integration.prompts import (
    SYSTEM_INSTRUCTIONS,
    allowed_categories,
    build_categorization_prompt,
)
from statement_categorizer.logger import get_logger
from statement_categorizer.models import Transaction

logger = get_logger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_EMBEDDING_MODEL = "text-embedding-3-small"


class AIClientError(Exception):
    """Raised when the AI provider cannot produce a usable answer."""


class AIClient(Protocol):
    def categorize(self, transaction: Transaction) -> Transaction:
        """Return a copy of ``transaction`` with ``category`` set to the provider answer."""
        ...

    def get_embedding(self, text: str) -> list[float]: ...


class OpenAIClient:
    """
    AI client for any OpenAI-compatible endpoint (OpenAI, Gemini's OpenAI
    compatibility layer, local servers) selected through ``base_url``.
    """

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        embedding_model: str = DEFAULT_EMBEDDING_MODEL,
        base_url: str | None = None,
        timeout: float = 30.0,
        categories: Sequence[str] = (),
    ):
        self.client = OpenAI(
            api_key=api_key,
            base_url=base_url or None,
            timeout=timeout,
            max_retries=1,
        )
        self.api_key = api_key
        self.model = model
        self.embedding_model = embedding_model
        self.categories = allowed_categories(categories)

    def set_categories(self, categories: Sequence[str]) -> None:
        self.categories = allowed_categories(categories)

    def categorize(self, transaction: Transaction) -> Transaction:
        prompt = build_categorization_prompt(transaction, self.categories)
        logger.debug(
            "[AI] Requesting category from %s (prompt length %d)",
            self.model,
            len(prompt),
            extra={"party": transaction.party_name},
        )
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_INSTRUCTIONS},
                    {"role": "user", "content": prompt},
                ],
                temperature=0.0,
            )
        except OpenAIError as exc:
            raise AIClientError(f"Completion request failed: {exc}") from exc

        answer = self._extract_answer(response)
        if answer is None:
            raise AIClientError("No content in completion response")
        return transaction.model_copy(update={"category": answer.strip()})

    def get_embedding(self, text: str) -> list[float]:
        try:
            response = self.client.embeddings.create(model=self.embedding_model, input=text)
        except OpenAIError as exc:
            raise AIClientError(f"Embedding request failed: {exc}") from exc

        data = getattr(response, "data", None) or []
        if not data or not data[0].embedding:
            raise AIClientError("Empty embedding returned")
        return [float(value) for value in data[0].embedding]

    @staticmethod
    def _extract_answer(response: object) -> str | None:
        choices = getattr(response, "choices", None)
        if not choices:
            return None
        message = getattr(choices[0], "message", None)
        content = getattr(message, "content", None)
        if not content:
            return None
        return content
