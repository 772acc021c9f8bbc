from collections.abc import Generator
from unittest.mock import MagicMock, patch

import pytest

from statement_categorizer.integration.ai_client import AIClientError, OpenAIClient
from statement_categorizer.integration.prompts import build_categorization_prompt
from statement_categorizer.models import Transaction


@pytest.fixture
def mock_openai_client() -> Generator[MagicMock, None, None]:
    with patch("statement_categorizer.integration.ai_client.OpenAI") as mock:
        yield mock


def test_categorize_returns_copy_with_answer(mock_openai_client: MagicMock) -> None:
    mock_instance = mock_openai_client.return_value
    mock_completion = MagicMock()
    mock_completion.choices[0].message.content = " Groceries \n"
    mock_instance.chat.completions.create.return_value = mock_completion

    client = OpenAIClient(api_key="sk-fake", model="gpt-4o-mini")
    t = Transaction(party_name="Coop Pronto", amount="15.50", is_debtor=True)

    categorized = client.categorize(t)

    assert categorized.category == "Groceries"
    assert t.category is None
    mock_instance.chat.completions.create.assert_called_once()
    kwargs = mock_instance.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "gpt-4o-mini"
    assert kwargs["temperature"] == 0.0
    assert "Party: Coop Pronto" in kwargs["messages"][1]["content"]


def test_categorize_empty_answer_raises(mock_openai_client: MagicMock) -> None:
    mock_completion = MagicMock()
    mock_completion.choices = []
    mock_openai_client.return_value.chat.completions.create.return_value = mock_completion

    client = OpenAIClient(api_key="sk-fake")

    with pytest.raises(AIClientError):
        client.categorize(Transaction(party_name="Coop"))


def test_get_embedding(mock_openai_client: MagicMock) -> None:
    item = MagicMock()
    item.embedding = [0.1, 0.2, 0.3]
    response = MagicMock()
    response.data = [item]
    mock_openai_client.return_value.embeddings.create.return_value = response

    client = OpenAIClient(api_key="sk-fake", embedding_model="text-embedding-3-small")

    assert client.get_embedding("Migros") == [0.1, 0.2, 0.3]
    mock_openai_client.return_value.embeddings.create.assert_called_once_with(
        model="text-embedding-3-small", input="Migros"
    )


def test_empty_embedding_raises(mock_openai_client: MagicMock) -> None:
    response = MagicMock()
    response.data = []
    mock_openai_client.return_value.embeddings.create.return_value = response

    with pytest.raises(AIClientError):
        OpenAIClient(api_key="sk-fake").get_embedding("Migros")


def test_prompt_lists_closed_categories() -> None:
    t = Transaction(party_name="SBB", description="Mobile ticket", info="POSD", amount="5.60", is_debtor=True)

    prompt = build_categorization_prompt(t, ["Groceries", "Public Transport", "Boats"])

    assert "- Public Transport (trains, buses, trams, SBB/CFF tickets)" in prompt
    assert "- Boats" in prompt
    assert "Description: Mobile ticket | POSD" in prompt
    assert "Type: Debit (spending)" in prompt
    assert "Respond with ONLY the category name" in prompt
