import enum
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError

from statement_categorizer.core.rate_limit import RateLimiter
from statement_categorizer.domain.categories import UNCATEGORIZED, is_uncategorized
from statement_categorizer.integration.ai_client import AIClient
from statement_categorizer.integration.prompts import allowed_categories
from statement_categorizer.logger import get_logger
from statement_categorizer.models import CategorizationResult, Category, Transaction

from statement_categorizer.strategies.base import CategorizationStrategy

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0
AI_CONFIDENCE = 0.8

_LABEL_PREFIXES = ("category:", "catégorie:", "categorie:")
_QUOTES = "\"'`"
_JUNK_ANSWERS = {"", "unknown", "categories", "category", "none", "n/a"}

# Lower-case synonym -> canonical category name.
CATEGORY_SYNONYMS: dict[str, str] = {
    "food": "Groceries",
    "grocery": "Groceries",
    "supermarket": "Groceries",
    "courses": "Groceries",
    "alimentation": "Groceries",
    "restaurant": "Restaurants",
    "dining": "Restaurants",
    "transport": "Public Transport",
    "public transit": "Public Transport",
    "transports publics": "Public Transport",
    "train": "Public Transport",
    "bus": "Public Transport",
    "car": "Car",
    "fuel": "Car",
    "gas": "Car",
    "parking": "Car",
    "voiture": "Car",
    "retail": "Shopping",
    "clothes": "Shopping",
    "clothing": "Shopping",
    "electronics": "Shopping",
    "medical": "Health",
    "doctor": "Health",
    "pharmacy": "Health",
    "santé": "Health",
    "subscription": "Subscriptions",
    "abonnements": "Subscriptions",
    "assurances": "Insurance",
    "fees": "Bank Fees",
    "frais bancaires": "Bank Fees",
    "income": "Salary",
    "salaire": "Salary",
    "rent": "Housing",
    "logement": "Housing",
    "utilités": "Utilities",
    "phone": "Utilities",
    "internet": "Utilities",
    "electricity": "Utilities",
    "movies": "Entertainment",
    "divertissement": "Entertainment",
    "loisirs": "Leisure",
    "hobbies": "Leisure",
    "sports": "Sport",
    "gym": "Sport",
    "fitness": "Sport",
    "vacation": "Travel",
    "vacances": "Travel",
    "hotel": "Travel",
    "kids": "Children",
    "enfants": "Children",
    "school": "Education",
    "gift": "Gifts",
    "cadeaux": "Gifts",
    "donation": "Donations",
    "charity": "Donations",
    "tax": "Taxes",
    "impôts": "Taxes",
    "investment": "Investments",
    "mobilier": "Furniture",
    "appliances": "Home Equipment",
    "withdrawal": "Cash Withdrawals",
    "cash": "Cash Withdrawals",
    "transfer": "Transfers",
    "virements": "Transfers",
    "retirement": "Pension",
    "other": UNCATEGORIZED,
    "non classé": UNCATEGORIZED,
}


class AIStrategyState(enum.Enum):
    DISABLED = "disabled"
    ACTIVE = "active"


def _strip_quotes(text: str) -> str:
    return text.strip().strip(_QUOTES).strip()


def clean_category_response(response: str | None, categories: Sequence[str]) -> str:
    """
    Normalize a raw provider answer to a category name.

    Returns an empty string for junk answers. Otherwise resolves, in order: exact
    case-insensitive canonical name, known synonym, longest canonical name contained
    in the answer, and finally the cleaned answer unchanged.
    """
    text = _strip_quotes(response or "")

    lowered = text.lower()
    for prefix in _LABEL_PREFIXES:
        if lowered.startswith(prefix):
            text = _strip_quotes(text[len(prefix):])
            break

    for line in text.splitlines():
        if line.strip():
            text = _strip_quotes(line)
            break

    text = text.rstrip(".").strip()
    lowered = text.lower()
    if lowered in _JUNK_ANSWERS:
        return ""

    for name in categories:
        if name.lower() == lowered:
            return name

    if lowered in CATEGORY_SYNONYMS:
        return CATEGORY_SYNONYMS[lowered]

    best_match = ""
    for name in categories:
        if name.lower() in lowered and len(name) > len(best_match):
            best_match = name
    if best_match:
        return best_match

    return text


class AIStrategy(CategorizationStrategy):
    """
    Last-resort strategy asking an external completion service for a category.

    Without a client the strategy is DISABLED and never touches the network.
    Every live call goes through the rate limiter and is abandoned after
    ``timeout`` seconds.
    """

    name = "AI"

    def __init__(
        self,
        client: AIClient | None,
        *,
        categories: Sequence[str] = (),
        rate_limiter: RateLimiter | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.client = client
        self.categories = allowed_categories(categories)
        self.rate_limiter = rate_limiter or RateLimiter()
        self.timeout = timeout
        self._executor: ThreadPoolExecutor | None = None
        if client is not None:
            self._executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="ai-call")

    @property
    def state(self) -> AIStrategyState:
        if self.client is None or self._executor is None:
            return AIStrategyState.DISABLED
        return AIStrategyState.ACTIVE

    def set_categories(self, categories: Sequence[str]) -> None:
        self.categories = allowed_categories(categories)

    def classify(self, transaction: Transaction) -> CategorizationResult | None:
        if self.state is AIStrategyState.DISABLED:
            logger.debug(
                "[AI] Client not available, skipping '%s'",
                transaction.party_name,
                extra={"strategy": self.name, "party": transaction.party_name},
            )
            return None

        if not transaction.party_name.strip():
            return None

        raw = self._call_client(transaction)
        if raw is None:
            return None

        category_name = clean_category_response(raw, self.categories)
        if is_uncategorized(category_name):
            logger.debug(
                "[AI] No usable category for '%s' (answer: '%s')",
                transaction.party_name,
                raw,
                extra={"strategy": self.name, "party": transaction.party_name},
            )
            return None

        logger.info(
            "[AI] '%s' -> '%s' (answer: '%s')",
            transaction.party_name,
            category_name,
            raw,
            extra={"strategy": self.name, "party": transaction.party_name, "category": category_name},
        )
        return CategorizationResult(
            category=Category.from_name(category_name),
            confidence=AI_CONFIDENCE,
            source=self.name,
        )

    def _call_client(self, transaction: Transaction) -> str | None:
        client, executor = self.client, self._executor
        if client is None or executor is None:
            return None

        self.rate_limiter.wait()
        future = executor.submit(client.categorize, transaction)
        try:
            categorized = future.result(timeout=self.timeout)
        except FutureTimeoutError:
            future.cancel()
            logger.warning(
                "[AI] Request for '%s' timed out after %.1fs",
                transaction.party_name,
                self.timeout,
                extra={"strategy": self.name, "party": transaction.party_name},
            )
            return None
        except Exception as exc:
            logger.warning(
                "[AI] Categorization failed for '%s': %s",
                transaction.party_name,
                exc,
                extra={"strategy": self.name, "party": transaction.party_name},
            )
            return None

        return categorized.category

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None
