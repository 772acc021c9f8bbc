import threading

from statement_categorizer.integration.store import CategoryStore
from statement_categorizer.logger import get_logger
from statement_categorizer.models import CategorizationResult, Category, Transaction

from statement_categorizer.strategies.base import CategorizationStrategy

logger = get_logger(__name__)


def normalize_party(name: str) -> str:
    return name.strip().lower()


def _normalized(mappings: dict[str, str]) -> dict[str, str]:
    return {normalize_party(key): value for key, value in mappings.items() if key.strip()}


class DirectMappingStrategy(CategorizationStrategy):
    """
    Exact, case-insensitive party name lookup in the creditor or debtor table.

    The live tables are never mutated in place: every write builds a new dict and
    swaps the reference under ``_lock``, so readers only ever see complete tables.
    """

    name = "DirectMapping"

    def __init__(self, store: CategoryStore):
        self.store = store
        self._lock = threading.Lock()
        self._creditor_mappings: dict[str, str] = {}
        self._debtor_mappings: dict[str, str] = {}
        self._load_mappings()

    def classify(self, transaction: Transaction) -> CategorizationResult | None:
        party = normalize_party(transaction.party_name)
        if not party:
            return None

        # Reference reads are atomic; a concurrent swap leaves this snapshot intact.
        if transaction.is_debtor:
            mappings, mapping_type = self._debtor_mappings, "debtor"
        else:
            mappings, mapping_type = self._creditor_mappings, "creditor"

        category_name = mappings.get(party)
        if not category_name:
            return None

        logger.debug(
            "[DIRECT] '%s' -> '%s' (%s mapping)",
            transaction.party_name,
            category_name,
            mapping_type,
            extra={
                "strategy": self.name,
                "party": transaction.party_name,
                "category": category_name,
                "mapping_type": mapping_type,
            },
        )
        return CategorizationResult(
            category=Category.from_name(category_name),
            confidence=1.0,
            source=self.name,
        )

    def _load_mappings(self) -> None:
        creditors = self._load_table("creditor", self.store.load_creditor_mappings)
        debtors = self._load_table("debtor", self.store.load_debtor_mappings)

        with self._lock:
            if creditors is not None:
                self._creditor_mappings = creditors
            if debtors is not None:
                self._debtor_mappings = debtors

    @staticmethod
    def _load_table(label: str, loader) -> dict[str, str] | None:
        try:
            mappings = _normalized(loader())
        except Exception as exc:
            logger.warning("[DIRECT] Failed to load %s mappings: %s", label, exc)
            return None
        logger.debug(
            "[DIRECT] Loaded %d %s mappings",
            len(mappings),
            label,
            extra={"count": len(mappings)},
        )
        return mappings

    def reload_mappings(self) -> None:
        """
        Rebuild both tables from the store and publish them in one swap.
        A table whose load fails keeps its previous contents.
        """
        self._load_mappings()

    def update_creditor_mapping(self, party_name: str, category_name: str) -> bool:
        return self._update("creditor", party_name, category_name)

    def update_debtor_mapping(self, party_name: str, category_name: str) -> bool:
        return self._update("debtor", party_name, category_name)

    def _update(self, mapping_type: str, party_name: str, category_name: str) -> bool:
        """Returns True when the table changed."""
        key = normalize_party(party_name)
        if not key:
            return False

        with self._lock:
            current = self._debtor_mappings if mapping_type == "debtor" else self._creditor_mappings
            if current.get(key) == category_name:
                return False
            updated = dict(current)
            updated[key] = category_name
            if mapping_type == "debtor":
                self._debtor_mappings = updated
            else:
                self._creditor_mappings = updated
        return True

    def get_creditor_category(self, party_name: str) -> str | None:
        return self._creditor_mappings.get(normalize_party(party_name))

    def get_debtor_category(self, party_name: str) -> str | None:
        return self._debtor_mappings.get(normalize_party(party_name))

    def creditor_mappings(self) -> dict[str, str]:
        return dict(self._creditor_mappings)

    def debtor_mappings(self) -> dict[str, str]:
        return dict(self._debtor_mappings)
