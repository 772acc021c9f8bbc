from statement_categorizer.domain import categories as cats
from statement_categorizer.integration.store import CategoryStore
from statement_categorizer.logger import get_logger
from statement_categorizer.models import CategorizationResult, Category, CategoryConfig, Transaction

from statement_categorizer.strategies.base import CategorizationStrategy

logger = get_logger(__name__)

# Checked top to bottom, so more specific patterns come before generic ones.
MERCHANT_KEYWORDS: tuple[tuple[str, str], ...] = (
    # Transfers and banking
    ("VIRT BANC", cats.TRANSFERS),
    ("VIR TWINT", cats.TRANSFERS),
    ("CR TWINT", cats.TRANSFERS),
    ("ORDRE LSV", cats.TRANSFERS),
    ("TRANSFERT", cats.TRANSFERS),
    ("TRANSFER", cats.TRANSFERS),
    ("BCV-NET", cats.TRANSFERS),
    ("TWINT", cats.TRANSFERS),
    ("VIRT", cats.TRANSFERS),
    ("IMPOTS", cats.TAXES),
    ("STEUERVERWALTUNG", cats.TAXES),
    # Supermarkets and food shops
    ("MIGROLINO", cats.GROCERIES),
    ("MIGROS", cats.GROCERIES),
    ("COOP", cats.GROCERIES),
    ("ALDI", cats.GROCERIES),
    ("LIDL", cats.GROCERIES),
    ("DENNER", cats.GROCERIES),
    ("VOLG", cats.GROCERIES),
    ("BOUCHERIE", cats.GROCERIES),
    ("BOULANGERIE", cats.GROCERIES),
    ("KIOSK", cats.GROCERIES),
    # Restaurants
    ("RESTAURANT", cats.RESTAURANTS),
    ("PIZZERIA", cats.RESTAURANTS),
    ("SUSHI", cats.RESTAURANTS),
    ("KEBAB", cats.RESTAURANTS),
    ("RAMEN", cats.RESTAURANTS),
    ("MCDONALD", cats.RESTAURANTS),
    ("STARBUCKS", cats.RESTAURANTS),
    ("CAFE", cats.RESTAURANTS),
    # Transport
    ("SBB", cats.PUBLIC_TRANSPORT),
    ("CFF", cats.PUBLIC_TRANSPORT),
    ("PAYBYPHONE", cats.PUBLIC_TRANSPORT),
    ("TPG", cats.PUBLIC_TRANSPORT),
    ("MOBILITY", cats.CAR),
    ("PARKING", cats.CAR),
    # Leisure and sport
    ("PISCINE", cats.LEISURE),
    ("CINEMA", cats.ENTERTAINMENT),
    ("PILATUS", cats.LEISURE),
    ("ESCALADE", cats.SPORT),
    ("TOTEM", cats.SPORT),
    ("FITNESS", cats.SPORT),
    ("SPA ", cats.WELLNESS),
    # Shops
    ("IKEA", cats.FURNITURE),
    ("INTERDISCOUNT", cats.SHOPPING),
    ("OCHSNER", cats.SHOPPING),
    ("MAMMUT", cats.SHOPPING),
    ("MANOR", cats.SHOPPING),
    ("MULLER", cats.SHOPPING),
    ("BAZAR", cats.SHOPPING),
    ("PAYOT", cats.SHOPPING),
    ("CALIDA", cats.SHOPPING),
    ("WEBSHOP", cats.SHOPPING),
    ("ZALANDO", cats.SHOPPING),
    ("DIGITAL", cats.SHOPPING),
    # Services
    ("777-PRESSING", cats.SERVICES),
    ("PRESSING", cats.SERVICES),
    ("5ASEC", cats.SERVICES),
    ("CEMBRAPAY", cats.SERVICES),
    ("WINGO", cats.UTILITIES),
    ("ROMANDE ENERGIE", cats.UTILITIES),
    ("SWISSCOM", cats.UTILITIES),
    # Cash withdrawals
    ("RETRAIT", cats.CASH_WITHDRAWALS),
    ("WITHDRAWAL", cats.CASH_WITHDRAWALS),
    ("BANCOMAT", cats.CASH_WITHDRAWALS),
    ("ATM ", cats.CASH_WITHDRAWALS),
    # Insurance
    ("ASSURANCE MALADIE", cats.HEALTH_INSURANCE),
    ("AVENIR", cats.HEALTH_INSURANCE),
    ("ASSURANCE", cats.INSURANCE),
    ("VAUDOISE", cats.INSURANCE),
    ("GENERALI", cats.INSURANCE),
    # Financial
    ("SELMA_FEE", cats.BANK_FEES),
    ("VISECA", cats.SUBSCRIPTIONS),
    # Housing
    ("PUBLICA", cats.HOUSING),
    ("ASLOCA", cats.HOUSING),
)

BANK_CODE_CATEGORIES: tuple[tuple[str, str], ...] = (
    (cats.BANK_CODE_CASH_WITHDRAWAL, cats.CASH_WITHDRAWALS),
    (cats.BANK_CODE_POS, cats.SHOPPING),
    (cats.BANK_CODE_CREDIT_CARD, cats.SHOPPING),
    (cats.BANK_CODE_INTERNAL_CREDIT, cats.TRANSFERS),
    (cats.BANK_CODE_DIRECT_DEBIT, cats.TRANSFERS),
    ("RDDT", cats.TRANSFERS),
    ("AUTT", cats.TRANSFERS),
    ("RCDT", cats.TRANSFERS),
    ("PMNT", cats.TRANSFERS),
    ("RMDR", cats.SERVICES),
)

UNKNOWN_PARTY_MARKER = "UNKNOWN PAYEE"
CARD_PAYMENT_MARKERS = ("PMT CARTE", "PMT TWINT", "CARD PAYMENT", "RETRAIT", "WITHDRAWAL")


class KeywordStrategy(CategorizationStrategy):
    """
    Case-insensitive keyword search over the party name and the transaction info.

    Configured categories are tried first, in their declared order, then the
    unknown-payee card rule, the built-in merchant table and bank transaction codes.
    """

    name = "Keyword"

    def __init__(self, store: CategoryStore, *, use_builtin_patterns: bool = True):
        self.store = store
        self.use_builtin_patterns = use_builtin_patterns
        self.categories: list[CategoryConfig] = []
        self.reload_categories()

    def classify(self, transaction: Transaction) -> CategorizationResult | None:
        if not transaction.party_name.strip():
            return None

        party = transaction.party_name.upper()
        info = transaction.info.upper()

        # Single read of the reference: reload swaps in a new list.
        for config in self.categories:
            for keyword in config.keywords:
                needle = keyword.strip().upper()
                if needle and (needle in party or needle in info):
                    return self._result(transaction, config.name, keyword=keyword, pattern_type="configured")

        if self.use_builtin_patterns:
            return self._classify_builtin(transaction, party, info)
        return None

    def _classify_builtin(
        self, transaction: Transaction, party: str, info: str
    ) -> CategorizationResult | None:
        # Must run before the merchant table, whose TWINT and RETRAIT rows overlap these markers.
        if transaction.is_debtor and UNKNOWN_PARTY_MARKER in party:
            if any(marker in info for marker in CARD_PAYMENT_MARKERS):
                return self._result(transaction, cats.SHOPPING, pattern_type="unknown_payee_card")

        # Padding lets "ATM " style keywords match at the end of a field.
        padded_party, padded_info = f" {party} ", f" {info} "
        for keyword, category_name in MERCHANT_KEYWORDS:
            if keyword in padded_party or keyword in padded_info:
                return self._result(transaction, category_name, keyword=keyword, pattern_type="merchant")

        for bank_code, category_name in BANK_CODE_CATEGORIES:
            if bank_code in transaction.info:
                return self._result(transaction, category_name, bank_code=bank_code, pattern_type="bank_code")

        return None

    def _result(
        self,
        transaction: Transaction,
        category_name: str,
        *,
        pattern_type: str,
        keyword: str | None = None,
        bank_code: str | None = None,
    ) -> CategorizationResult:
        extra = {
            "strategy": self.name,
            "party": transaction.party_name,
            "category": category_name,
            "pattern_type": pattern_type,
        }
        if keyword is not None:
            extra["keyword"] = keyword
        if bank_code is not None:
            extra["bank_code"] = bank_code
        logger.debug(
            "[KEYWORD] '%s' -> '%s' (%s)",
            transaction.party_name,
            category_name,
            pattern_type,
            extra=extra,
        )
        return CategorizationResult(
            category=Category.from_name(category_name),
            confidence=1.0 if pattern_type == "configured" else 0.9,
            source=self.name,
        )

    def reload_categories(self) -> None:
        try:
            loaded = self.store.load_categories()
        except Exception as exc:
            logger.warning("[KEYWORD] Failed to load categories: %s", exc)
            return
        self.categories = [config for config in loaded if config.name.strip()]
        logger.debug(
            "[KEYWORD] Loaded %d categories",
            len(self.categories),
            extra={"count": len(self.categories)},
        )
