from collections.abc import Sequence

from statement_categorizer.domain import categories as cats
from statement_categorizer.models import Transaction

SYSTEM_INSTRUCTIONS = "You are a financial transaction categorizer for a personal finance application."

CATEGORY_HINTS: dict[str, str] = {
    cats.GROCERIES: "supermarkets like Migros, Coop, Aldi, Lidl, Denner; bakeries, butchers",
    cats.RESTAURANTS: "dining out, fast food, cafes, take-away",
    cats.PUBLIC_TRANSPORT: "trains, buses, trams, SBB/CFF tickets",
    cats.CAR: "fuel, parking, car sharing, repairs",
    cats.SHOPPING: "clothes, electronics, online shops",
    cats.SUBSCRIPTIONS: "streaming, software, AI tools, memberships",
    cats.UTILITIES: "electricity, phone, internet",
    cats.HOUSING: "rent, building charges",
    cats.FURNITURE: "furniture, decoration, IKEA",
    cats.HOME_EQUIPMENT: "appliances, home electronics",
    cats.HEALTH: "doctors, pharmacy",
    cats.INSURANCE: "household, liability, car insurance",
    cats.CASH_WITHDRAWALS: "ATM withdrawals, pocket money",
    cats.WELLNESS: "spa, massage",
    cats.PERSONAL_CARE: "hairdresser, cosmetics",
    cats.TRAVEL: "flights, hotels, holiday rentals",
    cats.PENSION: "retirement funds only",
}

DISAMBIGUATION_RULES = (
    f'Supermarkets: "Migros", "Coop", "Denner", "Aldi" are {cats.GROCERIES}. '
    f"They are NOT {cats.RESTAURANTS}, even when the shop name contains \"Restaurant\" or \"Take Away\".",
    f'Restaurants: "McDonalds", "Starbucks", "Restaurant X" are {cats.RESTAURANTS}.',
    f'AI and tech: "Claude.ai", "OpenAI", "ChatGPT", "Google One" are {cats.SUBSCRIPTIONS}.',
    f'Transport: "SNCF", "CFF", "SBB" are {cats.PUBLIC_TRANSPORT}. "Shell", "BP", "Parking" are {cats.CAR}.',
    f'Travel: "EasyJet", "Airbnb", "Booking.com" are {cats.TRAVEL}.',
    f'Furniture vs appliances: "IKEA", "Conforama" are {cats.FURNITURE}. "Dyson", "Fust" are {cats.HOME_EQUIPMENT}.',
    f"Insurance: health insurers (\"Assura\", \"CSS\", \"Helsana\") are {cats.HEALTH_INSURANCE}; "
    f"\"La Vaudoise\", \"Generali\", \"AXA\" are {cats.INSURANCE}.",
    f"Retirement: {cats.PENSION} is ONLY for retirement funds.",
)

FEW_SHOT_EXAMPLES: tuple[tuple[str, str, str], ...] = (
    ("OpenAI *ChatGPT", "20.00", cats.SUBSCRIPTIONS),
    ("Coop Pronto", "15.50", cats.GROCERIES),
    ("McDonalds", "24.90", cats.RESTAURANTS),
    ("SBB CFF FFS Mobile Ticket", "5.60", cats.PUBLIC_TRANSPORT),
    ("Parking de la Gare", "3.00", cats.CAR),
    ("IKEA AG", "150.00", cats.FURNITURE),
    ("Zalando", "89.90", cats.SHOPPING),
    ("Retrait Bancomat", "100.00", cats.CASH_WITHDRAWALS),
    ("La Vaudoise Assurances", "450.00", cats.INSURANCE),
    ("EasyJet", "120.00", cats.TRAVEL),
)


def allowed_categories(extra: Sequence[str] = ()) -> list[str]:
    """Canonical names followed by any additional configured names, without duplicates."""
    names: list[str] = []
    seen: set[str] = set()
    for name in (*cats.CANONICAL_CATEGORIES, *extra):
        key = name.strip().lower()
        if key and key not in seen:
            seen.add(key)
            names.append(name.strip())
    return names


def build_categorization_prompt(transaction: Transaction, categories: Sequence[str]) -> str:
    lines = [
        "Categorize the following financial transaction into EXACTLY ONE of the allowed categories.",
        "",
        "CATEGORIES (strictly limit your answer to this list):",
    ]
    for name in categories:
        hint = CATEGORY_HINTS.get(name)
        lines.append(f"- {name} ({hint})" if hint else f"- {name}")

    lines += ["", "TRICKY CASES / RULES:"]
    lines += [f"{index}. {rule}" for index, rule in enumerate(DISAMBIGUATION_RULES, start=1)]

    lines += ["", "EXAMPLES:"]
    lines += [
        f'- Transaction: "{party}", Amount: {amount} -> {category}'
        for party, amount, category in FEW_SHOT_EXAMPLES
    ]

    direction = "Debit (spending)" if transaction.is_debtor else "Credit (income)"
    description = " | ".join(part for part in (transaction.description, transaction.info) if part)
    lines += [
        "",
        "TRANSACTION TO CATEGORIZE:",
        f"Party: {transaction.party_name}",
        f"Description: {description}",
        f"Amount: {transaction.amount}",
        f"Type: {direction}",
        "",
        "Respond with ONLY the category name, exactly as written in the list.",
        "Do not add explanations, punctuation or any other text.",
        f"Do NOT answer 'category', 'categories' or 'unknown'. If nothing fits, answer '{cats.UNCATEGORIZED}'.",
    ]
    return "\n".join(lines)
