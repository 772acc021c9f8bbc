UNCATEGORIZED = "Uncategorized"
UNCATEGORIZED_DESCRIPTION = "Uncategorized transaction"

GROCERIES = "Groceries"
RESTAURANTS = "Restaurants"
PUBLIC_TRANSPORT = "Public Transport"
CAR = "Car"
SHOPPING = "Shopping"
SUBSCRIPTIONS = "Subscriptions"
UTILITIES = "Utilities"
HOUSING = "Housing"
FURNITURE = "Furniture"
HOME_EQUIPMENT = "Home Equipment"
HEALTH = "Health"
HEALTH_INSURANCE = "Health Insurance"
INSURANCE = "Insurance"
BANK_FEES = "Bank Fees"
TAXES = "Taxes"
TRANSFERS = "Transfers"
SALARY = "Salary"
CASH_WITHDRAWALS = "Cash Withdrawals"
LEISURE = "Leisure"
ENTERTAINMENT = "Entertainment"
SPORT = "Sport"
WELLNESS = "Wellness"
PERSONAL_CARE = "Personal Care"
TRAVEL = "Travel"
EDUCATION = "Education"
CHILDREN = "Children"
GIFTS = "Gifts"
DONATIONS = "Donations"
PETS = "Pets"
INVESTMENTS = "Investments"
SAVINGS = "Savings"
PENSION = "Pension"
SERVICES = "Services"

# Closed list offered to the AI provider, in prompt order.
CANONICAL_CATEGORIES: tuple[str, ...] = (
    GROCERIES,
    RESTAURANTS,
    PUBLIC_TRANSPORT,
    CAR,
    SHOPPING,
    SUBSCRIPTIONS,
    UTILITIES,
    HOUSING,
    FURNITURE,
    HOME_EQUIPMENT,
    HEALTH,
    HEALTH_INSURANCE,
    INSURANCE,
    BANK_FEES,
    TAXES,
    TRANSFERS,
    SALARY,
    CASH_WITHDRAWALS,
    LEISURE,
    ENTERTAINMENT,
    SPORT,
    WELLNESS,
    PERSONAL_CARE,
    TRAVEL,
    EDUCATION,
    CHILDREN,
    GIFTS,
    DONATIONS,
    PETS,
    INVESTMENTS,
    SAVINGS,
    PENSION,
    SERVICES,
    UNCATEGORIZED,
)

CATEGORY_DESCRIPTIONS: dict[str, str] = {
    GROCERIES: "Supermarkets, bakeries, butchers and other food shopping",
    RESTAURANTS: "Restaurants, cafes, take-away and fast food",
    PUBLIC_TRANSPORT: "Trains, buses, trams and other public transit",
    CAR: "Fuel, parking, car sharing, repairs and tolls",
    SHOPPING: "Retail purchases, clothing, electronics and online shopping",
    SUBSCRIPTIONS: "Recurring digital services and memberships",
    UTILITIES: "Electricity, water, phone and internet",
    HOUSING: "Rent, building charges and home maintenance",
    FURNITURE: "Furniture and home decoration",
    HOME_EQUIPMENT: "Household appliances and home electronics",
    HEALTH: "Doctors, pharmacy and medical expenses",
    HEALTH_INSURANCE: "Health insurance premiums",
    INSURANCE: "Household, liability, car and other insurance",
    BANK_FEES: "Account fees, card fees and bank charges",
    TAXES: "Government taxes and duties",
    TRANSFERS: "Transfers between accounts and people",
    SALARY: "Salary, wages and employment income",
    CASH_WITHDRAWALS: "ATM and counter cash withdrawals",
    LEISURE: "Museums, parks, concerts and outings",
    ENTERTAINMENT: "Movies, games and streaming entertainment",
    SPORT: "Gyms, climbing, sport clubs and equipment rental",
    WELLNESS: "Spa, massage and wellness",
    PERSONAL_CARE: "Hairdresser, cosmetics and personal care",
    TRAVEL: "Flights, hotels and holidays",
    EDUCATION: "Tuition, books and courses",
    CHILDREN: "Childcare and children's expenses",
    GIFTS: "Presents for family and friends",
    DONATIONS: "Charitable donations",
    PETS: "Pet food and veterinary costs",
    INVESTMENTS: "Stocks, funds and other investments",
    SAVINGS: "Transfers to savings",
    PENSION: "Retirement and pension contributions",
    SERVICES: "Laundry, repairs and other paid services",
    UNCATEGORIZED: "Other uncategorized transactions",
}

# ISO 20022 bank transaction codes seen in statement entries.
BANK_CODE_CASH_WITHDRAWAL = "CWDL"
BANK_CODE_POS = "POSD"
BANK_CODE_CREDIT_CARD = "CCRD"
BANK_CODE_INTERNAL_CREDIT = "ICDT"
BANK_CODE_DIRECT_DEBIT = "DMCT"


def category_description(name: str) -> str:
    return CATEGORY_DESCRIPTIONS.get(name, f"Category for {name}")


def is_uncategorized(name: str | None) -> bool:
    return not name or not name.strip() or name.strip().lower() == UNCATEGORIZED.lower()
