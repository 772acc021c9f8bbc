import threading

from statement_categorizer.integration.store import CategoryStoreError, InMemoryCategoryStore
from statement_categorizer.models import Transaction
from statement_categorizer.strategies.direct_mapping import DirectMappingStrategy


def test_creditor_lookup_is_case_insensitive():
    store = InMemoryCategoryStore(creditor_mappings={"Migros": "Groceries"})
    strategy = DirectMappingStrategy(store)

    for name in ("MIGROS", "migros", "  Migros  "):
        res = strategy.classify(Transaction(party_name=name))
        assert res is not None
        assert res.category.name == "Groceries"
        assert res.confidence == 1.0
        assert res.source == "DirectMapping"


def test_direction_selects_table():
    store = InMemoryCategoryStore(
        creditor_mappings={"acme": "Salary"},
        debtor_mappings={"acme": "Shopping"},
    )
    strategy = DirectMappingStrategy(store)

    assert strategy.classify(Transaction(party_name="ACME", is_debtor=False)).category.name == "Salary"
    assert strategy.classify(Transaction(party_name="ACME", is_debtor=True)).category.name == "Shopping"


def test_debtor_table_not_consulted_for_creditor():
    store = InMemoryCategoryStore(debtor_mappings={"landlord": "Housing"})
    strategy = DirectMappingStrategy(store)

    assert strategy.classify(Transaction(party_name="Landlord", is_debtor=False)) is None


def test_empty_party_name_not_found():
    store = InMemoryCategoryStore(creditor_mappings={"": "Groceries"})
    strategy = DirectMappingStrategy(store)

    assert strategy.classify(Transaction(party_name="")) is None
    assert strategy.classify(Transaction(party_name="   ")) is None


def test_load_error_leaves_empty_tables():
    store = InMemoryCategoryStore()
    store.load_creditor_mappings_error = CategoryStoreError("broken")
    strategy = DirectMappingStrategy(store)

    assert strategy.creditor_mappings() == {}
    assert strategy.classify(Transaction(party_name="anything")) is None


def test_update_normalizes_key():
    strategy = DirectMappingStrategy(InMemoryCategoryStore())

    assert strategy.update_creditor_mapping("  Coop City ", "Groceries") is True
    assert strategy.creditor_mappings() == {"coop city": "Groceries"}
    assert strategy.get_creditor_category("COOP CITY") == "Groceries"
    # Same value again is not a change
    assert strategy.update_creditor_mapping("coop city", "Groceries") is False


def test_reload_replaces_tables():
    store = InMemoryCategoryStore(creditor_mappings={"old": "Groceries"})
    strategy = DirectMappingStrategy(store)

    store.creditor_mappings = {"new": "Travel"}
    strategy.reload_mappings()

    assert strategy.get_creditor_category("old") is None
    assert strategy.get_creditor_category("new") == "Travel"


def test_reload_keeps_previous_table_on_error():
    store = InMemoryCategoryStore(creditor_mappings={"coop": "Groceries"})
    strategy = DirectMappingStrategy(store)

    store.load_creditor_mappings_error = CategoryStoreError("broken")
    strategy.reload_mappings()

    assert strategy.get_creditor_category("coop") == "Groceries"


def test_concurrent_reload_and_classify():
    generation_a = {f"party {i}": "Groceries" for i in range(200)}
    generation_b = {f"party {i}": "Travel" for i in range(200)}
    store = InMemoryCategoryStore(creditor_mappings=generation_a)
    strategy = DirectMappingStrategy(store)

    stop = threading.Event()
    errors: list[Exception] = []
    partial_tables: list[int] = []

    def reloader():
        toggle = False
        while not stop.is_set():
            store.creditor_mappings = generation_b if toggle else generation_a
            toggle = not toggle
            strategy.reload_mappings()

    def reader():
        try:
            for _ in range(500):
                snapshot = strategy.creditor_mappings()
                if len(snapshot) != 200 or len(set(snapshot.values())) != 1:
                    partial_tables.append(len(snapshot))
                res = strategy.classify(Transaction(party_name="party 7"))
                assert res is not None
                assert res.category.name in {"Groceries", "Travel"}
        except Exception as exc:
            errors.append(exc)

    reload_thread = threading.Thread(target=reloader)
    readers = [threading.Thread(target=reader) for _ in range(8)]
    reload_thread.start()
    for thread in readers:
        thread.start()
    for thread in readers:
        thread.join()
    stop.set()
    reload_thread.join()

    assert errors == []
    assert partial_tables == []
