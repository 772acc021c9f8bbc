import os

import pytest
import yaml

from statement_categorizer.integration.store import (
    CategoryStoreError,
    InMemoryCategoryStore,
    YamlCategoryStore,
    find_config_file,
)


@pytest.fixture
def yaml_store(tmp_path):
    return YamlCategoryStore(
        str(tmp_path / "categories.yaml"),
        str(tmp_path / "creditors.yaml"),
        str(tmp_path / "debtors.yaml"),
    )


def test_missing_files_load_empty(yaml_store):
    assert yaml_store.load_categories() == []
    assert yaml_store.load_creditor_mappings() == {}
    assert yaml_store.load_debtor_mappings() == {}


def test_load_categories(tmp_path, yaml_store):
    (tmp_path / "categories.yaml").write_text(
        "categories:\n"
        "  - name: Groceries\n"
        "    keywords: [MIGROS, COOP]\n"
        "  - name: Travel\n",
        encoding="utf-8",
    )

    categories = yaml_store.load_categories()

    assert [c.name for c in categories] == ["Groceries", "Travel"]
    assert categories[0].keywords == ["MIGROS", "COOP"]
    assert categories[1].keywords == []


def test_load_categories_bare_list(tmp_path, yaml_store):
    (tmp_path / "categories.yaml").write_text("- name: Pets\n  keywords: [vet]\n", encoding="utf-8")
    assert [c.name for c in yaml_store.load_categories()] == ["Pets"]


def test_load_wrapped_mappings(tmp_path, yaml_store):
    (tmp_path / "debtors.yaml").write_text("debitors:\n  Migros: Groceries\n", encoding="utf-8")
    assert yaml_store.load_debtor_mappings() == {"Migros": "Groceries"}


def test_malformed_yaml_raises(tmp_path, yaml_store):
    (tmp_path / "creditors.yaml").write_text("key: [unclosed\n", encoding="utf-8")

    with pytest.raises(CategoryStoreError):
        yaml_store.load_creditor_mappings()


def test_wrong_shape_raises(tmp_path, yaml_store):
    (tmp_path / "creditors.yaml").write_text("- just\n- a list\n", encoding="utf-8")
    (tmp_path / "categories.yaml").write_text("categories: 42\n", encoding="utf-8")

    with pytest.raises(CategoryStoreError):
        yaml_store.load_creditor_mappings()
    with pytest.raises(CategoryStoreError):
        yaml_store.load_categories()


def test_save_overwrites_full_mapping(tmp_path, yaml_store):
    yaml_store.save_creditor_mappings({"zeta": "Travel", "alpha": "Groceries"})
    yaml_store.save_creditor_mappings({"alpha": "Groceries"})

    path = tmp_path / "creditors.yaml"
    assert yaml.safe_load(path.read_text(encoding="utf-8")) == {"alpha": "Groceries"}
    assert yaml_store.load_creditor_mappings() == {"alpha": "Groceries"}


def test_save_writes_sorted_unicode(tmp_path, yaml_store):
    yaml_store.save_debtor_mappings({"zürich bäckerei": "Groceries", "aldi": "Groceries"})

    content = (tmp_path / "debtors.yaml").read_text(encoding="utf-8")
    assert content.index("aldi") < content.index("zürich bäckerei")


def test_save_creates_backup(tmp_path, yaml_store):
    yaml_store.save_creditor_mappings({"a": "Groceries"})
    yaml_store.save_creditor_mappings({"b": "Travel"})

    backups = [name for name in os.listdir(tmp_path) if name.endswith(".backup")]
    assert len(backups) == 1
    assert backups[0].startswith("creditors.yaml.")


def test_backup_can_be_disabled(tmp_path):
    store = YamlCategoryStore(
        str(tmp_path / "categories.yaml"),
        str(tmp_path / "creditors.yaml"),
        str(tmp_path / "debtors.yaml"),
        backup_enabled=False,
    )
    store.save_creditor_mappings({"a": "Groceries"})
    store.save_creditor_mappings({"b": "Travel"})

    assert not [name for name in os.listdir(tmp_path) if name.endswith(".backup")]


def test_find_config_file_search_order(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "database").mkdir()
    (tmp_path / "config").mkdir()
    (tmp_path / "database" / "creditors.yaml").write_text("{}", encoding="utf-8")
    assert find_config_file("creditors.yaml") == os.path.join("database", "creditors.yaml")

    (tmp_path / "config" / "creditors.yaml").write_text("{}", encoding="utf-8")
    assert find_config_file("creditors.yaml") == os.path.join("config", "creditors.yaml")


def test_relative_save_goes_to_database_dir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    store = YamlCategoryStore()

    store.save_debtor_mappings({"coop": "Groceries"})

    assert (tmp_path / "database" / "debtors.yaml").exists()
    assert store.load_debtor_mappings() == {"coop": "Groceries"}


def test_in_memory_store_returns_copies():
    store = InMemoryCategoryStore(creditor_mappings={"coop": "Groceries"})

    loaded = store.load_creditor_mappings()
    loaded["migros"] = "Groceries"

    assert store.load_creditor_mappings() == {"coop": "Groceries"}


def test_failed_write_keeps_previous_file(tmp_path, yaml_store, monkeypatch):
    yaml_store.save_creditor_mappings({"coop": "Groceries"})

    def broken_dump(*args, **kwargs):
        raise OSError("disk full")

    monkeypatch.setattr("statement_categorizer.integration.store.yaml.safe_dump", broken_dump)

    with pytest.raises(CategoryStoreError):
        yaml_store.save_creditor_mappings({"coop": "Groceries", "migros": "Groceries"})

    assert yaml.safe_load((tmp_path / "creditors.yaml").read_text(encoding="utf-8")) == {"coop": "Groceries"}
    assert not [name for name in os.listdir(tmp_path) if name.endswith(".tmp")]


def test_save_leaves_no_temporary_files(tmp_path, yaml_store):
    yaml_store.save_debtor_mappings({"aldi": "Groceries"})
    yaml_store.save_debtor_mappings({"aldi": "Groceries", "lidl": "Groceries"})

    assert not [name for name in os.listdir(tmp_path) if name.endswith(".tmp")]
    assert yaml_store.load_debtor_mappings() == {"aldi": "Groceries", "lidl": "Groceries"}
