import os
import shutil
import tempfile
from datetime import datetime
from typing import Any, Protocol

import yaml
from pydantic import ValidationError

from statement_categorizer.logger import get_logger
from statement_categorizer.models import CategoryConfig

logger = get_logger(__name__)

DEFAULT_CATEGORIES_FILE = "categories.yaml"
DEFAULT_CREDITORS_FILE = "creditors.yaml"
DEFAULT_DEBTORS_FILE = "debtors.yaml"

BACKUP_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"

_SEARCH_DIRS = (".", "config", "database")
_USER_CONFIG_DIR = os.path.join("~", ".config", "statement-categorizer")
_MAPPING_WRAPPER_KEYS = ("creditors", "debtors", "debitors", "payees")


class CategoryStoreError(Exception):
    """Raised when a category or mapping file exists but cannot be read or parsed."""


class CategoryStore(Protocol):
    def load_categories(self) -> list[CategoryConfig]: ...

    def load_creditor_mappings(self) -> dict[str, str]: ...

    def load_debtor_mappings(self) -> dict[str, str]: ...

    def save_creditor_mappings(self, mappings: dict[str, str]) -> None: ...

    def save_debtor_mappings(self, mappings: dict[str, str]) -> None: ...


def find_config_file(filename: str) -> str | None:
    if os.path.isabs(filename):
        return filename if os.path.exists(filename) else None

    candidates = [os.path.join(directory, filename) for directory in _SEARCH_DIRS]
    candidates.append(os.path.join(os.path.expanduser(_USER_CONFIG_DIR), filename))
    for candidate in candidates:
        if os.path.exists(candidate):
            return candidate
    return None


def _parse_categories(data: Any, path: str) -> list[CategoryConfig]:
    if data is None:
        return []
    if isinstance(data, dict):
        data = data.get("categories") or []
    if not isinstance(data, list):
        raise CategoryStoreError(f"Unexpected structure in categories file {path}")
    try:
        return [CategoryConfig.model_validate(item) for item in data]
    except ValidationError as exc:
        raise CategoryStoreError(f"Invalid category entry in {path}: {exc}") from exc


def _parse_mappings(data: Any, path: str) -> dict[str, str]:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise CategoryStoreError(f"Unexpected structure in mapping file {path}")
    if len(data) == 1:
        wrapper = next(iter(data))
        if wrapper in _MAPPING_WRAPPER_KEYS and isinstance(data[wrapper], (dict, type(None))):
            data = data[wrapper] or {}

    mappings: dict[str, str] = {}
    for key, value in data.items():
        if isinstance(value, (dict, list)) or value is None:
            raise CategoryStoreError(f"Invalid mapping for '{key}' in {path}")
        mappings[str(key)] = str(value)
    return mappings


class YamlCategoryStore:
    """
    Category definitions and creditor/debtor mappings kept in YAML files.

    Relative file names are looked up in the working directory, ``config/``,
    ``database/`` and ``~/.config/statement-categorizer``. A missing file loads
    as an empty collection.
    """

    def __init__(
        self,
        categories_file: str = DEFAULT_CATEGORIES_FILE,
        creditors_file: str = DEFAULT_CREDITORS_FILE,
        debtors_file: str = DEFAULT_DEBTORS_FILE,
        *,
        backup_enabled: bool = True,
        backup_dir: str | None = None,
    ):
        self.categories_file = categories_file or DEFAULT_CATEGORIES_FILE
        self.creditors_file = creditors_file or DEFAULT_CREDITORS_FILE
        self.debtors_file = debtors_file or DEFAULT_DEBTORS_FILE
        self.backup_enabled = backup_enabled
        self.backup_dir = backup_dir

    def _read_yaml(self, filename: str) -> tuple[Any, str] | None:
        path = find_config_file(filename)
        if path is None:
            return None
        try:
            with open(path, encoding="utf-8") as handle:
                return yaml.safe_load(handle), path
        except yaml.YAMLError as exc:
            raise CategoryStoreError(f"Error parsing {path}: {exc}") from exc
        except OSError as exc:
            raise CategoryStoreError(f"Error reading {path}: {exc}") from exc

    def load_categories(self) -> list[CategoryConfig]:
        loaded = self._read_yaml(self.categories_file)
        if loaded is None:
            return []
        data, path = loaded
        return _parse_categories(data, path)

    def load_creditor_mappings(self) -> dict[str, str]:
        return self._load_mappings(self.creditors_file)

    def load_debtor_mappings(self) -> dict[str, str]:
        return self._load_mappings(self.debtors_file)

    def save_creditor_mappings(self, mappings: dict[str, str]) -> None:
        self._save_mappings(self.creditors_file, mappings)

    def save_debtor_mappings(self, mappings: dict[str, str]) -> None:
        self._save_mappings(self.debtors_file, mappings)

    def _load_mappings(self, filename: str) -> dict[str, str]:
        loaded = self._read_yaml(filename)
        if loaded is None:
            return {}
        data, path = loaded
        return _parse_mappings(data, path)

    def _resolve_save_path(self, filename: str) -> str:
        path = find_config_file(filename)
        if path:
            return path
        if os.path.isabs(filename):
            return filename
        return os.path.join("database", filename)

    def _create_backup(self, path: str) -> None:
        if not self.backup_enabled or not os.path.exists(path):
            return
        timestamp = datetime.now().strftime(BACKUP_TIMESTAMP_FORMAT)
        backup_name = f"{os.path.basename(path)}.{timestamp}.backup"
        if self.backup_dir:
            os.makedirs(self.backup_dir, exist_ok=True)
            backup_path = os.path.join(self.backup_dir, backup_name)
        else:
            backup_path = os.path.join(os.path.dirname(path), backup_name)
        shutil.copyfile(path, backup_path)
        logger.debug("[STORE] Backed up %s to %s", path, backup_path)

    def _save_mappings(self, filename: str, mappings: dict[str, str]) -> None:
        path = self._resolve_save_path(filename)
        try:
            directory = os.path.dirname(path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            self._create_backup(path)
            payload = {key: mappings[key] for key in sorted(mappings)}
            self._write_atomic(path, payload)
        except OSError as exc:
            raise CategoryStoreError(f"Error writing {path}: {exc}") from exc
        logger.debug("[STORE] Saved %d mappings to %s", len(mappings), path)

    @staticmethod
    def _write_atomic(path: str, payload: dict[str, str]) -> None:
        """Write next to ``path`` and rename over it, so readers never see a partial file."""
        handle = tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=os.path.dirname(path) or ".",
            prefix=f".{os.path.basename(path)}.",
            suffix=".tmp",
            delete=False,
        )
        try:
            with handle:
                yaml.safe_dump(payload, handle, allow_unicode=True, sort_keys=True)
            os.replace(handle.name, path)
        except BaseException:
            if os.path.exists(handle.name):
                os.remove(handle.name)
            raise


class InMemoryCategoryStore:
    """Store kept in process memory. Load/save errors can be injected."""

    def __init__(
        self,
        categories: list[CategoryConfig] | None = None,
        creditor_mappings: dict[str, str] | None = None,
        debtor_mappings: dict[str, str] | None = None,
    ):
        self.categories = list(categories or [])
        self.creditor_mappings = dict(creditor_mappings or {})
        self.debtor_mappings = dict(debtor_mappings or {})

        self.load_categories_error: Exception | None = None
        self.load_creditor_mappings_error: Exception | None = None
        self.load_debtor_mappings_error: Exception | None = None
        self.save_creditor_mappings_error: Exception | None = None
        self.save_debtor_mappings_error: Exception | None = None

        self.save_calls = 0

    def load_categories(self) -> list[CategoryConfig]:
        if self.load_categories_error:
            raise self.load_categories_error
        return [category.model_copy(deep=True) for category in self.categories]

    def load_creditor_mappings(self) -> dict[str, str]:
        if self.load_creditor_mappings_error:
            raise self.load_creditor_mappings_error
        return dict(self.creditor_mappings)

    def load_debtor_mappings(self) -> dict[str, str]:
        if self.load_debtor_mappings_error:
            raise self.load_debtor_mappings_error
        return dict(self.debtor_mappings)

    def save_creditor_mappings(self, mappings: dict[str, str]) -> None:
        self.save_calls += 1
        if self.save_creditor_mappings_error:
            raise self.save_creditor_mappings_error
        self.creditor_mappings = dict(mappings)

    def save_debtor_mappings(self, mappings: dict[str, str]) -> None:
        self.save_calls += 1
        if self.save_debtor_mappings_error:
            raise self.save_debtor_mappings_error
        self.debtor_mappings = dict(mappings)
