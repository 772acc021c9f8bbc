import os
from dataclasses import dataclass

from dotenv import find_dotenv, load_dotenv

from statement_categorizer.logger import get_logger

logger = get_logger(__name__)


CONFIG_FILENAME = "config.yaml"

_CONFIG_FILE_PATH: str | None = None
_CONFIG_FILE_VALUES: dict[str, str] = {}

_CONFIG_KEYS = (
    "LOG_LEVEL",
    "LOG_DIR",
    "DATA_DIR",
    "CATEGORIES_FILE",
    "CREDITORS_FILE",
    "DEBTORS_FILE",
    "BACKUP_ENABLED",
    "AI_ENABLED",
    "AI_API_KEY",
    "GEMINI_API_KEY",
    "OPENAI_API_KEY",
    "AI_MODEL",
    "AI_EMBEDDING_MODEL",
    "AI_BASE_URL",
    "AI_REQUESTS_PER_MINUTE",
    "AI_TIMEOUT_SECONDS",
    "SEMANTIC_ENABLED",
    "SEMANTIC_THRESHOLD",
    "AUTO_LEARN",
)

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}

GEMINI_OPENAI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"
GEMINI_DEFAULT_MODEL = "gemini-2.5-flash"
GEMINI_DEFAULT_EMBEDDING_MODEL = "text-embedding-004"
OPENAI_DEFAULT_MODEL = "gpt-4o-mini"
OPENAI_DEFAULT_EMBEDDING_MODEL = "text-embedding-3-small"

DEFAULT_REQUESTS_PER_MINUTE = 10
DEFAULT_TIMEOUT_SECONDS = 30
DEFAULT_SEMANTIC_THRESHOLD = 0.70


def _resolve_dotenv_path() -> str | None:
    config_dir = os.getenv("CONFIG_DIR")
    if config_dir:
        candidate = os.path.join(config_dir, ".env")
        if os.path.exists(candidate):
            return candidate
    resolved = find_dotenv(usecwd=True)
    return resolved or None


def _resolve_config_path() -> str:
    config_dir = os.getenv("CONFIG_DIR")
    if config_dir:
        return os.path.join(config_dir, CONFIG_FILENAME)
    cwd = os.getcwd()
    candidate = os.path.join(cwd, "config", CONFIG_FILENAME)
    if os.path.exists(candidate):
        return candidate
    return os.path.join(cwd, CONFIG_FILENAME)


def _strip_inline_comment(raw_value: str) -> str:
    in_single = False
    in_double = False
    for index, char in enumerate(raw_value):
        if char == '"' and not in_single:
            in_double = not in_double
            continue
        if char == "'" and not in_double:
            in_single = not in_single
            continue
        if char == "#" and not in_single and not in_double:
            return raw_value[:index].rstrip()
    return raw_value


def _unquote_value(raw_value: str) -> str:
    if len(raw_value) >= 2 and raw_value[0] == raw_value[-1] and raw_value[0] in "\"'":
        return raw_value[1:-1]
    return raw_value


def read_config_file(path: str | None) -> dict[str, str]:
    """
    Read flat ``KEY: value`` lines. Nested YAML, comments and blank values are ignored.
    """
    if not path or not os.path.exists(path):
        return {}

    values: dict[str, str] = {}
    with open(path, encoding="utf-8") as handle:
        for line in handle:
            stripped = line.strip()
            if not stripped or stripped.startswith("#"):
                continue
            if ":" not in stripped:
                continue
            key, raw_value = stripped.split(":", 1)
            key = key.strip()
            if not key:
                continue
            cleaned = _strip_inline_comment(raw_value).strip()
            if not cleaned:
                continue
            value = _unquote_value(cleaned)
            if value:
                values[key] = value
    return values


def load_environment() -> None:
    """
    Load ``.env`` then ``config.yaml`` into ``os.environ``. Variables already set
    in the process environment always win.
    """
    global _CONFIG_FILE_PATH
    global _CONFIG_FILE_VALUES

    dotenv_path = _resolve_dotenv_path()
    if dotenv_path:
        load_dotenv(dotenv_path=dotenv_path, override=False)

    _CONFIG_FILE_PATH = _resolve_config_path()
    _CONFIG_FILE_VALUES = read_config_file(_CONFIG_FILE_PATH)

    for key in _CONFIG_KEYS:
        if key not in os.environ and key in _CONFIG_FILE_VALUES:
            os.environ[key] = _CONFIG_FILE_VALUES[key]


def get_config_path() -> str | None:
    return _CONFIG_FILE_PATH


def ensure_dir(path: str | None) -> None:
    if path and path not in {".", "./"}:
        os.makedirs(path, exist_ok=True)


def get_env_int(
    name: str,
    default: int,
    min_value: int | None = None,
    max_value: int | None = None,
) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("[ENV] Invalid %s='%s', using default %s.", name, raw, default)
        return default
    if min_value is not None and value < min_value:
        logger.warning(
            "[ENV] %s='%s' below minimum %s, using default %s.",
            name,
            raw,
            min_value,
            default,
        )
        return default
    if max_value is not None and value > max_value:
        logger.warning(
            "[ENV] %s='%s' above maximum %s, using default %s.",
            name,
            raw,
            max_value,
            default,
        )
        return default
    return value


def get_env_float(
    name: str,
    default: float = 0.0,
    min_value: float | None = None,
    max_value: float | None = None,
) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("[ENV] Invalid %s='%s', using default %s.", name, raw, default)
        return default
    if (min_value is not None and value < min_value) or (max_value is not None and value > max_value):
        logger.warning(
            "[ENV] %s='%s' outside [%s, %s], using default %s.",
            name,
            raw,
            min_value,
            max_value,
            default,
        )
        return default
    return value


def get_env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if not raw:
        return default
    lowered = raw.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    logger.warning("[ENV] Invalid %s='%s', using default %s.", name, raw, default)
    return default


@dataclass(frozen=True)
class Settings:
    data_dir: str = "."
    log_dir: str | None = None
    categories_file: str = "categories.yaml"
    creditors_file: str = "creditors.yaml"
    debtors_file: str = "debtors.yaml"
    backup_enabled: bool = True
    ai_enabled: bool = True
    ai_api_key: str | None = None
    ai_model: str = OPENAI_DEFAULT_MODEL
    ai_embedding_model: str = OPENAI_DEFAULT_EMBEDDING_MODEL
    ai_base_url: str | None = None
    ai_requests_per_minute: int = DEFAULT_REQUESTS_PER_MINUTE
    ai_timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS
    semantic_enabled: bool = True
    semantic_threshold: float = DEFAULT_SEMANTIC_THRESHOLD
    auto_learn: bool = True

    @property
    def ai_active(self) -> bool:
        return self.ai_enabled and bool(self.ai_api_key)

    def resolve_path(self, filename: str) -> str:
        """Anchor relative file names in ``data_dir`` when one is configured."""
        if os.path.isabs(filename) or self.data_dir in {"", ".", "./"}:
            return filename
        return os.path.join(self.data_dir, filename)


def _resolve_api_key() -> tuple[str | None, str | None]:
    for key in ("AI_API_KEY", "GEMINI_API_KEY", "OPENAI_API_KEY"):
        value = os.getenv(key)
        if value and value.strip():
            return value.strip(), key
    return None, None


def load_settings(*, load_env: bool = True) -> Settings:
    if load_env:
        load_environment()

    api_key, api_key_source = _resolve_api_key()
    base_url = os.getenv("AI_BASE_URL") or None
    model_default = OPENAI_DEFAULT_MODEL
    embedding_default = OPENAI_DEFAULT_EMBEDDING_MODEL
    if api_key_source == "GEMINI_API_KEY" and base_url is None:
        base_url = GEMINI_OPENAI_BASE_URL
        model_default = GEMINI_DEFAULT_MODEL
        embedding_default = GEMINI_DEFAULT_EMBEDDING_MODEL

    data_dir = os.getenv("DATA_DIR", ".")
    log_dir = os.getenv("LOG_DIR") or None
    ensure_dir(data_dir)
    ensure_dir(log_dir)

    return Settings(
        data_dir=data_dir,
        log_dir=log_dir,
        categories_file=os.getenv("CATEGORIES_FILE") or "categories.yaml",
        creditors_file=os.getenv("CREDITORS_FILE") or "creditors.yaml",
        debtors_file=os.getenv("DEBTORS_FILE") or "debtors.yaml",
        backup_enabled=get_env_bool("BACKUP_ENABLED", True),
        ai_enabled=get_env_bool("AI_ENABLED", True),
        ai_api_key=api_key,
        ai_model=os.getenv("AI_MODEL") or model_default,
        ai_embedding_model=os.getenv("AI_EMBEDDING_MODEL") or embedding_default,
        ai_base_url=base_url,
        ai_requests_per_minute=get_env_int(
            "AI_REQUESTS_PER_MINUTE", DEFAULT_REQUESTS_PER_MINUTE, min_value=1, max_value=1000
        ),
        ai_timeout_seconds=get_env_int(
            "AI_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS, min_value=1, max_value=300
        ),
        semantic_enabled=get_env_bool("SEMANTIC_ENABLED", True),
        semantic_threshold=get_env_float(
            "SEMANTIC_THRESHOLD", DEFAULT_SEMANTIC_THRESHOLD, min_value=0.0, max_value=1.0
        ),
        auto_learn=get_env_bool("AUTO_LEARN", True),
    )


_SENSITIVE_ENV_KEYS = (
    "KEY",
    "TOKEN",
    "SECRET",
    "PASSWORD",
    "PASS",
    "AUTH",
    "BEARER",
    "PRIVATE",
)


def _should_mask_value(name: str, value: str) -> bool:
    upper_name = name.upper()
    if any(marker in upper_name for marker in _SENSITIVE_ENV_KEYS):
        return True
    if value.startswith("sk-") or value.startswith("AIza"):
        return True
    if value.startswith("Bearer ") or value.startswith("bearer "):
        return True
    return False


def mask_value(name: str, value: str) -> str:
    sanitized = value.replace("\r", "\\r").replace("\n", "\\n")
    if not _should_mask_value(name, sanitized):
        return sanitized
    if len(sanitized) <= 4:
        return "****"
    return f"{sanitized[:2]}...{sanitized[-2:]}"


def log_settings(settings: Settings) -> None:
    logger.info("[ENV] Effective settings (masked where needed).")
    logger.info("[ENV] CONFIG_FILE=%s", get_config_path() or "<none>")
    for field_name, value in vars(settings).items():
        rendered = "<unset>" if value is None else mask_value(field_name, str(value))
        logger.info("[ENV] %s=%s", field_name.upper(), rendered)
