# symtex_ledger/config.py
"""Runtime configuration, resolved from arguments or LEDGER_* environment variables."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from symtex_ledger.core.errors import ConfigError
from symtex_ledger.core.types import HashAlgorithm

DEFAULT_DB_PATH = Path.home() / ".symtex" / "ledger.db"

LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


def _int_env(environ: Mapping[str, str], name: str, default: int, minimum: int) -> int:
    raw = environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None
    if value < minimum:
        raise ConfigError(f"{name} must be >= {minimum}, got {value}")
    return value


@dataclass(frozen=True)
class LedgerConfig:
    db_path: Optional[Path] = None
    hash_algorithm: HashAlgorithm = HashAlgorithm.SHA256
    initial_sequence: int = 1
    default_page_size: int = 10
    max_page_size: int = 500
    spot_check_samples: int = 8
    cancel_check_interval: int = 256
    log_level: str = "WARNING"

    def __post_init__(self):
        try:
            object.__setattr__(self, "hash_algorithm", HashAlgorithm(self.hash_algorithm))
        except ValueError:
            allowed = ", ".join(a.value for a in HashAlgorithm)
            raise ConfigError(f"hash_algorithm must be one of: {allowed}") from None
        if self.initial_sequence < 0:
            raise ConfigError("initial_sequence must be >= 0")
        if not 1 <= self.default_page_size <= self.max_page_size:
            raise ConfigError("default_page_size must be between 1 and max_page_size")
        if self.spot_check_samples < 0:
            raise ConfigError("spot_check_samples must be >= 0")
        if self.cancel_check_interval < 1:
            raise ConfigError("cancel_check_interval must be >= 1")
        level = str(self.log_level).strip().upper()
        if level not in LOG_LEVELS:
            raise ConfigError(f"log_level must be one of: {', '.join(LOG_LEVELS)}, got {self.log_level!r}")
        object.__setattr__(self, "log_level", level)
        if self.db_path is not None:
            object.__setattr__(self, "db_path", Path(self.db_path))

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "LedgerConfig":
        """Resolve from the environment. Unset variables keep the defaults."""
        env = os.environ if environ is None else environ
        db_path = env.get("LEDGER_DB_PATH")
        return cls(
            db_path=Path(db_path).expanduser().resolve() if db_path else None,
            hash_algorithm=env.get("LEDGER_HASH_ALGORITHM", HashAlgorithm.SHA256.value).strip().lower(),
            initial_sequence=_int_env(env, "LEDGER_INITIAL_SEQUENCE", 1, 0),
            default_page_size=_int_env(env, "LEDGER_DEFAULT_PAGE_SIZE", 10, 1),
            max_page_size=_int_env(env, "LEDGER_MAX_PAGE_SIZE", 500, 1),
            spot_check_samples=_int_env(env, "LEDGER_INDEX_SPOT_CHECKS", 8, 0),
            log_level=(env.get("LEDGER_LOG_LEVEL") or "").strip() or "WARNING",
        )

    def resolve_db_path(self, override: Optional[Path] = None) -> Path:
        """Resolve DB path in this order:
        1. explicit override (--db flag)
        2. db_path (LEDGER_DB_PATH)
        3. Default: ~/.symtex/ledger.db
        """
        path = (override or self.db_path or DEFAULT_DB_PATH).expanduser().resolve()
        path.parent.mkdir(parents=True, exist_ok=True)
        return path
