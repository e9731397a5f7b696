"""
Settings loaded from environment variables.

    TASKMD_BACKEND           file | sqlite              (default: file)
    TASKMD_DATA_DIR          directory of <project>.md  (required for file)
    TASKMD_DB_PATH           SQLite database path       (default: <data_dir>/taskmd.db)
    TASKMD_LOCK_TIMEOUT      seconds                    (default: 10)
    TASKMD_MAX_TITLE_LENGTH  characters                 (default: 100)
    API_ENABLED              true | false               (default: true)
    API_PORT                 port                       (default: 9400)
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

ENV_PREFIX = "TASKMD"

BACKENDS = ("file", "sqlite")


def _k(suffix: str) -> str:
    return f"{ENV_PREFIX}_{suffix}"


def _env_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(env: Mapping[str, str], name: str) -> Optional[Path]:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return None
    return Path(raw).expanduser()


@dataclass
class Settings:
    backend: str = "file"
    data_dir: Optional[Path] = None
    db_path: Optional[str] = None
    lock_timeout: float = 10.0
    max_title_length: int = 100
    api_enabled: bool = True
    api_port: int = 9400

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if env is None else env
        data_dir = _env_path(env, _k("DATA_DIR"))
        db_path = env.get(_k("DB_PATH")) or None
        if db_path is None and data_dir is not None:
            db_path = str(data_dir / "taskmd.db")
        return cls(
            backend=env.get(_k("BACKEND"), "file").strip().lower(),
            data_dir=data_dir,
            db_path=db_path,
            lock_timeout=_env_float(env, _k("LOCK_TIMEOUT"), 10.0),
            max_title_length=_env_int(env, _k("MAX_TITLE_LENGTH"), 100),
            api_enabled=_env_bool(env, "API_ENABLED", True),
            api_port=_env_int(env, "API_PORT", 9400),
        )

    def problems(self) -> list:
        """Human-readable reasons these settings cannot start a server."""
        issues = []
        if self.backend not in BACKENDS:
            issues.append(f"{_k('BACKEND')} must be one of {', '.join(BACKENDS)}")
        if self.backend == "file":
            if self.data_dir is None:
                issues.append(f"{_k('DATA_DIR')} environment variable is not set")
            elif not self.data_dir.is_dir():
                issues.append(f"{_k('DATA_DIR')} is not a directory: {self.data_dir}")
        if self.backend == "sqlite" and not self.db_path:
            issues.append(f"{_k('DB_PATH')} or {_k('DATA_DIR')} must be set")
        return issues
