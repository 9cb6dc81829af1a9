from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Mapping
import os
import sys


@dataclass(frozen=True)
class AppPaths:
    base_dir: Path
    db_path: Path
    logs_dir: Path


@dataclass(frozen=True)
class EngineConfig:
    notification_limit: int = 50
    on_time_days: int = 7
    trend_months: int = 6
    default_quality_score: float = 95.0
    quality_key_prefix: str = "QUALITY"
    notification_id_prefix: str = "NOTIF"

    @property
    def reserved_prefixes(self) -> tuple[str, ...]:
        return (f"{self.quality_key_prefix}_", f"{self.notification_id_prefix}_")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "EngineConfig":
        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            notification_limit=int(env.get("SCTRACK_NOTIFICATION_LIMIT", defaults.notification_limit)),
            on_time_days=int(env.get("SCTRACK_ON_TIME_DAYS", defaults.on_time_days)),
            trend_months=int(env.get("SCTRACK_TREND_MONTHS", defaults.trend_months)),
            default_quality_score=float(env.get("SCTRACK_DEFAULT_QUALITY_SCORE", defaults.default_quality_score)),
            quality_key_prefix=env.get("SCTRACK_QUALITY_KEY_PREFIX", defaults.quality_key_prefix),
            notification_id_prefix=env.get("SCTRACK_NOTIFICATION_ID_PREFIX", defaults.notification_id_prefix),
        )


def _windows_appdata() -> Path:
    return Path(os.environ.get("APPDATA", str(Path.home() / "AppData" / "Roaming")))


def _mac_app_support() -> Path:
    return Path.home() / "Library" / "Application Support"


def get_app_paths(app_name: str = "SupplyChainTracker") -> AppPaths:
    if sys.platform.startswith("win"):
        base = _windows_appdata() / app_name
    elif sys.platform == "darwin":
        base = _mac_app_support() / app_name
    else:
        base = Path.home() / f".{app_name.lower()}"

    logs = base / "logs"
    db = base / "ledger.db"

    base.mkdir(parents=True, exist_ok=True)
    logs.mkdir(parents=True, exist_ok=True)

    return AppPaths(base_dir=base, db_path=db, logs_dir=logs)
