from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import os
import sys


@dataclass(frozen=True)
class AppPaths:
    base_dir: Path
    logs_dir: Path
    exports_dir: Path


@dataclass(frozen=True)
class ApiSettings:
    base_url: str
    token: str | None
    timeout: float
    carry_forward_category_ids: tuple[int, ...]
    low_stock_threshold: float
    max_workers: int


def _windows_appdata() -> Path:
    return Path(os.environ.get("APPDATA", str(Path.home() / "AppData" / "Roaming")))


def _mac_app_support() -> Path:
    return Path.home() / "Library" / "Application Support"


def get_app_paths(app_name: str = "WeeklyStockManager") -> AppPaths:
    if sys.platform.startswith("win"):
        base = _windows_appdata() / app_name
    elif sys.platform == "darwin":
        base = _mac_app_support() / app_name
    else:
        base = Path.home() / f".{app_name.lower()}"

    logs = base / "logs"
    exports = base / "exports"

    base.mkdir(parents=True, exist_ok=True)
    logs.mkdir(parents=True, exist_ok=True)
    exports.mkdir(parents=True, exist_ok=True)

    return AppPaths(base_dir=base, logs_dir=logs, exports_dir=exports)


def _int_list(raw: str) -> tuple[int, ...]:
    return tuple(int(p) for p in raw.replace(";", ",").split(",") if p.strip())


def get_api_settings(env: dict | None = None) -> ApiSettings:
    env = os.environ if env is None else env
    return ApiSettings(
        base_url=env.get("WSM_API_BASE_URL", "http://localhost:3000"),
        token=env.get("WSM_API_TOKEN") or None,
        timeout=float(env.get("WSM_API_TIMEOUT", "10")),
        carry_forward_category_ids=_int_list(env.get("WSM_CARRY_FORWARD_CATEGORIES", "8,10,11")),
        low_stock_threshold=float(env.get("WSM_LOW_STOCK_THRESHOLD", "5")),
        max_workers=int(env.get("WSM_MAX_WORKERS", "8")),
    )
