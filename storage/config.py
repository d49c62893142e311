"""Simple JSON-backed configuration store."""
from __future__ import annotations

import json
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

from core.settings import CONFIG_PATH, WORKER


@dataclass
class AppConfig:
    """Lightweight user preferences persisted to ``config.json``."""

    worker_batch_size: int = WORKER.batch_size
    worker_tick_interval_sec: float = WORKER.tick_interval_sec
    default_private: bool = False
    default_read_later: bool = False

    def clamped_batch_size(self) -> int:
        return max(WORKER.min_batch_size, min(WORKER.max_batch_size, int(self.worker_batch_size)))


def _ensure_parent(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def _load_raw(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return {}
    return data if isinstance(data, dict) else {}


def load_config(path: Optional[Path] = None) -> AppConfig:
    target = path or CONFIG_PATH
    data = _load_raw(target)
    defaults = AppConfig()
    values: Dict[str, Any] = {}
    for item in fields(AppConfig):
        raw = data.get(item.name, getattr(defaults, item.name))
        default = getattr(defaults, item.name)
        if isinstance(default, bool):
            values[item.name] = raw if isinstance(raw, bool) else default
            continue
        try:
            values[item.name] = type(default)(raw)
        except (TypeError, ValueError):
            values[item.name] = default
    return AppConfig(**values)


def save_config(config: AppConfig, path: Optional[Path] = None) -> None:
    target = path or CONFIG_PATH
    _ensure_parent(target)
    payload = json.dumps(asdict(config), ensure_ascii=False, indent=2, sort_keys=True)
    tmp = target.with_suffix(".tmp")
    try:
        tmp.write_text(payload, encoding="utf-8")
        tmp.replace(target)
    finally:
        if tmp.exists():
            try:
                tmp.unlink()
            except OSError:
                pass


def update_config(path: Optional[Path] = None, **changes: Any) -> AppConfig:
    target = path or CONFIG_PATH
    cfg = load_config(target)
    for key, value in changes.items():
        if hasattr(cfg, key):
            setattr(cfg, key, value)
    save_config(cfg, target)
    return cfg


__all__ = ["AppConfig", "load_config", "save_config", "update_config"]
