"""
Configuration for the CertGuard service.

Settings come from environment variables, read once at import. The optional
rule-set overrides file is loaded through a TTL cache so that operators can
retune weights without restarting workers that rebuild their scorer.
"""

import json
import os
import threading
import time
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

# ============================================================
# Environment Configuration
# ============================================================

ENV = os.getenv("CERTGUARD_ENV", "dev")  # dev|stage|prod

# Analyze endpoints, requests per minute per client
ANALYZE_RPM = int(os.getenv("ANALYZE_RPM", "120"))

# History retention (0 = unbounded)
HISTORY_MAX_SIZE = int(os.getenv("HISTORY_MAX_SIZE", "10000"))
HISTORY_MAX_AGE_DAYS = int(os.getenv("HISTORY_MAX_AGE_DAYS", "0"))

# Rule set overrides: {"version", "weights", "disabled", "thresholds"}
RULESET_PATH = os.getenv("RULESET_PATH", "")

BATCH_MAX_ROWS = int(os.getenv("BATCH_MAX_ROWS", "100"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_JSON = os.getenv("LOG_JSON", "1").lower() in ("1", "true", "yes")

CONFIG_CACHE_TTL = int(os.getenv("CONFIG_CACHE_TTL", "60"))


# ============================================================
# Cached JSON files
# ============================================================

class CachedConfig:
    """JSON files cached per path for `ttl_seconds`. Thread-safe."""

    def __init__(self, ttl_seconds: int = 60):
        self.ttl_seconds = ttl_seconds
        self._entries: Dict[str, Tuple[float, Dict[str, Any]]] = {}
        self._lock = threading.Lock()

    def get_json(self, path: str, force_reload: bool = False) -> Dict[str, Any]:
        with self._lock:
            cached = self._entries.get(path)
            if cached and not force_reload and time.monotonic() - cached[0] <= self.ttl_seconds:
                return cached[1]

            data = json.loads(Path(path).read_text(encoding="utf-8"))
            self._entries[path] = (time.monotonic(), data)
            return data

    def invalidate(self, path: Optional[str] = None) -> None:
        with self._lock:
            if path is None:
                self._entries.clear()
            else:
                self._entries.pop(path, None)


_config_cache = CachedConfig(ttl_seconds=CONFIG_CACHE_TTL)


def load_json_cached(path: str) -> Dict[str, Any]:
    return _config_cache.get_json(path)


def load_ruleset_overrides(path: Optional[str] = None) -> Dict[str, Any]:
    """Rule set overrides from RULESET_PATH, or {} when none configured."""
    path = RULESET_PATH if path is None else path
    if not path:
        return {}
    return load_json_cached(path)


def invalidate_config_cache() -> None:
    _config_cache.invalidate()


def history_max_size() -> Optional[int]:
    return HISTORY_MAX_SIZE if HISTORY_MAX_SIZE > 0 else None


def history_max_age() -> Optional[timedelta]:
    return timedelta(days=HISTORY_MAX_AGE_DAYS) if HISTORY_MAX_AGE_DAYS > 0 else None


# ============================================================
# Validation
# ============================================================

def validate_config() -> Dict[str, bool]:
    """Configured file name -> whether it exists."""
    files = {"ruleset": RULESET_PATH} if RULESET_PATH else {}
    return {name: Path(path).exists() for name, path in files.items()}


# ============================================================
# Feature Flags
# ============================================================

def is_production() -> bool:
    return ENV == "prod"


def is_debug() -> bool:
    return os.getenv("CERTGUARD_DEBUG", "").lower() in ("1", "true", "yes")
