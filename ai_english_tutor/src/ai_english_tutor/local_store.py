"""
Device-local key-value store

Holds the last generated lesson, in-progress quiz answers, the daily
recommendations cache, the recommended-content cache entry and the pending
post-auth redirect. Backed by a single JSON file; purely in-memory when no
path is given.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

logger = logging.getLogger(__name__)

# Well-known keys
LAST_LESSON_KEY = "last_generated_lesson"
LAST_ANSWERS_KEY = "last_quiz_answers"
RECOMMENDED_CACHE_KEY = "recommendedContentCache"
PENDING_REDIRECT_KEY = "pending_redirect"
DAILY_RECOMMENDATIONS_PREFIX = "daily_recommendations:"


class LocalStore:
    """JSON-file key-value store with atomic writes."""

    def __init__(self, path: Optional[Union[str, Path]] = None):
        """
        Initialize LocalStore.

        Args:
            path: JSON file location (optional, in-memory only if None)
        """
        self._path = Path(path).expanduser() if path else None
        self._data: Dict[str, Any] = self._read_payload()

    @property
    def path(self) -> Optional[Path]:
        return self._path

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Store a JSON-serializable value and flush to disk."""
        # Fail before mutating if the value cannot be serialized
        json.dumps(value)
        self._data[key] = value
        self._flush()

    def remove(self, key: str) -> None:
        if key in self._data:
            del self._data[key]
            self._flush()

    def keys(self, prefix: str = "") -> List[str]:
        return [k for k in self._data if k.startswith(prefix)]

    def _flush(self) -> None:
        if self._path is None:
            return
        body = json.dumps(self._data, indent=2, sort_keys=True)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(".tmp")
        tmp_path.write_text(body, encoding="utf-8")
        tmp_path.replace(self._path)

    def _read_payload(self) -> Dict[str, Any]:
        if self._path is None or not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"⚠️ [LocalStore] Ignoring unreadable store at {self._path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"⚠️ [LocalStore] Store at {self._path} is not an object, starting empty")
            return {}
        return data
