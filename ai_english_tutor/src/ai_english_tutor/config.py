"""
Runtime configuration

Reads credentials and tuning knobs from the environment (and `.env` files).
Frontend builds used `VITE_` prefixed names, so both spellings are accepted.
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


DEFAULT_DEEPSEEK_BASE_URL = "https://api.deepseek.com"
DEFAULT_DEEPSEEK_MODEL = "deepseek-chat"


def _getenv(key: str, default: Optional[str] = None) -> Optional[str]:
    """Look up `key`, then `VITE_<key>`."""
    value = os.getenv(key) or os.getenv(f"VITE_{key}")
    return value if value else default


@dataclass
class Settings:
    """Client settings resolved from the environment."""
    supabase_url: Optional[str] = None
    supabase_anon_key: Optional[str] = None
    deepseek_api_key: Optional[str] = None
    deepseek_base_url: str = DEFAULT_DEEPSEEK_BASE_URL
    deepseek_model: str = DEFAULT_DEEPSEEK_MODEL
    local_store_path: Optional[str] = None
    auth_settle_timeout: float = 1.5
    recommended_limit: int = 3
    recommended_delivery_mode: str = "pushed"
    log_level: str = "INFO"

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_anon_key)

    @property
    def llm_configured(self) -> bool:
        return bool(self.deepseek_api_key)

    @classmethod
    def from_env(cls, load_env_file: bool = True) -> "Settings":
        """
        Build settings from environment variables.

        Args:
            load_env_file: Load `.env` (and `../.env`) before reading

        Returns:
            Settings instance
        """
        if load_env_file:
            load_dotenv()
            load_dotenv('../.env')  # Also try parent directory

        return cls(
            supabase_url=_getenv("SUPABASE_URL"),
            supabase_anon_key=_getenv("SUPABASE_ANON_KEY"),
            deepseek_api_key=_getenv("DEEPSEEK_API_KEY"),
            deepseek_base_url=_getenv("DEEPSEEK_BASE_URL", DEFAULT_DEEPSEEK_BASE_URL),
            deepseek_model=_getenv("DEEPSEEK_MODEL", DEFAULT_DEEPSEEK_MODEL),
            local_store_path=_getenv("LOCAL_STORE_PATH"),
            auth_settle_timeout=float(_getenv("AUTH_SETTLE_TIMEOUT", "1.5")),
            recommended_limit=int(_getenv("RECOMMENDED_LIMIT", "3")),
            recommended_delivery_mode=_getenv("RECOMMENDED_DELIVERY_MODE", "pushed").lower(),
            log_level=_getenv("LOG_LEVEL", "INFO").upper(),
        )
