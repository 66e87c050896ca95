from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Final

from dotenv import load_dotenv

load_dotenv()


def _reference_id_from_env() -> str:
    return os.getenv("VIRTUAL_TOKEN_ID", "virtual").strip().lower()


@dataclass(slots=True)
class Settings:
    """Central configuration driven by environment variables."""

    api_host: str = os.getenv("API_HOST", "0.0.0.0")
    api_port: int = int(os.getenv("API_PORT", "8000"))
    request_timeout_seconds: float = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "15"))
    fetch_timeout_seconds: float = float(os.getenv("FETCH_TIMEOUT_SECONDS", "20"))

    reference_token_id: str = field(default_factory=_reference_id_from_env)
    default_network: str = os.getenv("DEFAULT_NETWORK", "base")

    dexscreener_base_url: str = os.getenv("DEXSCREENER_BASE_URL", "https://api.dexscreener.com")
    geckoterminal_base_url: str = os.getenv("GECKOTERMINAL_BASE_URL", "https://api.geckoterminal.com/api/v2")

    data_dir: Path = field(default_factory=lambda: Path(os.getenv("DATA_DIR", "./data")))
    token_list_path_raw: str | None = os.getenv("TOKEN_LIST_PATH")
    price_cache_filename: str = os.getenv("PRICE_CACHE_FILENAME", "price_cache.json")
    price_cache_key: str = os.getenv("PRICE_CACHE_KEY", "GLOBAL_PRICE_CACHE")

    def ensure_paths(self) -> None:
        """Create expected directories if they do not exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        (self.data_dir / "export").mkdir(parents=True, exist_ok=True)

    @property
    def token_list_path(self) -> Path:
        if self.token_list_path_raw:
            return Path(self.token_list_path_raw)
        return self.data_dir / "token-list.json"

    @property
    def price_cache_path(self) -> Path:
        return self.data_dir / self.price_cache_filename

    @property
    def reference_symbol(self) -> str:
        return self.reference_token_id.upper()

    @property
    def fetch_timeout(self) -> float | None:
        """Per-token fetch bound; non-positive values disable it."""
        return self.fetch_timeout_seconds if self.fetch_timeout_seconds > 0 else None


# Singleton-style settings import
settings: Final[Settings] = Settings()
settings.ensure_paths()
