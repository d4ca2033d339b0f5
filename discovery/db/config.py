from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")

_DEFAULT_DATA_DIR = Path(__file__).resolve().parent.parent / "data"


@dataclass(frozen=True)
class DatabaseConfig:
    url: str = os.getenv("SUPABASE_URL", "")
    key: str = os.getenv("SUPABASE_KEY", "")
    local_data_dir: Path = Path(os.getenv("LOCAL_DATA_DIR", str(_DEFAULT_DATA_DIR)))

    @property
    def backend(self) -> str:
        return "supabase" if self.url and self.key else "local"


DEFAULT_DATABASE_CONFIG = DatabaseConfig()
