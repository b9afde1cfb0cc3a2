import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parents[1]

# Seed categories can be edited but never deleted.
PROTECTED_CATEGORY_CODES: frozenset[str] = frozenset(
    {
        "CAT-GOLD22K",
        "CAT-GOLD18K",
        "CAT-SILVER",
        "CAT-DIAMOND",
        "CAT-PLATINUM",
    }
)

DEFAULT_CATEGORIES: tuple[dict[str, object], ...] = (
    {
        "code": "CAT-GOLD22K",
        "name": "Gold 22K Jewelry",
        "hsn_code": "71131900",
        "tax_percentage": 3.0,
        "metal_symbol": "XAU",
        "purity_factor": 22 / 24,
    },
    {
        "code": "CAT-GOLD18K",
        "name": "Gold 18K Jewelry",
        "hsn_code": "71131900",
        "tax_percentage": 3.0,
        "metal_symbol": "XAU",
        "purity_factor": 18 / 24,
    },
    {
        "code": "CAT-SILVER",
        "name": "Silver Jewelry",
        "hsn_code": "71131100",
        "tax_percentage": 3.0,
        "metal_symbol": "XAG",
        "purity_factor": 1.0,
    },
    {
        "code": "CAT-DIAMOND",
        "name": "Diamond Jewelry",
        "hsn_code": "71131910",
        "tax_percentage": 0.25,
        "metal_symbol": None,
        "purity_factor": 1.0,
    },
    {
        "code": "CAT-PLATINUM",
        "name": "Platinum Jewelry",
        "hsn_code": "71131920",
        "tax_percentage": 3.0,
        "metal_symbol": "XPT",
        "purity_factor": 0.95,
    },
)


def load_environment(env_path: Path | None = None) -> None:
    load_dotenv(dotenv_path=env_path or PROJECT_ROOT / ".env")


def get_db_path() -> Path:
    override = os.getenv("JEWELLERY_DB_PATH", "").strip()
    if override:
        return Path(override)
    return PROJECT_ROOT / "data" / "billing.db"


def setup_logging(level: str | None = None) -> None:
    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).strip().upper()
    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
        level=getattr(logging, level_name, logging.INFO),
    )
