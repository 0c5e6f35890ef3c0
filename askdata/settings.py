# askdata/settings.py
import os
from datetime import date
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


PROJECT_ROOT = Path(__file__).resolve().parents[1]

# Relational store
DATABASE_URL = os.getenv("ASKDATA_DATABASE_URL", "sqlite:///./askdata.sqlite3")
DATABASE_URL_CONFIGURED = bool(os.getenv("ASKDATA_DATABASE_URL"))
POOL_SIZE = int(os.getenv("ASKDATA_POOL_SIZE", "5"))
POOL_RECYCLE = int(os.getenv("ASKDATA_POOL_RECYCLE", "10"))  # seconds
CREATE_TABLES = _flag("ASKDATA_CREATE_TABLES", "true")

# Hard ceiling on rows returned by any single query
ROW_CAP = int(os.getenv("ASKDATA_ROW_CAP", "10000"))

# Instruction-tuned text generation model used for NL -> intent
LLM_ENABLED = _flag("ASKDATA_LLM_ENABLED", "true")
MODEL_ID = os.getenv("ASKDATA_MODEL_ID", "Qwen/Qwen2.5-1.5B-Instruct")
MAX_NEW_TOKENS = int(os.getenv("ASKDATA_MAX_NEW_TOKENS", "1000"))

# PRELOAD_BLOCKING=true  -> wait for model to load before serving
# PRELOAD_BLOCKING=false -> start serving and load the model in the background
PRELOAD_BLOCKING = _flag("PRELOAD_BLOCKING", "true")

# The dataset may lag the wall clock; pin "today" for date phrases if needed.
_ref = os.getenv("ASKDATA_REFERENCE_DATE")
REFERENCE_DATE = date.fromisoformat(_ref) if _ref else None

LOG_LEVEL = os.getenv("ASKDATA_LOG_LEVEL", "INFO")

HOST = os.getenv("ASKDATA_HOST", "0.0.0.0")
PORT = int(os.getenv("ASKDATA_PORT", "8000"))

HF_HOME = Path(os.getenv("HF_HOME", PROJECT_ROOT / "hf-cache"))
TRANSFORMERS_CACHE = HF_HOME / "transformers"
