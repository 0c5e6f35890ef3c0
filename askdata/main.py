from contextlib import asynccontextmanager
import asyncio
import logging

from fastapi import Depends, FastAPI, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from askdata import models  # noqa: F401  (registers tables on Base.metadata)
from askdata.db import engine, Base, get_db, ping
from askdata.nl.translator import IntentTranslator
from askdata.routers.query import router as query_router
from askdata.settings import (
    CREATE_TABLES, DATABASE_URL, DATABASE_URL_CONFIGURED, LLM_ENABLED, LOG_LEVEL, MODEL_ID,
    PRELOAD_BLOCKING, REFERENCE_DATE,
)
from askdata.setup_logging import setup_logging

# --------------------------------------------------------------------
# App bootstrap
# --------------------------------------------------------------------
setup_logging(LOG_LEVEL)
log = logging.getLogger(__name__)


def build_generator():
    """The text generation backend, or None when the model is switched off."""
    if not LLM_ENABLED:
        return None
    # torch/transformers are only imported when a model is actually wanted
    from askdata.nl.model_loader import LocalModelClient
    return LocalModelClient()


# --------------------------------------------------------------------
# FastAPI application with lifespan hook
# --------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Runs once at startup: creates missing tables, builds the translator
    and optionally warms up the model so the first /query is fast.
    """
    if CREATE_TABLES:
        Base.metadata.create_all(bind=engine)

    generator = build_generator()
    app.state.translator = IntentTranslator(generator, today=REFERENCE_DATE)
    app.state.model_ready = False
    app.state.model_error = None

    async def _warmup():
        try:
            if PRELOAD_BLOCKING:
                # Blocking: server waits for the model
                generator.load()
            else:
                # Non-blocking: offload to a background thread
                await asyncio.to_thread(generator.load)
            app.state.model_ready = True
        except Exception as e:
            # /query keeps working through the fallback parser
            log.exception("model warmup failed")
            app.state.model_error = str(e)
            app.state.model_ready = False

    if generator is not None:
        if PRELOAD_BLOCKING:
            await _warmup()
        else:
            asyncio.create_task(_warmup())

    yield


app = FastAPI(title="askdata", lifespan=lifespan)

# --------------------------------------------------------------------
# Routes
# --------------------------------------------------------------------
@app.get("/healthz")
def health(request: Request, db: Session = Depends(get_db)):
    """
    Diagnostic probe:
      - database: True when a trivial query round-trips
      - model_ready / model_error: state of the NL->intent model
      - env: which pieces of configuration are present
    """
    errors = []
    database = False
    try:
        database = ping(db)
    except SQLAlchemyError as e:
        errors.append({"database": str(e)})

    state = request.app.state
    return {
        "ok": database,
        "service": "askdata",
        "database": database,
        "llm_enabled": LLM_ENABLED,
        "model_ready": bool(getattr(state, "model_ready", False)),
        "model_error": getattr(state, "model_error", None),
        "env": {
            "has_db_url": DATABASE_URL_CONFIGURED,
            "database_backend": DATABASE_URL.split(":", 1)[0],
            "model_id": MODEL_ID if LLM_ENABLED else None,
        },
        "errors": errors,
    }

# Register API routers:
app.include_router(query_router)
