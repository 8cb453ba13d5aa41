# scholarmatch/main.py
from fastapi import Depends, FastAPI, HTTPException
from contextlib import asynccontextmanager
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from .db import Base, engine, get_db
from . import models
from .errors import install_error_handlers
from .settings import get_settings
from .ai.model_loader import get_orchestrator
from .routes import catalog, eligibility, predictions, training


def _ensure_db_ready() -> None:
    Base.metadata.create_all(bind=engine)


# Run schema init at import time so pytest cannot bypass it
_ensure_db_ready()


@asynccontextmanager
async def lifespan(app: FastAPI):
    _ensure_db_ready()
    yield
    # let in-flight retrains finish before the process exits
    get_orchestrator().shutdown(wait_for_runs=True)
    get_orchestrator.cache_clear()


app = FastAPI(title="ScholarMatch API", version=get_settings().APP_VERSION, lifespan=lifespan)
install_error_handlers(app)

app.include_router(eligibility.router)
app.include_router(predictions.router)
app.include_router(catalog.router)
app.include_router(training.router)


@app.get("/")
def health(db: Session = Depends(get_db)):
    """Liveness plus a database round-trip."""
    settings = get_settings()
    status = {
        "status": "ok",
        "service": "scholarmatch",
        "env": settings.ENV,
        "model_version": settings.MODEL_VERSION,
        "schema_version": settings.SCHEMA_VERSION,
        "tables": sorted(models.Base.metadata.tables),
        "checks": {},
    }
    try:
        db.execute(text("SELECT 1"))
        status["checks"]["database"] = "ok"
    except SQLAlchemyError as exc:
        status["status"] = "degraded"
        status["checks"]["database"] = f"failed: {exc}"
        raise HTTPException(503, detail=status)
    return status
