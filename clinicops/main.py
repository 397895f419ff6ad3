from pathlib import Path

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from sqlalchemy import text

from .api import router
from .config import settings
from .core.logging_config import setup_logging
from .core.middleware import RequestTracingMiddleware, SecurityHeadersMiddleware
from .db import SessionLocal, create_schema


def _read_app_version() -> str:
    version_file = Path(__file__).resolve().parents[1] / "VERSION"
    try:
        value = version_file.read_text(encoding="utf-8").strip()
        return value or "0.1.0"
    except OSError:
        return "0.1.0"


if settings.DATABASE_URL.startswith("sqlite") or bool(settings.DB_AUTO_CREATE_ALL):
    create_schema()
setup_logging()

app = FastAPI(
    title="ClinicOps Capacity",
    description="Therapist capacity and workload analytics API",
    version=_read_app_version(),
)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestTracingMiddleware)


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/health/ready")
def ready():
    try:
        with SessionLocal() as db:
            db.execute(text("SELECT 1"))
    except Exception:
        return JSONResponse(status_code=503, content={"status": "not_ready", "checks": {"db": "error"}})
    return {"status": "ready", "checks": {"db": "ok"}}


app.include_router(router)
