from __future__ import annotations

import logging
import os

from fastapi import Depends, FastAPI, HTTPException

from seatplan.api.deps import require_api_key
from seatplan.api.routers import auth, dashboard, rest
from seatplan.infra.db import check_db_ready
from seatplan.infra.session_middleware import SessionMiddleware

logging.basicConfig(
    level=os.getenv("SEATPLAN_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="seatplan",
    description="Classroom seating plan dashboard scoped to an establishment.",
    version="0.1.0",
)

app.add_middleware(SessionMiddleware)

app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
app.include_router(
    rest.router,
    prefix="/api/rest",
    tags=["rest"],
    dependencies=[Depends(require_api_key)],
)
app.include_router(dashboard.router, tags=["dashboard"])


@app.get("/healthz")
def healthz() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/readyz")
def readyz() -> dict[str, object]:
    db_ok = check_db_ready()
    checks = {"db": "ok" if db_ok else "fail"}
    if not db_ok:
        raise HTTPException(
            status_code=503,
            detail={"status": "not_ready", "checks": checks},
        )
    return {"status": "ready", "checks": checks}
