from fastapi import FastAPI

from edgetriage.api.triage import router as triage_router
from edgetriage.core.logging import setup_logging

setup_logging()

app = FastAPI(title="Edge Triage Backend")

@app.get("/healthz", tags=["health"])
def healthz():
    return {"ok": True}


app.include_router(triage_router)
