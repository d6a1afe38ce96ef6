from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from edgetriage.core.config import settings
from edgetriage.core.errors import TriageError
from edgetriage.ingest.fetch import fetch_csv_text
from edgetriage.metrics.engine import run_triage
from edgetriage.metrics.summary import render_summary

log = logging.getLogger("api.triage")

router = APIRouter(prefix="/triage", tags=["triage"])


class TriageRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    csv_text: Optional[str] = Field(None, alias="csvText", description="Raw CSV, header line first")
    csv_url: Optional[str] = Field(None, alias="csvUrl", description="Fetched when csvText is empty")
    service: str = Field("all", description="'all' = wildcard")
    region: str = "all"
    pop: str = "all"
    window_minutes: Union[float, str] = Field(settings.WINDOW_MINUTES, alias="windowMinutes")
    filters: Union[str, List[Dict[str, Any]], None] = None
    debug: bool = settings.DEBUG_DEFAULT


class TriageResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ok: bool = True
    summary_text: str = Field(..., alias="summaryText")
    metrics: Dict[str, Any]


def _csv_for(req: TriageRequest) -> str:
    if req.csv_text and req.csv_text.strip():
        return req.csv_text
    if req.csv_url and req.csv_url.strip():
        return fetch_csv_text(req.csv_url.strip())
    raise HTTPException(status_code=400, detail="Provide either csvText or csvUrl.")


@router.post("", response_model=TriageResponse, response_model_by_alias=True)
def triage(req: TriageRequest) -> TriageResponse:
    try:
        csv_text = _csv_for(req)
        result = run_triage(
            csv_text,
            service=req.service,
            region=req.region,
            pop=req.pop,
            window_minutes=req.window_minutes,
            filters=req.filters,
            debug=req.debug,
            limits=settings.limits(),
        )
    except TriageError as e:
        log.warning("triage_rejected", extra={"stage": "api", "error": type(e).__name__})
        raise HTTPException(status_code=400, detail=str(e))

    return TriageResponse(summary_text=render_summary(result), metrics=result.to_dict())
