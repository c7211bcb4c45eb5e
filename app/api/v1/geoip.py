from fastapi import APIRouter, HTTPException, Query, Request, status

from app.core.logging_buffer import decision_buffer
from app.schemas.geoip import DecisionListResponse, DecisionSummaryResponse, GeoLookupResponse

router = APIRouter(prefix="/geoip", tags=["geoip"])


@router.get("/me", response_model=GeoLookupResponse)
async def geoip_me(request: Request):
    ctx = getattr(request.state, "geoip", None)
    if ctx is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="GeoIP is disabled")
    return GeoLookupResponse(
        client_ip=str(ctx.client_ip) if ctx.client_ip is not None else None,
        verdict=ctx.verdict.value,
        attributes=ctx.attributes(),
    )


# ==================== DECISIONS (LIVE JOURNAL) ====================

@router.post("/decisions/start")
async def decisions_start():
    decision_buffer.start()
    return {"status": "ok", "enabled": True}


@router.post("/decisions/stop")
async def decisions_stop():
    decision_buffer.stop()
    return {"status": "ok", "enabled": False}


@router.post("/decisions/clear")
async def decisions_clear():
    decision_buffer.clear()
    return {"status": "ok"}


@router.get("/decisions/summary", response_model=DecisionSummaryResponse)
async def decisions_summary(top: int = Query(10, ge=1, le=100)):
    return DecisionSummaryResponse(**decision_buffer.summary(top=top))


@router.get("/decisions", response_model=DecisionListResponse)
async def list_decisions(
    verdict: str = Query("all"),
    limit: int = Query(200, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    country_code: str | None = Query(None),
):
    items = decision_buffer.get_logs(verdict=verdict, limit=limit, offset=offset, country_code=country_code)
    return DecisionListResponse(enabled=decision_buffer.enabled, items=items, count=len(items))
