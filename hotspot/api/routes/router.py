"""
Router bridge endpoints. All of them require the static router key in the
x-api-key header or the api_key query parameter; a bad key is a bare 403.
"""
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy.orm import Session

from hotspot.api.deps import require_router_key
from hotspot.core.errors import JobNotFound, WrongState
from hotspot.db.session import get_db
from hotspot.services.router_bridge import RouterBridge


router = APIRouter(tags=["router"], dependencies=[Depends(require_router_key)])


@router.get("/pending", response_class=PlainTextResponse)
@router.get("/api/mikrotik-queue-text", response_class=PlainTextResponse, include_in_schema=False)
def pending(db: Session = Depends(get_db)) -> PlainTextResponse:
    return PlainTextResponse(RouterBridge(db).pending_feed())


@router.post("/ack-processed/{token:path}")
@router.post("/api/mark-processed/{token:path}", include_in_schema=False)
def ack_processed(token: str, db: Session = Depends(get_db)):
    try:
        RouterBridge(db).ack_processed(token)
    except (JobNotFound, WrongState) as exc:
        return JSONResponse(status_code=exc.status_code, content={"success": False, "error": exc.code})
    return {"success": True}


@router.get("/expired", response_class=PlainTextResponse)
def expired(db: Session = Depends(get_db)) -> PlainTextResponse:
    return PlainTextResponse(RouterBridge(db).expired_feed())


@router.post("/ack-expired/{token:path}")
def ack_expired(token: str, db: Session = Depends(get_db)):
    try:
        RouterBridge(db).ack_expired(token)
    except WrongState as exc:
        return JSONResponse(status_code=exc.status_code, content={"success": False, "error": exc.code})
    return {"success": True}
