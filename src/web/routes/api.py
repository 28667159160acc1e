from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from runtime.store import SnapshotStore
from ..api_models import serialize_snapshot
from ..etag import etag_matches, make_etag

router = APIRouter()

NO_STORE_HEADERS = {
    "Cache-Control": "no-store",
    "Access-Control-Allow-Origin": "*",
}


def get_store(request: Request) -> SnapshotStore:
    return request.app.state.store


@router.get("/healthz", response_class=PlainTextResponse)
def healthz():
    """Liveness only: never touches the store or the detector."""
    return PlainTextResponse("ok")


@router.get("/faces")
def faces(request: Request, store: SnapshotStore = Depends(get_store)):
    """
    Latest snapshot with conditional-GET support.

    The ETag is derived from (store version, frame). A matching
    If-None-Match yields 304 with no body. Responses are never cacheable by
    intermediaries and are readable cross-origin.
    """
    snap, version = store.get()
    etag = make_etag(version, snap.frame)
    headers = dict(NO_STORE_HEADERS, ETag=etag)

    if etag_matches(request.headers.get("if-none-match"), etag):
        return Response(status_code=304, headers=headers)

    try:
        body = serialize_snapshot(snap)
    except Exception:
        logging.exception(f"[http] failed to serialize snapshot frame={snap.frame}")
        return JSONResponse(
            {"detail": "failed to serialize snapshot"},
            status_code=500,
            headers=NO_STORE_HEADERS,
        )

    return Response(content=body, media_type="application/json", headers=headers)
