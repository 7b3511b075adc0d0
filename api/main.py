from __future__ import annotations

import logging
import math
import secrets
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import AsyncIterator, Optional

import numpy as np
import pandas as pd
from fastapi import Depends, FastAPI, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from api.schemas import EditFieldModel, LoginModel, MetaOptionsResponse, RefreshResponse, UserResponse
from core.auth import AuthFailure, FirebaseAuthGate
from core.metrics_summary import compute_overview
from core.pagination import absolute_position
from core.records import CATALOG_COLUMNS, EDITABLE_FIELDS, STAFF_OPTIONS, STATUS_OPTIONS, InvalidEdit
from core.session import ChangePage, DashboardSession, EditField, Refresh
from core.settings import load_settings
from core.store import CollectionStore, OutOfRange


logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_session() -> DashboardSession:
    settings = load_settings()
    session = DashboardSession(CollectionStore(), FirebaseAuthGate(settings.firebase_api_key), settings=settings)
    session.start()
    return session


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    if get_session.cache_info().currsize:
        get_session().stop()
        logger.info("Dashboard session stopped")


app = FastAPI(title="IKU Catalog API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

bearer = HTTPBearer(auto_error=False)


class SignInRequired(Exception):
    """The request carries no token matching the signed-in user."""


@app.exception_handler(SignInRequired)
async def _sign_in_required(request: Request, exc: SignInRequired) -> JSONResponse:
    return _unauthorized()


def require_session(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    session: DashboardSession = Depends(get_session),
) -> DashboardSession:
    """Admit only requests bearing the signed-in user's ID token."""
    user = session.user
    if user is None or not user.id_token or creds is None:
        raise SignInRequired()
    if not secrets.compare_digest(creds.credentials, user.id_token):
        raise SignInRequired()
    return session


def _json(data: object, status_code: int = 200) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
                pd.Timestamp: lambda ts: ts.isoformat(),
            },
        ),
    )


def _error(exc: Exception, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": str(exc), "type": type(exc).__name__})


def _unauthorized() -> JSONResponse:
    return JSONResponse(status_code=401, content={"error": "Sign in required", "type": "AuthFailure"})


@app.post("/auth/login")
def login(body: LoginModel, session: DashboardSession = Depends(get_session)):
    try:
        user = session.sign_in(body.email, body.password)
    except AuthFailure as exc:
        return _error(exc, 401)
    return _json(
        UserResponse(uid=user.uid, email=user.email, id_token=user.id_token, is_admin=session.is_admin).model_dump()
    )


@app.post("/auth/logout")
def logout(session: DashboardSession = Depends(require_session)):
    session.sign_out()
    return _json({"ok": True})


@app.get("/meta/options")
def meta_options(session: DashboardSession = Depends(get_session)):
    return _json(
        MetaOptionsResponse(
            columns=CATALOG_COLUMNS,
            editable_fields=EDITABLE_FIELDS,
            status_options=STATUS_OPTIONS,
            staff_options=STAFF_OPTIONS,
            page_size=session.page_size,
        ).model_dump()
    )


@app.get("/overview")
def overview(page: Optional[int] = Query(default=None), session: DashboardSession = Depends(require_session)):
    if page is not None and not session.dispatch(ChangePage(page)):
        return _error(ValueError(f"page {page} outside 1..{session.page_count}"), 400)
    try:
        payload = compute_overview(session.store.snapshot(), page=session.page, page_size=session.page_size)
    except Exception as exc:
        logger.exception("overview failed")
        return _error(exc, 500)
    payload["last_error"] = session.last_error
    payload["user"] = {"email": session.user.email, "is_admin": session.is_admin}
    return _json(payload)


@app.post("/refresh")
def refresh(session: DashboardSession = Depends(require_session)):
    ok = session.dispatch(Refresh())
    body = RefreshResponse(ok=ok, total_records=len(session.store), error=session.last_error).model_dump()
    return _json(body, status_code=200 if ok else 502)


@app.post("/records/edit")
def edit_record(body: EditFieldModel, session: DashboardSession = Depends(require_session)):
    if body.page is not None and not session.dispatch(ChangePage(body.page)):
        return _error(ValueError(f"page {body.page} outside 1..{session.page_count}"), 400)
    try:
        session.dispatch(EditField(row=body.row, field=body.field, value=body.value))
    except InvalidEdit as exc:
        return _error(exc, 400)
    except OutOfRange as exc:
        logger.exception("edit out of range: page=%s row=%s", session.page, body.row)
        return _error(exc, 409)
    position = absolute_position(session.page, session.page_size, body.row)
    return _json({"position": position, "record": session.store.snapshot()[position]})


@app.get("/export.csv")
def export_csv(session: DashboardSession = Depends(require_session)):
    records = session.store.snapshot()
    export_df = pd.DataFrame.from_records(records, columns=list(records[0].keys()) if records else CATALOG_COLUMNS)
    csv_bytes = export_df.to_csv(index=False).encode("utf-8")
    return Response(content=csv_bytes, media_type="text/csv", headers={"Content-Disposition": "attachment; filename=catalog.csv"})
