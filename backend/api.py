"""FastAPI entrypoint for the finance tracker HTTP API."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, TypeVar

from fastapi import Depends, FastAPI, Header, HTTPException, Query
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.requests import Request
from fastapi.responses import JSONResponse, Response

from shared import config as _config
from backend.auth.tokens import UnauthorizedError
from backend.factory import BackendServices, build_backend_services
from backend.reporting.transactions_csv import export_filename, render_transactions_csv
from backend.services.errors import format_validation_errors
from shared.models import (
    AccountDeleteRequest,
    AuthResult,
    BudgetCreateRequest,
    BudgetOut,
    CategorySpentResult,
    DashboardResult,
    ErrorCode,
    LoginRequest,
    MessageResult,
    Principal,
    ProfileUpdateRequest,
    ProfileUpdateResult,
    RegisterRequest,
    ServiceError,
    TransactionCreateRequest,
    TransactionListResult,
    TransactionOut,
    TransactionSummary,
    TransactionUpdateRequest,
    UserOut,
)


logger = logging.getLogger(__name__)

ResultT = TypeVar("ResultT")

_STATUS_BY_ERROR_CODE: dict[ErrorCode, int] = {
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.CONFLICT: 400,
    ErrorCode.UNAUTHORIZED: 401,
    ErrorCode.NOT_FOUND: 404,
}


@lru_cache(maxsize=1)
def get_backend_services() -> BackendServices:
    """Create and cache backend services once per process."""

    return build_backend_services()


def get_principal(authorization: str | None = Header(default=None)) -> Principal:
    """Resolve the authenticated user from the authorization header.

    Used as a dependency so credentials are checked before the request body
    is validated.
    """

    try:
        return get_backend_services().credential_verifier.verify(authorization)
    except UnauthorizedError as exc:
        raise HTTPException(status_code=401, detail=exc.message) from exc


def _unwrap(result: ResultT | ServiceError) -> ResultT:
    if isinstance(result, ServiceError):
        raise HTTPException(status_code=_STATUS_BY_ERROR_CODE[result.code], detail=result.message)
    return result


def _present(params: dict[str, str | None]) -> dict[str, str]:
    """Drop query parameters that were omitted or sent empty."""

    return {key: value for key, value in params.items() if value is not None and value.strip() != ""}


@asynccontextmanager
async def lifespan(_app: FastAPI):
    yield
    if get_backend_services.cache_info().currsize:
        get_backend_services().close()
    get_backend_services.cache_clear()


app = FastAPI(title="Finance Tracker API", lifespan=lifespan)

ALLOW_ORIGINS = _config.cors_allow_origins()


@app.middleware("http")
async def log_http_requests(request: Request, call_next):
    """Log incoming requests, HTTP status codes and unexpected errors."""

    logger.info("http_request_received method=%s path=%s", request.method, request.url.path)
    try:
        response = await call_next(request)
    except Exception:
        logger.exception(
            "http_request_failed method=%s path=%s",
            request.method,
            request.url.path,
        )
        raise

    logger.info(
        "http_response_sent method=%s path=%s status_code=%s",
        request.method,
        request.url.path,
        response.status_code,
    )
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

logger.info("cors_allow_origins=%s", ALLOW_ORIGINS)


@app.exception_handler(RequestValidationError)
async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed bodies and parameters as 400 instead of FastAPI's 422."""

    errors = [
        {key: error[key] for key in ("type", "loc", "msg") if key in error}
        for error in exc.errors()
    ]
    logger.info(
        "request_validation_failed method=%s path=%s error_count=%s",
        request.method,
        request.url.path,
        len(errors),
    )
    return JSONResponse(
        status_code=400,
        content={"detail": format_validation_errors(errors), "errors": jsonable_encoder(errors)},
    )


@app.exception_handler(Exception)
async def handle_unexpected_exception(request: Request, exc: Exception) -> JSONResponse:
    """Return a JSON 500 response for unhandled exceptions."""

    logger.exception(
        "unhandled_exception method=%s path=%s exception_type=%s message=%s",
        request.method,
        request.url.path,
        type(exc).__name__,
        str(exc),
        exc_info=exc,
    )
    return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})


@app.get("/health")
def health() -> dict[str, str]:
    """Healthcheck endpoint."""

    return {"status": "ok"}


# ------------------------------------------------------------------ auth/users


@app.post("/auth/register", response_model=AuthResult, status_code=201)
def register(payload: RegisterRequest) -> Any:
    return _unwrap(get_backend_services().user_service.register(payload))


@app.post("/auth/login", response_model=AuthResult)
def login(payload: LoginRequest) -> Any:
    return _unwrap(get_backend_services().user_service.login(payload))


@app.get("/dashboard", response_model=DashboardResult)
def dashboard(principal: Principal = Depends(get_principal)) -> Any:
    return get_backend_services().user_service.dashboard(principal)


@app.get("/user/profile", response_model=UserOut)
def get_profile(principal: Principal = Depends(get_principal)) -> Any:
    return _unwrap(get_backend_services().user_service.get_profile(principal))


@app.put("/user/profile", response_model=ProfileUpdateResult)
def update_profile(payload: ProfileUpdateRequest, principal: Principal = Depends(get_principal)) -> Any:
    return _unwrap(get_backend_services().user_service.update_profile(principal, payload))


@app.delete("/user/account", response_model=MessageResult)
def delete_account(
    payload: AccountDeleteRequest | None = None,
    principal: Principal = Depends(get_principal),
) -> Any:
    request = payload if payload is not None else AccountDeleteRequest()
    return _unwrap(get_backend_services().user_service.delete_account(principal, request))


# ---------------------------------------------------------------- transactions


@app.get("/transactions", response_model=TransactionListResult)
def list_transactions(
    principal: Principal = Depends(get_principal),
    transaction_type: str | None = Query(default=None, alias="type"),
    category: str | None = None,
    start_date: str | None = Query(default=None, alias="startDate"),
    end_date: str | None = Query(default=None, alias="endDate"),
    page: str | None = None,
    limit: str | None = None,
) -> Any:
    """List the caller's transactions, newest first, one page at a time."""

    params = _present(
        {
            "type": transaction_type,
            "category": category,
            "startDate": start_date,
            "endDate": end_date,
            "page": page,
            "limit": limit,
        }
    )
    return _unwrap(get_backend_services().transaction_service.list_transactions(principal.id, params))


@app.get("/transactions/summary/stats", response_model=TransactionSummary)
def get_transaction_summary(
    principal: Principal = Depends(get_principal),
    start_date: str | None = Query(default=None, alias="startDate"),
    end_date: str | None = Query(default=None, alias="endDate"),
) -> Any:
    params = _present({"startDate": start_date, "endDate": end_date})
    return _unwrap(get_backend_services().transaction_service.summarize_transactions(principal.id, params))


@app.get("/transactions/export")
def export_transactions(
    principal: Principal = Depends(get_principal),
    transaction_type: str | None = Query(default=None, alias="type"),
    category: str | None = None,
    start_date: str | None = Query(default=None, alias="startDate"),
    end_date: str | None = Query(default=None, alias="endDate"),
) -> Response:
    params = _present(
        {
            "type": transaction_type,
            "category": category,
            "startDate": start_date,
            "endDate": end_date,
        }
    )
    transactions = _unwrap(get_backend_services().transaction_service.export_transactions(principal.id, params))
    filename = export_filename(datetime.now(timezone.utc).date())
    logger.info("transactions_exported owner_id=%s count=%s", principal.id, len(transactions))
    return Response(
        content=render_transactions_csv(transactions),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.get("/transactions/category/{category}/spent", response_model=CategorySpentResult)
def get_category_spent(
    category: str,
    principal: Principal = Depends(get_principal),
    start_date: str | None = Query(default=None, alias="startDate"),
    end_date: str | None = Query(default=None, alias="endDate"),
) -> Any:
    params = _present({"startDate": start_date, "endDate": end_date})
    return _unwrap(get_backend_services().transaction_service.category_spent(principal.id, category, params))


@app.get("/transactions/{transaction_id}", response_model=TransactionOut)
def get_transaction(transaction_id: str, principal: Principal = Depends(get_principal)) -> Any:
    return _unwrap(get_backend_services().transaction_service.get_transaction(principal.id, transaction_id))


@app.post("/transactions", response_model=TransactionOut, status_code=201)
def create_transaction(payload: TransactionCreateRequest, principal: Principal = Depends(get_principal)) -> Any:
    return _unwrap(get_backend_services().transaction_service.create_transaction(principal.id, payload))


@app.put("/transactions/{transaction_id}", response_model=TransactionOut)
def update_transaction(
    transaction_id: str,
    payload: TransactionUpdateRequest,
    principal: Principal = Depends(get_principal),
) -> Any:
    return _unwrap(
        get_backend_services().transaction_service.update_transaction(principal.id, transaction_id, payload)
    )


@app.delete("/transactions/{transaction_id}", response_model=MessageResult)
def delete_transaction(transaction_id: str, principal: Principal = Depends(get_principal)) -> Any:
    return _unwrap(get_backend_services().transaction_service.delete_transaction(principal.id, transaction_id))


# --------------------------------------------------------------------- budgets


@app.get("/budgets", response_model=list[BudgetOut])
def list_budgets(principal: Principal = Depends(get_principal)) -> Any:
    return get_backend_services().budget_service.list_budgets(principal.id)


@app.post("/budgets", response_model=BudgetOut, status_code=201)
def create_budget(payload: BudgetCreateRequest, principal: Principal = Depends(get_principal)) -> Any:
    return get_backend_services().budget_service.create_budget(principal.id, payload)


@app.delete("/budgets/{budget_id}", response_model=MessageResult)
def delete_budget(budget_id: str, principal: Principal = Depends(get_principal)) -> Any:
    return _unwrap(get_backend_services().budget_service.delete_budget(principal.id, budget_id))
