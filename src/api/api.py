import logging
from contextlib import asynccontextmanager
from datetime import datetime
from time import perf_counter
from typing import Annotated, Any, AsyncGenerator, Awaitable, Callable, get_args

from fastapi import Depends, FastAPI, HTTPException, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, TypeAdapter, ValidationError
from sqlalchemy.orm import sessionmaker

from api.dependencies import (
    get_blend_preset_service,
    get_current_user_id,
    get_exchange_rate_source,
    get_ledger_preset_service,
    get_market_data_monitor,
)
from config import config
from db.db import create_db_engine
from domain import reconciliation
from domain.base_types import PresetId, UserId
from domain.blend import BlendState, BlendSummary, summarize
from domain.ledger import ConceptRemovalError, LedgerBreakdown, LedgerState, compute_breakdown
from domain.presets import BlendPreset, LedgerPreset
from domain.reorder import UnknownItemError
from services.auth_gateway import HeaderAuthGateway
from services.exchange_rate_source import ExchangeRateAPIError, ExchangeRateSource, LatestRate
from services.market_data_service import MarketDataMonitor
from services.market_data_types import ReferencePrices
from services.preset_service import BlendPresetService, LedgerPresetService, PresetNotFoundError
from services.yahoo_finance_source import YahooFinanceMarketData

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI) -> AsyncGenerator[None, None]:
    settings = config()
    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    engine = create_db_engine(settings.database_url)
    fastapi_app.state.sessionmaker = sessionmaker(engine)
    fastapi_app.state.auth_gateway = HeaderAuthGateway(header_name=settings.auth_header)
    fastapi_app.state.market_data_monitor = MarketDataMonitor(YahooFinanceMarketData())
    fastapi_app.state.exchange_rate_source = ExchangeRateSource()
    yield
    engine.dispose()


app = FastAPI(lifespan=lifespan)


@app.middleware("http")
async def log_process_time(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
    start_time = perf_counter()
    response = await call_next(request)
    process_time = perf_counter() - start_time
    logger.info("Request time: %s %s: %.4fs", request.method, request.url, process_time)
    return response


@app.exception_handler(PresetNotFoundError)
async def preset_not_found_handler(request: Request, exc: PresetNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": "Preset not found"})


@app.exception_handler(ConceptRemovalError)
async def concept_removal_handler(request: Request, exc: ConceptRemovalError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": str(exc)})


@app.exception_handler(UnknownItemError)
async def unknown_item_handler(request: Request, exc: UnknownItemError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": f"Unknown item {exc.item_id}"})


# Presets


class LedgerPresetCreate(BaseModel):
    name: str
    snapshot: LedgerState


class BlendPresetCreate(BaseModel):
    name: str
    snapshot: BlendState


class PresetUpdate(BaseModel):
    id: PresetId
    name: str | None = None
    snapshot: dict[str, Any] | None = None


class Ack(BaseModel):
    message: str


def _require_name(name: str) -> None:
    if not name.strip():
        raise HTTPException(status_code=400, detail="Preset name is required")


@app.get("/api/presets")
def list_presets(
    user_id: Annotated[UserId, Depends(get_current_user_id)],
    service: Annotated[LedgerPresetService, Depends(get_ledger_preset_service)],
) -> list[LedgerPreset]:
    return service.list(user_id)


@app.post("/api/presets", status_code=201)
def create_preset(
    body: LedgerPresetCreate,
    user_id: Annotated[UserId, Depends(get_current_user_id)],
    service: Annotated[LedgerPresetService, Depends(get_ledger_preset_service)],
) -> LedgerPreset:
    _require_name(body.name)
    return service.create(user_id, body.name, body.snapshot)


@app.put("/api/presets")
def update_preset(
    body: PresetUpdate,
    user_id: Annotated[UserId, Depends(get_current_user_id)],
    service: Annotated[LedgerPresetService, Depends(get_ledger_preset_service)],
) -> LedgerPreset:
    if body.name is not None:
        _require_name(body.name)
    try:
        return service.update(user_id, body.id, name=body.name, changes=body.snapshot)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@app.delete("/api/presets")
def delete_preset(
    id: PresetId,
    user_id: Annotated[UserId, Depends(get_current_user_id)],
    service: Annotated[LedgerPresetService, Depends(get_ledger_preset_service)],
) -> Ack:
    service.delete(user_id, id)
    return Ack(message="Preset deleted successfully")


@app.get("/api/blend-presets")
def list_blend_presets(
    user_id: Annotated[UserId, Depends(get_current_user_id)],
    service: Annotated[BlendPresetService, Depends(get_blend_preset_service)],
) -> list[BlendPreset]:
    return service.list(user_id)


@app.post("/api/blend-presets", status_code=201)
def create_blend_preset(
    body: BlendPresetCreate,
    user_id: Annotated[UserId, Depends(get_current_user_id)],
    service: Annotated[BlendPresetService, Depends(get_blend_preset_service)],
) -> BlendPreset:
    _require_name(body.name)
    return service.create(user_id, body.name, body.snapshot)


@app.put("/api/blend-presets")
def update_blend_preset(
    body: PresetUpdate,
    user_id: Annotated[UserId, Depends(get_current_user_id)],
    service: Annotated[BlendPresetService, Depends(get_blend_preset_service)],
) -> BlendPreset:
    if body.name is not None:
        _require_name(body.name)
    try:
        return service.update(user_id, body.id, name=body.name, changes=body.snapshot)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@app.delete("/api/blend-presets")
def delete_blend_preset(
    id: PresetId,
    user_id: Annotated[UserId, Depends(get_current_user_id)],
    service: Annotated[BlendPresetService, Depends(get_blend_preset_service)],
) -> Ack:
    service.delete(user_id, id)
    return Ack(message="Preset deleted successfully")


# Calculators


_COMMAND_TYPES: dict[str, type] = {
    command_type.__name__: command_type
    for command_type in get_args(reconciliation.LedgerCommand)
    if command_type is not reconciliation.LoadLedger
}


class LedgerCommandRequest(BaseModel):
    """One ledger command, named by its class (e.g. "EditConceptValue"), applied to `state`."""

    state: LedgerState
    command: str
    args: dict[str, Any] = Field(default_factory=dict)


class LedgerCommandResponse(BaseModel):
    state: LedgerState
    display: reconciliation.LedgerDisplay
    accepted: bool


def _parse_command(body: LedgerCommandRequest) -> reconciliation.LedgerCommand:
    command_type = _COMMAND_TYPES.get(body.command)
    if command_type is None:
        raise HTTPException(status_code=400, detail=f"Unknown command {body.command}")
    try:
        return TypeAdapter(command_type).validate_python(body.args)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@app.post("/api/ledger/commands")
def apply_ledger_command(body: LedgerCommandRequest) -> LedgerCommandResponse:
    try:
        result = reconciliation.reconcile(body.state, _parse_command(body))
    except IndexError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return LedgerCommandResponse(state=result.state, display=result.display, accepted=result.accepted)


@app.post("/api/ledger/breakdown")
def ledger_breakdown(state: LedgerState) -> LedgerBreakdown:
    return compute_breakdown(state)


@app.post("/api/blend/summary")
def blend_summary(state: BlendState) -> BlendSummary:
    return summarize(state)


# Market data


class MarketDataResponse(BaseModel):
    prices: ReferencePrices | None
    error: str | None
    refreshed_at: datetime | None


@app.get("/api/gas-prices")
def gas_prices(monitor: Annotated[MarketDataMonitor, Depends(get_market_data_monitor)]) -> MarketDataResponse:
    snapshot = monitor.refresh_if_due()
    if snapshot.prices is None:
        raise HTTPException(status_code=502, detail=snapshot.error or "Failed to fetch data")
    return MarketDataResponse(prices=snapshot.prices, error=snapshot.error, refreshed_at=snapshot.refreshed_at)


@app.get("/api/exchange-rate")
def exchange_rate(source: Annotated[ExchangeRateSource, Depends(get_exchange_rate_source)]) -> LatestRate:
    try:
        return source.fetch_rate()
    except ExchangeRateAPIError as exc:
        logger.warning("Exchange rate fetch failed: %s", exc)
        raise HTTPException(status_code=502, detail="Failed to fetch exchange rate") from exc
