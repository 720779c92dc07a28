from typing import Annotated, Generator

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from db.repositories import BlendPresetRepository, LedgerPresetRepository
from domain.base_types import UserId
from services.auth_gateway import AuthGateway, UnauthorizedError
from services.exchange_rate_source import ExchangeRateSource
from services.market_data_service import MarketDataMonitor
from services.preset_service import BlendPresetService, LedgerPresetService


def get_session(request: Request) -> Generator[Session, None, None]:
    with request.app.state.sessionmaker() as session:
        yield session


def get_auth_gateway(request: Request) -> AuthGateway:
    return request.app.state.auth_gateway


def get_current_user_id(request: Request, gateway: Annotated[AuthGateway, Depends(get_auth_gateway)]) -> UserId:
    try:
        return gateway.authenticated_user_id(request.headers)
    except UnauthorizedError as exc:
        raise HTTPException(status_code=401, detail="Unauthorized") from exc


def get_ledger_preset_service(session: Annotated[Session, Depends(get_session)]) -> LedgerPresetService:
    return LedgerPresetService(LedgerPresetRepository(session))


def get_blend_preset_service(session: Annotated[Session, Depends(get_session)]) -> BlendPresetService:
    return BlendPresetService(BlendPresetRepository(session))


def get_market_data_monitor(request: Request) -> MarketDataMonitor:
    return request.app.state.market_data_monitor


def get_exchange_rate_source(request: Request) -> ExchangeRateSource:
    return request.app.state.exchange_rate_source
