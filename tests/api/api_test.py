from datetime import datetime, timezone
from decimal import Decimal
from typing import Generator
from unittest.mock import Mock
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from httpx import Response
from sqlalchemy.orm import Session

from api.api import app
from api.dependencies import get_auth_gateway, get_exchange_rate_source, get_market_data_monitor, get_session
from domain.base_types import Representation
from domain.blend import BlendState
from domain.ledger import LedgerState
from services.auth_gateway import HeaderAuthGateway
from services.exchange_rate_source import ExchangeRateAPIError, LatestRate
from services.market_data_service import MarketDataMonitor
from services.market_data_types import MarketDataError, ReferencePrice, ReferencePrices

NOW = datetime(2024, 6, 1, 12, tzinfo=timezone.utc)
ALICE = {"X-User-Id": "alice"}
BOB = {"X-User-Id": "bob"}


def _reference_price(symbol: str, price: str) -> ReferencePrice:
    return ReferencePrice(
        symbol=symbol,
        price=Decimal(price),
        change=Decimal("0"),
        change_percent=Decimal("0"),
        timestamp=NOW,
        currency="USD",
        historical=(),
    )


@pytest.fixture()
def gateway() -> Mock:
    gateway = Mock()
    gateway.fetch_reference_prices.return_value = ReferencePrices(
        gasoline=_reference_price("RB=F", "2.31"),
        heating_oil=_reference_price("HO=F", "2.65"),
        usd_mxn=_reference_price("USDMXN=X", "17.02"),
    )
    return gateway


@pytest.fixture()
def rate_source() -> Mock:
    source = Mock()
    source.fetch_rate.return_value = LatestRate(base="USD", quote="MXN", rate=Decimal("17.0512"), updated_at=NOW)
    return source


@pytest.fixture()
def client(test_session: Session, gateway: Mock, rate_source: Mock) -> Generator[TestClient, None, None]:
    monitor = MarketDataMonitor(gateway, clock=lambda: NOW)
    app.dependency_overrides[get_session] = lambda: test_session
    app.dependency_overrides[get_auth_gateway] = lambda: HeaderAuthGateway(header_name="X-User-Id")
    app.dependency_overrides[get_market_data_monitor] = lambda: monitor
    app.dependency_overrides[get_exchange_rate_source] = lambda: rate_source
    yield TestClient(app)
    app.dependency_overrides.clear()


def _ledger_payload(state: LedgerState) -> dict:
    return state.model_dump(mode="json")


def test_presets_require_user(client: TestClient) -> None:
    response = client.get("/api/presets")

    assert response.status_code == 401
    assert response.json() == {"detail": "Unauthorized"}


def test_preset_lifecycle(client: TestClient, ledger_state: LedgerState) -> None:
    created = client.post(
        "/api/presets", json={"name": "Monterrey", "snapshot": _ledger_payload(ledger_state)}, headers=ALICE
    )
    assert created.status_code == 201
    preset = created.json()
    assert preset["user_id"] == "alice"
    assert Decimal(preset["snapshot"]["exchange_rate"]) == Decimal("20")

    listed = client.get("/api/presets", headers=ALICE).json()
    assert [p["id"] for p in listed] == [preset["id"]]
    assert client.get("/api/presets", headers=BOB).json() == []

    updated = client.put(
        "/api/presets",
        json={"id": preset["id"], "name": "Saltillo", "snapshot": {"exchange_rate": "18.5"}},
        headers=ALICE,
    )
    assert updated.status_code == 200
    assert updated.json()["name"] == "Saltillo"
    assert Decimal(updated.json()["snapshot"]["exchange_rate"]) == Decimal("18.5")
    assert Decimal(updated.json()["snapshot"]["gallons"]) == Decimal("1000")

    deleted = client.delete("/api/presets", params={"id": preset["id"]}, headers=ALICE)
    assert deleted.status_code == 200
    assert deleted.json() == {"message": "Preset deleted successfully"}
    assert client.get("/api/presets", headers=ALICE).json() == []


def test_preset_name_is_required(client: TestClient, ledger_state: LedgerState) -> None:
    response = client.post(
        "/api/presets", json={"name": " ", "snapshot": _ledger_payload(ledger_state)}, headers=ALICE
    )

    assert response.status_code == 400


def test_other_users_preset_is_not_found(client: TestClient, ledger_state: LedgerState) -> None:
    preset = client.post(
        "/api/presets", json={"name": "Mine", "snapshot": _ledger_payload(ledger_state)}, headers=ALICE
    ).json()

    update = client.put("/api/presets", json={"id": preset["id"], "name": "Stolen"}, headers=BOB)
    delete = client.delete("/api/presets", params={"id": preset["id"]}, headers=BOB)

    assert update.status_code == 404
    assert delete.status_code == 404
    assert update.json() == {"error": "Preset not found"}


def test_invalid_snapshot_update_is_bad_request(client: TestClient, ledger_state: LedgerState) -> None:
    preset = client.post(
        "/api/presets", json={"name": "Mine", "snapshot": _ledger_payload(ledger_state)}, headers=ALICE
    ).json()

    response = client.put("/api/presets", json={"id": preset["id"], "snapshot": {"decimal_places": 3}}, headers=ALICE)

    assert response.status_code == 400


def test_blend_preset_lifecycle(client: TestClient) -> None:
    snapshot = BlendState.initial().model_dump(mode="json")

    created = client.post("/api/blend-presets", json={"name": "Mix", "snapshot": snapshot}, headers=ALICE)
    assert created.status_code == 201
    preset_id = created.json()["id"]

    assert [p["id"] for p in client.get("/api/blend-presets", headers=ALICE).json()] == [preset_id]
    assert client.delete("/api/blend-presets", params={"id": preset_id}, headers=ALICE).status_code == 200
    assert client.get("/api/blend-presets", headers=ALICE).json() == []


def test_ledger_breakdown(client: TestClient, ledger_state: LedgerState) -> None:
    response = client.post("/api/ledger/breakdown", json=_ledger_payload(ledger_state))

    assert response.status_code == 200
    body = response.json()
    assert Decimal(body["totals"]["usd_total"]) == Decimal("2500")
    assert body["rows"][0]["name"] == "Molecule Price"


def _command(client: TestClient, state: LedgerState, command: str, **args: object) -> Response:
    return client.post("/api/ledger/commands", json={"state": _ledger_payload(state), "command": command, "args": args})


def test_ledger_command_edits_value(client: TestClient, ledger_state: LedgerState) -> None:
    response = _command(
        client,
        ledger_state,
        "EditConceptValue",
        concept_id=str(ledger_state.base_concept.id),
        representation=Representation.USD_PER_GALLON.value,
        raw="3",
    )

    assert response.status_code == 200
    body = response.json()
    assert body["accepted"]
    assert Decimal(body["state"]["base_price"]) == Decimal("3")
    assert body["display"]["rows"][0]["cells"]["usdGal"] == "3"
    assert body["display"]["rows"][0]["cells"]["usd"] == "3,000.0000"


def test_ledger_command_rejects_garbage(client: TestClient, ledger_state: LedgerState) -> None:
    response = _command(client, ledger_state, "EditGallons", raw="lots")

    assert response.status_code == 200
    assert not response.json()["accepted"]
    assert response.json()["display"]["gallons"] == "1,000.00"


def test_ledger_structural_command(client: TestClient, ledger_state: LedgerState) -> None:
    response = _command(client, ledger_state, "AddConcept", name="Freight")

    assert response.status_code == 200
    assert [row["name"] for row in response.json()["display"]["rows"]] == ["Molecule Price", "Freight"]


def test_ledger_command_errors_are_bad_requests(client: TestClient, ledger_state: LedgerState) -> None:
    base_id = str(ledger_state.base_concept.id)

    assert _command(client, ledger_state, "Explode").status_code == 400
    assert _command(client, ledger_state, "EditMargin", raw="1").status_code == 400
    assert _command(client, ledger_state, "RemoveConcept", concept_id=base_id).status_code == 400
    assert _command(client, ledger_state, "MoveConceptToIndex", concept_id=base_id, target_index=5).status_code == 400
    assert _command(client, ledger_state, "MoveConceptUp", concept_id=str(uuid4())).status_code == 400


def test_blend_summary(client: TestClient) -> None:
    state = {
        "products": [
            {"name": "Regular", "price": "20", "percentage": "60"},
            {"name": "Premium", "price": "25", "percentage": "40"},
        ]
    }

    body = client.post("/api/blend/summary", json=state).json()

    assert body["is_valid"]
    assert Decimal(body["blended_price"]) == Decimal("22")


def test_gas_prices(client: TestClient) -> None:
    response = client.get("/api/gas-prices")

    assert response.status_code == 200
    body = response.json()
    assert body["error"] is None
    assert body["prices"]["gasoline"]["symbol"] == "RB=F"
    assert Decimal(body["prices"]["usd_mxn"]["price"]) == Decimal("17.02")


def test_gas_prices_unavailable(client: TestClient, gateway: Mock) -> None:
    gateway.fetch_reference_prices.side_effect = MarketDataError("offline")

    response = client.get("/api/gas-prices")

    assert response.status_code == 502


def test_exchange_rate(client: TestClient, rate_source: Mock) -> None:
    body = client.get("/api/exchange-rate").json()

    assert body["quote"] == "MXN"
    assert Decimal(body["rate"]) == Decimal("17.0512")

    rate_source.fetch_rate.side_effect = ExchangeRateAPIError("down", status_code=503)
    assert client.get("/api/exchange-rate").status_code == 502
