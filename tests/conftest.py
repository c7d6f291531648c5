# Shared pytest fixtures
from __future__ import annotations
import json
import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx
import pytest

from bom_enricher.catalog.jlcpcb import JlcpcbCatalog
from bom_enricher.logging.init import reset_logging
from bom_enricher.models.part_info import PartInfo, PriceTier


@pytest.fixture(autouse=True)
def _fresh_logging():
    # the stdout handler binds sys.stdout at setup time; capsys swaps it per test
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """rate_limit:
  max_concurrent: 2
  delay_ms: 0
catalog:
  base_url: https://catalog.test/search
  timeout_seconds: 5
export:
  format: csv
  sheet_name: BOM
logs_directory: ./logs
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "enrich.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def sample_bom_csv(temp_workdir: Path) -> Path:
    """BOM with a shared part number (C1000), an unknown one and a skipped row."""
    bom = temp_workdir / "data" / "board.csv"
    bom.write_text(
        "Comment,Designator,Footprint,LCSC,Quantity\n"
        "100nF,\"C1,C2,C3,C4,C5\",C_0402,C1000,5\n"
        "100nF,C10-C59,C_0402,C1000,50\n"
        "10k,R1,R_0402,C2000,1\n"
        "MCU,U1,QFN-32,C9999,1\n"
        "Logo,G1,Logo_Small,,1\n",
        encoding="utf-8",
    )
    return bom


@pytest.fixture()
def tiers() -> tuple[PriceTier, ...]:
    return (
        PriceTier(1, 9, 0.10),
        PriceTier(10, 99, 0.08),
        PriceTier(100, None, 0.05),
    )


@pytest.fixture()
def make_part_info(tiers) -> Callable[..., PartInfo]:
    def _make(part_number: str, prices: tuple[PriceTier, ...] | None = None, **kwargs: Any) -> PartInfo:
        return PartInfo(
            part_number=part_number,
            manufacturer=kwargs.pop("manufacturer", "Samsung"),
            mpn=kwargs.pop("mpn", f"MPN-{part_number}"),
            description=kwargs.pop("description", "Test part"),
            package=kwargs.pop("package", "0402"),
            stock=kwargs.pop("stock", 1000),
            prices=tiers if prices is None else prices,
            **kwargs,
        )

    return _make


@pytest.fixture()
def make_component() -> Callable[..., dict[str, Any]]:
    """Factory for one component entry in the catalog search payload."""

    def _make(code: str, **overrides: Any) -> dict[str, Any]:
        component: dict[str, Any] = {
            "componentCode": code,
            "componentBrandEn": "YAGEO",
            "componentModelEn": f"RC0402-{code}",
            "describe": "Chip resistor",
            "componentSpecificationEn": "0402",
            "stockCount": 12000,
            "componentPrices": [
                {"startNumber": 10, "endNumber": 99, "productPrice": 0.08},
                {"startNumber": 1, "endNumber": 9, "productPrice": 0.10},
                {"startNumber": 100, "endNumber": -1, "productPrice": 0.05},
            ],
            "dataManualUrl": f"https://datasheet.test/{code}.pdf",
            "minImageAccessId": f"img-{code}",
        }
        component.update(overrides)
        return component

    return _make


@pytest.fixture()
def search_payload() -> Callable[..., dict[str, Any]]:
    def _payload(*components: dict[str, Any], code: int = 200) -> dict[str, Any]:
        return {"code": code, "data": {"componentPageInfo": {"list": list(components)}}}

    return _payload


@pytest.fixture()
def catalog_handler(make_component, search_payload):
    """Build a MockTransport handler answering from known part numbers.

    ``status`` maps a part number to an HTTP status (or a list consumed one
    per request) returned instead of a payload. Unknown part numbers get an
    empty result list.
    """

    def _handler(known: set[str], status: dict[str, Any] | None = None):
        status = dict(status or {})
        requests: list[str] = []

        def handle(request: httpx.Request) -> httpx.Response:
            keyword = json.loads(request.content)["keyword"]
            requests.append(keyword)
            code = status.get(keyword)
            if isinstance(code, list):
                code = code.pop(0) if code else None
            if code is not None:
                return httpx.Response(code, text="error")
            if keyword in known:
                return httpx.Response(200, json=search_payload(make_component(keyword)))
            return httpx.Response(200, json=search_payload())

        handle.requests = requests  # type: ignore[attr-defined]
        return handle

    return _handler


@pytest.fixture()
def patch_catalog(monkeypatch):
    """Route the CLI's catalog through an httpx MockTransport handler."""

    def _patch(handler) -> None:
        def build(cfg):
            client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
            return JlcpcbCatalog(cfg.catalog.base_url, http_client=client)

        monkeypatch.setattr("bom_enricher.cli.main._build_catalog", build)

    return _patch
