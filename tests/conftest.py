from datetime import datetime
from typing import Any, Dict

import pytest

from restock_engine.config import Config

TODAY = datetime(2026, 3, 15)


@pytest.fixture
def today() -> datetime:
    return TODAY


@pytest.fixture
def config() -> Config:
    return Config()


@pytest.fixture
def make_order():
    """Factory for raw schedule rows as they arrive from the schedule feed."""

    def _make(
        forecast: str = None,
        model: str = "ALPHA",
        dealer: str = "Frankston",
        customer: str = "Frankston Stock",
        chassis: Any = ...,
        status: str = None,
        **extra
    ) -> Dict[str, Any]:
        row = {"Dealer": dealer, "Customer": customer, "Model": model}
        if forecast is not None:
            row["Forecast Production Date: dd/mm/yyyy"] = forecast
        if chassis is not ...:
            row["Chassis"] = chassis
        if status is not None:
            row["Regent Production"] = status
        row.update(extra)
        return row

    return _make


@pytest.fixture
def model_analysis():
    return [
        {"model": "ALPHA", "tier": "A1 Core", "standard_price": 89000},
        {"model": "BRAVO", "tier": "A2", "standardPrice": "75000"},
        {"model": "CHARLIE", "tier": ""},
    ]
