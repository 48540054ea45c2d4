"""
Pytest configuration and fixtures for memesim tests.
"""

import os
import tempfile

# Keep test log files out of the working tree
os.environ.setdefault("LOG_DIR", os.path.join(tempfile.gettempdir(), "memesim-test-logs"))

from datetime import date
from decimal import Decimal

import pytest

from memesim.backtest import CapitalLedger, FixedFeeCalculator, PositionManager
from memesim.config import (
    DipRecoveryConfig,
    SimulationConfig,
    TrendMomentumConfig,
    VolumeSpikeConfig,
)
from tests.mocks import create_instrument


# =============================================================================
# Config Fixtures
# =============================================================================


@pytest.fixture
def volume_config() -> VolumeSpikeConfig:
    return VolumeSpikeConfig()


@pytest.fixture
def trend_config() -> TrendMomentumConfig:
    return TrendMomentumConfig()


@pytest.fixture
def dip_config() -> DipRecoveryConfig:
    return DipRecoveryConfig()


@pytest.fixture
def simulation_config() -> SimulationConfig:
    """Three-day horizon ending 2024-01-07."""
    return SimulationConfig(horizon_days=3, end_date=date(2024, 1, 7))


# =============================================================================
# Engine Fixtures
# =============================================================================


@pytest.fixture
def fee_calculator() -> FixedFeeCalculator:
    return FixedFeeCalculator(Decimal("0.005"))


@pytest.fixture
def ledger() -> CapitalLedger:
    return CapitalLedger(Decimal("1000"))


@pytest.fixture
def manager(ledger, fee_calculator) -> PositionManager:
    return PositionManager(ledger, fee_calculator)


@pytest.fixture
def instrument():
    """Default test instrument: 100k market cap, listed 2h before BASE_TIME."""
    return create_instrument()
