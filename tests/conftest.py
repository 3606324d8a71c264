"""Shared pytest fixtures for public-slip-api tests."""
import os
import sys
import tempfile
from pathlib import Path
from typing import AsyncGenerator

import pytest
from httpx import AsyncClient, ASGITransport

# Add project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))
sys.path.insert(0, str(Path(__file__).parent))

# Keep test runs from writing into the package directory
os.environ.setdefault("LOG_DIR", str(Path(tempfile.gettempdir()) / "slip_api_test_logs"))

from fakes import FakeGateway  # noqa: E402


@pytest.fixture
def gateway() -> FakeGateway:
    """Connected in-memory storage gateway."""
    return FakeGateway()


@pytest.fixture
def app(gateway):
    from slip_api.app import create_app

    return create_app(gateway=gateway, auto_reconnect=False)


@pytest.fixture
async def async_client(app) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for testing FastAPI endpoints."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as client:
        yield client


@pytest.fixture
def sample_sync_payload():
    """Engine push with two slips, one camelCase match snapshot and one bare match."""
    return {
        "master_slip": {
            "id": 123,
            "user_id": "u-9",
            "status": "active",
            "stake": 10,
        },
        "generated_slips": [
            {
                "id": 7,
                "confidence_score": 85.0,
                "total_odds": 3.2,
                "stake": 10,
                "estimated_payout": 32,
                "risk_level": "MEDIUM",
                "generated_at": "2026-01-02T03:04:05.678Z",
                "legs": [
                    {"match_id": 55, "market": "1X2", "selection": "Home", "odds": 1.6},
                    {
                        "match_id": 56,
                        "market": "BTTS",
                        "selection": "Yes",
                        "odds": 2.0,
                        "match": {"home_team": "Lyon", "away_team": "Nice"},
                    },
                ],
            },
            {
                "slip_id": "s-8",
                "confidence_score": "90",
                "total_odds": 2.1,
                "legs": [
                    {"match_id": "57", "market": "O/U", "selection": "Over 2.5", "odds": 2.1},
                ],
            },
        ],
        "optimized_slips": [
            {"id": 1, "score": 0.8},
        ],
        "matches": [
            {
                "id": 900,
                "match_id": 55,
                "match_data": {"homeTeam": "Arsenal", "awayTeam": "Chelsea"},
            },
            {
                "id": 901,
                "match_id": 57,
            },
        ],
    }
