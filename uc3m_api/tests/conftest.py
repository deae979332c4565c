import sys
import os

# Add project root to sys.path to allow imports like 'from uc3m_api...'
# This assumes pytest is run from the project root directory
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', '..'))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from dataclasses import dataclass, field
from datetime import datetime
from typing import AsyncGenerator, Dict, List
from zoneinfo import ZoneInfo

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI

from uc3m_api.main import app as main_app
from uc3m_api.models.timetable import TimetableId


@pytest.fixture
def madrid() -> ZoneInfo:
    return ZoneInfo("Europe/Madrid")


@pytest.fixture
def timetable_id(madrid: ZoneInfo) -> TimetableId:
    """Identifier of the 4th year, group 121 timetable of plan 433 (2022)."""
    return TimetableId(year=2022, plan=433, center=2, grade=4, group=121, period=1, time_zone=madrid)


@pytest.fixture
def created_on(madrid: ZoneInfo) -> datetime:
    return datetime(2022, 8, 18, 0, 16, tzinfo=madrid)


@dataclass
class Upstream:
    """Canned timetable pages served in place of the university website."""

    responses: Dict[str, httpx.Response] = field(default_factory=dict)
    requested: List[str] = field(default_factory=list)

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requested.append(url)
        return self.responses.get(url, httpx.Response(404, text="Not Found"))


@pytest.fixture
def upstream() -> Upstream:
    return Upstream()


@pytest_asyncio.fixture(scope="function")
async def test_app(mocker, monkeypatch, upstream: Upstream) -> AsyncGenerator[FastAPI, None]:
    """
    Provides the FastAPI app with its lifespan started. The shared httpx client
    answers from `upstream` and fails straight away instead of retrying.
    """
    monkeypatch.setenv("UC3M_MAX_RETRIES", "1")
    monkeypatch.delenv("UC3M_TIMEZONE", raising=False)
    mocker.patch(
        "uc3m_api.main.create_http_client",
        return_value=httpx.AsyncClient(transport=httpx.MockTransport(upstream.handler)),
    )
    async with main_app.router.lifespan_context(main_app):
        yield main_app


@pytest_asyncio.fixture(scope="function")
async def async_client(test_app: FastAPI) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Provides an asynchronous test client for making requests to the app."""
    transport = httpx.ASGITransport(app=test_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
