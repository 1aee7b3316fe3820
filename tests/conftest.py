import json

import httpx
import pytest
from httpx import ASGITransport


@pytest.fixture
def data_dir(tmp_path):
    return tmp_path / "data"


@pytest.fixture
def mock_env(monkeypatch, data_dir):
    data_dir.mkdir()
    monkeypatch.setenv("DATA_DIR", str(data_dir))
    for stage in ("WEBSITE", "SITE_CONTACTS", "FCC"):
        monkeypatch.setenv(f"{stage}__DELAY_MS", "0")
        monkeypatch.setenv(f"{stage}__RETRY_DELAY_MS", "0")
    monkeypatch.setenv("SITE_CONTACTS__CONTACT_PAGE_DELAY_MS", "0")


@pytest.fixture
def write_json(mock_env, data_dir):
    def _write(name: str, data) -> str:
        (data_dir / name).write_text(json.dumps(data))
        return name

    return _write


@pytest.fixture
async def client(mock_env):
    from station_contacts.main import app, lifespan

    async with lifespan(app):
        async with httpx.AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as c:
            yield c
