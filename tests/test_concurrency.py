import asyncio
import time

import httpx
import pytest
from sqlalchemy import create_engine

from gameservers.core.db import Base, enable_sqlite_foreign_keys
from gameservers.main import app


@pytest.fixture
def engine(tmp_path):
    # a file database gives every worker thread its own connection
    eng = create_engine(
        f"sqlite:///{tmp_path / 'gameservers.db'}",
        connect_args={"check_same_thread": False},
    )
    enable_sqlite_foreign_keys(eng)
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


async def test_detail_reads_do_not_wait_on_each_others_storage(client, make_listing, mocker):
    # the client fixture installs the db and prober overrides on the app
    s = make_listing()
    delay = 0.4

    def slow_apply_status(db, listing_id, update):
        time.sleep(delay)

    mocker.patch("gameservers.services.status.apply_status", side_effect=slow_apply_status)

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as ac:
        started = time.monotonic()
        responses = await asyncio.gather(*(ac.get(f"/api/servers/{s.id}") for _ in range(5)))
        elapsed = time.monotonic() - started

    assert [r.status_code for r in responses] == [200] * 5
    # serialized storage would take 5 * delay
    assert elapsed < delay * 3


async def test_batch_refresh_keeps_event_loop_free(client, make_user, make_listing, auth_headers, mocker):
    admin = make_user("admin", is_admin=True)
    for _ in range(3):
        make_listing()
    delay = 0.4

    def slow_apply_all(db, results):
        time.sleep(delay)

    mocker.patch("gameservers.routers.admin._apply_all", side_effect=slow_apply_all)

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as ac:
        refresh = asyncio.ensure_future(ac.post("/api/admin/servers/refresh", headers=auth_headers(admin)))
        await asyncio.sleep(0.1)
        started = time.monotonic()
        health = await ac.get("/api/health")
        health_elapsed = time.monotonic() - started
        refreshed = await refresh

    assert health.status_code == 200
    assert health_elapsed < delay / 2
    assert refreshed.json()["refreshed"] == 3
