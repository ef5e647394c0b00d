import asyncio
import time
from datetime import datetime

from gameservers.services import listings as listing_repo
from gameservers.services.query import OFFLINE, Online
from gameservers.services.status import StatusUpdate, apply_status, refresh, refresh_all

OFFLINE_FIELDS = {"is_online": False, "current_players": 0, "max_players": 0, "current_map": None}


async def test_refresh_online(make_listing, probe_results, fake_prober):
    s = make_listing(ip="203.0.113.5", port=27015)
    probe_results[("203.0.113.5", 27015)] = Online(10, 20, "de_nuke")

    update = await refresh(s, fake_prober)

    assert update == StatusUpdate(is_online=True, current_players=10, max_players=20, current_map="de_nuke")
    assert fake_prober.calls == [("cs2", "203.0.113.5", 27015)]


async def test_refresh_offline(make_listing, fake_prober):
    s = make_listing()
    update = await refresh(s, fake_prober)
    assert update.as_fields() == OFFLINE_FIELDS


async def test_refresh_never_raises(make_listing, probe_results, fake_prober):
    s = make_listing(ip="203.0.113.9", port=1)
    probe_results[("203.0.113.9", 1)] = TimeoutError("remote server hung")

    update = await refresh(s, fake_prober)

    assert update.as_fields() == OFFLINE_FIELDS


async def test_refresh_all_collects_every_listing(make_listing, probe_results, fake_prober):
    up = make_listing(ip="198.51.100.1")
    down = make_listing(ip="198.51.100.2")
    broken = make_listing(ip="198.51.100.3")
    probe_results[(up.ip, up.port)] = Online(3, 8, None)
    probe_results[(broken.ip, broken.port)] = RuntimeError("driver exploded")

    results = await refresh_all([up, down, broken], fake_prober)

    assert set(results) == {up.id, down.id, broken.id}
    assert results[up.id] == StatusUpdate(True, 3, 8, None)
    assert results[down.id] == StatusUpdate.offline()
    assert results[broken.id] == StatusUpdate.offline()


async def test_refresh_all_runs_probes_concurrently(make_listing):
    rows = [make_listing() for _ in range(10)]
    delay = 0.2

    async def slow_prober(game, host, port):
        await asyncio.sleep(delay)
        return Online(1, 2)

    started = time.monotonic()
    results = await refresh_all(rows, slow_prober)
    elapsed = time.monotonic() - started

    assert len(results) == 10
    assert all(update.is_online for update in results.values())
    # serial execution would take 10 * delay
    assert elapsed < delay * 4


async def test_refresh_all_empty():
    assert await refresh_all([], lambda *a: OFFLINE) == {}


def test_apply_status_writes_all_fields(db, make_listing, mocker):
    s = make_listing(is_online=True, current_players=4, max_players=16, current_map="old_map")
    stamp = datetime(2031, 5, 6, 7, 8, 9)
    mocker.patch("gameservers.services.listings._now", return_value=stamp)

    apply_status(db, s.id, StatusUpdate.offline())

    db.expire_all()
    stored = listing_repo.get_listing(db, s.id)
    assert stored.is_online is False
    assert stored.current_players == 0
    assert stored.max_players == 0
    assert stored.current_map is None
    assert stored.last_updated == stamp


def test_apply_status_missing_listing(db):
    assert apply_status(db, 12345, StatusUpdate.offline()) is None
