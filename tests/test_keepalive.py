import asyncio

import pytest

from keepalive import KeepaliveSupervisor

pytestmark = pytest.mark.anyio

BUCKET = "192.168.0.0"


async def test_silent_peer_is_evicted_within_two_intervals(directory, make_peer):
    a = make_peer("A")
    b = make_peer("B")
    await directory.join(a)
    await directory.join(b)

    interval = 0.05
    loop = asyncio.get_running_loop()
    started = loop.time()
    task = KeepaliveSupervisor(b, directory, interval=interval).start()
    await asyncio.wait_for(task, timeout=1)
    elapsed = loop.time() - started

    assert elapsed < 10 * interval
    assert len(b.websocket.of_type("ping")) <= 2
    assert directory.find_peer(BUCKET, "B") is None
    assert a.websocket.of_type("peer-left") == [{"type": "peer-left", "peerId": "B"}]
    assert b.websocket.of_type("ping")
    assert b.websocket.closed


async def test_evicting_sole_occupant_deletes_room(directory, make_peer, clock):
    a = make_peer("A", clock=clock)
    await directory.join(a)
    clock.advance(60)

    await asyncio.wait_for(KeepaliveSupervisor(a, directory, interval=30).run(), timeout=1)

    assert BUCKET not in directory.rooms
    assert a.websocket.of_type("ping") == []


async def test_responsive_peer_keeps_getting_pings(directory, make_peer, clock):
    a = make_peer("A", clock=clock)
    await directory.join(a)

    supervisor = KeepaliveSupervisor(a, directory, interval=0.01)
    task = supervisor.start()
    await asyncio.sleep(0.1)

    assert not task.done()
    assert len(a.websocket.of_type("ping")) >= 2
    assert directory.find_peer(BUCKET, "A") is a

    await directory.leave(a)
    await asyncio.wait_for(task, timeout=1)


async def test_leave_stops_loop_without_waiting_for_interval(directory, make_peer):
    a = make_peer("A")
    await directory.join(a)
    task = KeepaliveSupervisor(a, directory, interval=30).start()
    await asyncio.sleep(0)

    await directory.leave(a)

    await asyncio.wait_for(task, timeout=0.5)
    assert a.keepalive_task is task
    assert len(a.websocket.of_type("ping")) == 1


async def test_first_check_pings_immediately(directory, make_peer):
    a = make_peer("A")
    await directory.join(a)
    task = KeepaliveSupervisor(a, directory, interval=30).start()
    await asyncio.sleep(0.01)

    assert a.websocket.of_type("ping") == [{"type": "ping"}]

    await directory.leave(a)
    await asyncio.wait_for(task, timeout=0.5)
