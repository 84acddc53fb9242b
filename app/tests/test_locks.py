import asyncio

from app.utils.locks import InFlight, KeyedLock


def test_keyed_lock_serializes_same_key():
    locks = KeyedLock()
    events = []

    async def worker(name):
        async with locks.hold("k"):
            events.append(f"{name}-in")
            await asyncio.sleep(0.01)
            events.append(f"{name}-out")

    async def main():
        await asyncio.gather(worker("a"), worker("b"))

    asyncio.run(main())
    assert events == ["a-in", "a-out", "b-in", "b-out"]
    assert len(locks) == 0


def test_keyed_lock_different_keys_interleave():
    locks = KeyedLock()
    events = []

    async def worker(key):
        async with locks.hold(key):
            events.append(f"{key}-in")
            await asyncio.sleep(0.01)
            events.append(f"{key}-out")

    async def main():
        await asyncio.gather(worker("a"), worker("b"))

    asyncio.run(main())
    assert events[:2] == ["a-in", "b-in"]


def test_in_flight_drain_waits_for_work():
    async def main():
        in_flight = InFlight()
        done = []

        async def job():
            async with in_flight.track():
                await asyncio.sleep(0.02)
                done.append(True)

        task = asyncio.create_task(job())
        await asyncio.sleep(0)
        assert in_flight.count == 1
        assert await in_flight.drain(1.0)
        await task
        return done, in_flight.count

    done, count = asyncio.run(main())
    assert done == [True]
    assert count == 0


def test_in_flight_drain_times_out():
    async def main():
        in_flight = InFlight()
        release = asyncio.Event()

        async def job():
            async with in_flight.track():
                await release.wait()

        task = asyncio.create_task(job())
        await asyncio.sleep(0)
        finished = await in_flight.drain(0.01)
        release.set()
        await task
        return finished

    assert asyncio.run(main()) is False
