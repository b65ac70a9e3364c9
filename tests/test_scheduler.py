import asyncio
import io
import threading

from vehiculos.ingestion.coordinator import PriceIngestionCoordinator
from vehiculos.ingestion.fetcher import FeedHandle
from vehiculos.scheduler import PRICE_JOB_ID, get_scheduler, scheduled_price_processing, shutdown_scheduler, start_scheduler


class GatedRemote:
    source = "remote"

    def __init__(self, gate):
        self.gate = gate
        self.calls = 0

    def fetch_latest(self):
        self.calls += 1
        assert self.gate.wait(timeout=5)
        return FeedHandle(source="remote", name="s3://bucket/latest.csv", stream=io.BytesIO(b"vehicle_id,new_price\nv1,5\n"))


class EmptyLocal:
    source = "local"

    def fetch_local_fallback(self):
        return None


def test_scheduled_tick_skips_while_processing():
    gate = threading.Event()
    remote = GatedRemote(gate)
    coordinator = PriceIngestionCoordinator(remote, EmptyLocal(), lambda vehicle_id, price: True)

    async def scenario():
        running = asyncio.create_task(coordinator.start_processing())
        await asyncio.sleep(0)
        await scheduled_price_processing(coordinator)
        gate.set()
        await running

    asyncio.run(scenario())

    assert remote.calls == 1
    assert coordinator.is_currently_processing() is False


def test_scheduled_tick_swallows_errors():
    class Exploding:
        def is_currently_processing(self):
            return False

        async def start_processing(self):
            raise RuntimeError("boom")

    asyncio.run(scheduled_price_processing(Exploding()))


def test_start_scheduler_registers_single_instance_job():
    coordinator = PriceIngestionCoordinator(GatedRemote(threading.Event()), EmptyLocal(), lambda vehicle_id, price: True)

    async def scenario():
        scheduler = start_scheduler(coordinator, 60)
        try:
            job = scheduler.get_job(PRICE_JOB_ID)
            assert job is not None
            assert job.max_instances == 1
            assert job.coalesce is True
            assert get_scheduler() is scheduler
        finally:
            shutdown_scheduler()
        assert get_scheduler() is None

    asyncio.run(scenario())
