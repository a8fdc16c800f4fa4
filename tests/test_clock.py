import asyncio

from clock import AsyncioScheduler, ManualScheduler


def test_manual_timers_fire_in_order():
    scheduler = ManualScheduler()
    fired = []
    scheduler.call_later(0.5, lambda: fired.append("b"))
    scheduler.call_later(0.2, lambda: fired.append("a"))
    cancelled = scheduler.call_later(0.3, lambda: fired.append("x"))
    cancelled.cancel()
    assert scheduler.pending_timers == 2

    scheduler.advance(0.4)
    assert fired == ["a"]
    scheduler.advance(0.1)
    assert fired == ["a", "b"]
    assert scheduler.now() == 0.5


def test_manual_frames_run_once_per_step():
    scheduler = ManualScheduler()
    ticks = []

    def tick():
        ticks.append(scheduler.now())
        if len(ticks) < 3:
            scheduler.request_frame(tick)

    scheduler.request_frame(tick)
    scheduler.step_frames(5)
    assert len(ticks) == 3
    assert scheduler.pending_frames == 0


async def test_asyncio_scheduler_runs_frames_and_timers():
    scheduler = AsyncioScheduler(frame_interval=0.001)
    done = asyncio.Event()
    order = []
    scheduler.request_frame(lambda: order.append("frame"))
    scheduler.call_later(0.01, lambda: (order.append("timer"), done.set()))
    await asyncio.wait_for(done.wait(), 1.0)
    assert order == ["frame", "timer"]
    assert scheduler.now() > 0
