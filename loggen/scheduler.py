"""Scheduler that drives generation with a jittered, self-rearming one-shot timer."""

import asyncio
import logging
import random
from dataclasses import dataclass
from enum import Enum

from loggen import synthesizer
from loggen.config import SINK_FILE, EngineConfig
from loggen.file_sink import FileSink, FileSinkError
from loggen.push_sink import PushError, PushSink
from loggen.serializer import serialize

logger = logging.getLogger(__name__)

MIN_DELAY_MS = 1000
JITTER_MS = 2000


def compute_delay(base_interval_ms: float) -> float:
    """Base interval jittered by up to ±2s, floored at 1s. Milliseconds."""
    variation = random.uniform(-JITTER_MS, JITTER_MS)
    return max(MIN_DELAY_MS, base_interval_ms + variation)


class Phase(Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


@dataclass
class ScheduleState:
    phase: Phase = Phase.IDLE
    timer: asyncio.TimerHandle | None = None
    # Resolves True when the timer fires, False when stop() wins
    fired: asyncio.Future | None = None


def build_sink(config: EngineConfig):
    if config.sink_mode == SINK_FILE:
        return FileSink(config.log_file, config.max_file_size)
    return PushSink(config.push_url, config.push_labels, config.push_timeout)


def _resolve(fut: asyncio.Future, value: bool) -> None:
    if not fut.done():
        fut.set_result(value)


class Scheduler:
    """Generates one record per timer tick and hands it to the configured sink.

    Lifecycle is Idle -> Running -> Stopped. A stopped scheduler cannot be
    restarted; build a new one. Only one delivery is ever in flight because
    the next timer is armed after the previous delivery completes.
    """

    def __init__(self, config: EngineConfig, sink=None, status=None):
        self._config = config.validate()
        self._sink = sink if sink is not None else build_sink(config)
        self._status = status or (lambda line: logger.info("Logged: %s", line))
        self._state = ScheduleState()
        self._task: asyncio.Task | None = None
        self._delivered = 0
        self._failed = 0

    @property
    def phase(self) -> Phase:
        return self._state.phase

    @property
    def delivered(self) -> int:
        return self._delivered

    @property
    def failed(self) -> int:
        return self._failed

    @property
    def sink(self):
        return self._sink

    def start(self) -> None:
        """Begin scheduling. Must be called from inside a running event loop."""
        if self._state.phase is not Phase.IDLE:
            raise RuntimeError(
                f"Scheduler cannot start from phase '{self._state.phase.value}'"
            )
        self._state.phase = Phase.RUNNING
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.info("Log generator started (%s sink)", self._config.sink_mode)

    def stop(self) -> None:
        """Stop scheduling further events. Safe to call more than once."""
        if self._state.phase is Phase.STOPPED:
            return
        was_running = self._state.phase is Phase.RUNNING
        self._state.phase = Phase.STOPPED
        if self._state.timer is not None:
            self._state.timer.cancel()
            self._state.timer = None
        if self._state.fired is not None:
            _resolve(self._state.fired, False)
        if was_running:
            logger.info("Log generator stopped.")

    async def wait(self) -> None:
        """Wait for the loop to finish after stop(), then release the sink."""
        try:
            if self._task is not None:
                await self._task
        finally:
            await self._sink.aclose()

    def _arm(self) -> asyncio.Future:
        loop = asyncio.get_running_loop()
        delay_ms = compute_delay(self._config.log_interval_ms)
        fired = loop.create_future()
        self._state.fired = fired
        self._state.timer = loop.call_later(delay_ms / 1000, _resolve, fired, True)
        logger.debug("Next event in %.0f ms", delay_ms)
        return fired

    async def _run(self) -> None:
        try:
            while self._state.phase is Phase.RUNNING:
                if not await self._arm():
                    break
                self._state.timer = None
                await self.tick()
        except Exception:
            logger.exception("Generator loop crashed, stopping")
            raise
        finally:
            # A dead loop must never report RUNNING
            self.stop()

    async def tick(self) -> bool:
        """Generate, serialize, and deliver one record. Returns True on success.

        The status line is emitted after every attempt, successful or not.
        """
        record = synthesizer.generate(self._config.user_ids)
        rendered, _fields = serialize(record, self._config.log_format)
        ok = True
        try:
            if self._config.sink_mode == SINK_FILE:
                await self._sink.deliver(rendered)
            else:
                await self._sink.deliver(record, rendered)
        except (FileSinkError, PushError) as exc:
            ok = False
            self._failed += 1
            logger.error("Delivery failed: %s", exc)
        else:
            self._delivered += 1
        self._status(rendered.rstrip("\n"))
        return ok
