"""Load Driver: sustained, bounded-concurrency traffic against the service.

One scheduler task per console issues a request every ``interval``
seconds without waiting for earlier requests to complete. At most
``per_class_concurrency`` requests per console are outstanding at once;
when the limit is reached the scheduler waits for a slot.

Every request ends in exactly one AvailabilityResult handed to the
observer. Failures of any kind (transport, non-2xx status, malformed
body) produce a fallback result with ``available=False``; they are
logged and never stop the driver.
"""

from __future__ import annotations

import asyncio
import logging
import signal
from collections import Counter
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

import httpx

from availability import schemas
from availability.config import Settings

logger = logging.getLogger(__name__)

Observer = Callable[[schemas.AvailabilityResult], None]


def log_result(result: schemas.AvailabilityResult) -> None:
    if result.fallback:
        logger.info("%s available=%s (fallback: %s)", result.console, result.available, result.error)
    else:
        logger.info("%s available=%s", result.console, result.available)


@dataclass
class LoadDriverState:
    """Per-console counters, kept for the lifetime of the process."""

    in_flight: Counter = field(default_factory=Counter)
    issued: Counter = field(default_factory=Counter)
    completed: Counter = field(default_factory=Counter)
    fallbacks: Counter = field(default_factory=Counter)

    def snapshot(self) -> dict[str, dict[str, int]]:
        consoles = set(self.issued) | set(self.in_flight)
        return {
            console: {
                "issued": self.issued[console],
                "in_flight": self.in_flight[console],
                "completed": self.completed[console],
                "fallbacks": self.fallbacks[console],
            }
            for console in sorted(consoles)
        }


class LoadDriver:
    def __init__(
        self,
        client: httpx.AsyncClient,
        consoles: Sequence[str],
        *,
        per_class_concurrency: int = 4,
        interval: float = 0.1,
        repetitions: int | None = None,
        observer: Observer | None = None,
        drain_on_shutdown: bool = True,
    ) -> None:
        if per_class_concurrency < 1:
            raise ValueError("per_class_concurrency must be at least 1")
        if interval < 0:
            raise ValueError("interval must not be negative")
        if repetitions is not None and repetitions < 0:
            raise ValueError("repetitions must not be negative")
        self.client = client
        self.consoles = list(consoles)
        self.per_class_concurrency = per_class_concurrency
        self.interval = interval
        self.repetitions = repetitions
        self.observer = observer or log_result
        self.drain_on_shutdown = drain_on_shutdown
        self.state = LoadDriverState()
        self._stopping = asyncio.Event()
        self._in_flight: set[asyncio.Task] = set()

    def stop(self) -> None:
        """Stop issuing new requests. ``run`` returns once in-flight work is settled."""
        self._stopping.set()

    async def run(self) -> LoadDriverState:
        schedulers = [
            asyncio.create_task(self._schedule(console), name=f"drive-{console}")
            for console in self.consoles
        ]
        # A scheduler blocked on a full semaphore only wakes when a slot
        # frees up, so shutdown is watched separately.
        stop_requested = asyncio.ensure_future(self._stopping.wait())
        pending: set[asyncio.Future] = set(schedulers)
        try:
            while pending and not stop_requested.done():
                _, pending = await asyncio.wait(
                    pending | {stop_requested}, return_when=asyncio.FIRST_COMPLETED
                )
                pending.discard(stop_requested)
        finally:
            stop_requested.cancel()
            for task in schedulers:
                task.cancel()
            await asyncio.gather(*schedulers, return_exceptions=True)
            await self._settle_in_flight()

        for task in schedulers:
            if not task.cancelled() and task.exception() is not None:
                logger.error("Scheduler %s failed: %s", task.get_name(), task.exception())
        return self.state

    async def _schedule(self, console: str) -> None:
        slots = asyncio.Semaphore(self.per_class_concurrency)
        issued = 0
        while not self._stopping.is_set():
            if self.repetitions is not None and issued >= self.repetitions:
                return
            await slots.acquire()
            if self._stopping.is_set():
                slots.release()
                return

            task = asyncio.create_task(self._issue(console, slots))
            self._in_flight.add(task)
            task.add_done_callback(self._in_flight.discard)
            issued += 1

            if self.repetitions is not None and issued >= self.repetitions:
                return
            await self._pause()

    async def _pause(self) -> None:
        try:
            await asyncio.wait_for(self._stopping.wait(), timeout=self.interval)
        except asyncio.TimeoutError:
            pass

    async def _issue(self, console: str, slots: asyncio.Semaphore) -> None:
        self.state.issued[console] += 1
        self.state.in_flight[console] += 1
        try:
            result = await self.fetch(console)
        finally:
            self.state.in_flight[console] -= 1
            slots.release()

        self.state.completed[console] += 1
        if result.fallback:
            self.state.fallbacks[console] += 1
        try:
            self.observer(result)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Observer failed for %s: %s", console, exc)

    async def fetch(self, console: str) -> schemas.AvailabilityResult:
        """Query one console, substituting the fallback result on any failure."""
        try:
            response = await self.client.get(f"/availability/{console}")
            response.raise_for_status()
            body = schemas.ConsoleAvailability.model_validate(response.json())
        except Exception as exc:  # noqa: BLE001
            logger.warning("Request for %s failed: %s", console, exc)
            return schemas.AvailabilityResult(
                console=console,
                available=False,
                fallback=True,
                error=f"{type(exc).__name__}: {exc}",
            )
        return schemas.AvailabilityResult(console=console, available=body.available)

    async def _settle_in_flight(self) -> None:
        """Await outstanding requests; cancel them only on a requested abandon."""
        pending = list(self._in_flight)
        if not pending:
            return
        if self._stopping.is_set() and not self.drain_on_shutdown:
            logger.info("Abandoning %d in-flight requests", len(pending))
            for task in pending:
                task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)


def create_client(
    settings: Settings, transport: httpx.AsyncBaseTransport | None = None
) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=settings.base_url,
        transport=transport,
        timeout=settings.client_timeout_seconds,
        headers={"User-Agent": f"{settings.application_name}-load-driver"},
    )


async def run_from_settings(
    settings: Settings,
    observer: Observer | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> LoadDriverState:
    """Drive the service described by ``settings`` until done or signalled."""
    async with create_client(settings, transport) as client:
        driver = LoadDriver(
            client,
            settings.client_consoles,
            per_class_concurrency=settings.client_concurrency,
            interval=settings.client_interval_seconds,
            repetitions=settings.client_repetitions,
            observer=observer,
            drain_on_shutdown=settings.client_drain_on_shutdown,
        )
        loop = asyncio.get_running_loop()
        installed = []
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, driver.stop)
            except (NotImplementedError, RuntimeError):
                # Not supported on this platform or outside the main thread.
                continue
            installed.append(sig)

        logger.info(
            "Driving %s at %s every %.3fs (concurrency %d per console)",
            ", ".join(driver.consoles),
            settings.base_url,
            driver.interval,
            driver.per_class_concurrency,
        )
        try:
            state = await driver.run()
        finally:
            for sig in installed:
                loop.remove_signal_handler(sig)
        logger.info("Load Driver finished: %s", state.snapshot())
        return state
