"""
Lookup orchestration on top of the resolvers.

WeatherLookup drives one (location, date) pair for one caller and only ever
commits the result of the most recent request. WeatherBatch keeps one result
slot per caller-assigned id and dispatches each id once.

Everything runs on the caller's event loop; the only suspension points are
the resolver calls. Cancellation is logical: a superseded sequence keeps
running (and may still fill the shared caches) but can no longer commit.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from types import MappingProxyType
from typing import Callable, Dict, Iterable, Mapping, Optional, Set, Tuple, Union

from .resolvers import ForecastResolver, GeocodeResolver
from .schemas import BatchResult, LookupRequest, LookupState
from .window import FETCH_WINDOW, ForecastWindow, should_fetch_weather

logger = logging.getLogger(__name__)

FAILED_TO_LOAD = "Failed to load weather"


class WeatherLookup:
    """
    Single (location, date) lookup for one call site.

    State moves Idle -> Loading -> Resolved/Failed, or back to the idle
    baseline whenever the inputs become ineligible. Each update() bumps a
    generation counter; a sequence commits only while its generation is
    still the current one, so late answers for old inputs are dropped.

    Usage:
        lookup = WeatherLookup(geocoder, forecaster, on_change=render)
        lookup.update("Kyoto", "2024-05-01")
        await lookup.wait()
        lookup.state.weather
    """

    def __init__(
        self,
        geocoder: Optional[GeocodeResolver] = None,
        forecaster: Optional[ForecastResolver] = None,
        *,
        window: ForecastWindow = FETCH_WINDOW,
        clock: Callable[[], date] = date.today,
        on_change: Optional[Callable[[LookupState], None]] = None,
    ):
        self.geocoder = geocoder or GeocodeResolver()
        self.forecaster = forecaster or ForecastResolver()
        self.window = window
        self.clock = clock
        self.on_change = on_change

        self._state = LookupState()
        self._generation = 0
        self._closed = False
        self._task: Optional[asyncio.Task] = None
        self._tasks: Set[asyncio.Task] = set()
        self._inputs: Optional[Tuple[Optional[str], Optional[str], bool]] = None

    @property
    def state(self) -> LookupState:
        return self._state

    @property
    def pending(self) -> Set[asyncio.Task]:
        """Unfinished sequences, superseded ones included."""
        return {t for t in self._tasks if not t.done()}

    def update(self, location: Optional[str], day: Optional[str]) -> Optional[asyncio.Task]:
        """
        Re-evaluate for new inputs. Must be called with a running event loop.
        Returns the scheduled sequence, or None when nothing was dispatched.
        Repeating the last inputs is a no-op that returns the current sequence.
        """
        if self._closed:
            return None

        eligible = should_fetch_weather(location, day, self.clock(), self.window)
        inputs = (location, day, eligible)
        if inputs == self._inputs:
            return self._task
        self._inputs = inputs

        # Any earlier sequence is stale from here on.
        self._generation += 1
        self._task = None

        if not eligible:
            if not self._state.is_baseline:
                self._commit(LookupState())
            return None

        generation = self._generation
        self._commit(LookupState(weather=self._state.weather, loading=True, error=None))

        task = asyncio.get_running_loop().create_task(self._run(location, day, generation))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        self._task = task
        return task

    async def wait(self) -> LookupState:
        """Wait until the current sequence (if any) has settled."""
        while self._task is not None and not self._task.done():
            await asyncio.wait({self._task})
        return self._state

    def close(self) -> None:
        """Teardown: nothing in flight may commit afterwards, later updates are ignored."""
        self._closed = True
        self._generation += 1
        self._task = None

    async def _run(self, location: str, day: str, generation: int) -> None:
        try:
            geocode = await self.geocoder.resolve(location)
            if generation != self._generation:
                return

            if not geocode.has_coordinates:
                self._commit(LookupState(weather=None, loading=False))
                return

            weather = await self.forecaster.resolve(geocode.latitude, geocode.longitude, day)
            if generation != self._generation:
                return

            self._commit(LookupState(weather=weather, loading=False))
        except Exception:
            if generation != self._generation:
                return
            logger.exception("Weather lookup for %r on %s failed", location, day)
            self._commit(LookupState(weather=self._state.weather, loading=False, error=FAILED_TO_LOAD))

    def _commit(self, state: LookupState) -> None:
        self._state = state
        if self.on_change is not None:
            self.on_change(state)


class WeatherBatch:
    """
    Keyed lookups: one result slot per request id.

    An id is dispatched at most once for the lifetime of the batch; callers
    that need a refresh must mint a new id. Reusing an id with different
    location/date before its first lookup settles is a caller error and is
    not reconciled: whichever sequence owns the slot writes it.
    """

    def __init__(
        self,
        geocoder: Optional[GeocodeResolver] = None,
        forecaster: Optional[ForecastResolver] = None,
        *,
        window: ForecastWindow = FETCH_WINDOW,
        clock: Callable[[], date] = date.today,
        on_change: Optional[Callable[[BatchResult], None]] = None,
    ):
        self.geocoder = geocoder or GeocodeResolver()
        self.forecaster = forecaster or ForecastResolver()
        self.window = window
        self.clock = clock
        self.on_change = on_change

        self._results: Dict[str, BatchResult] = {}
        self._tasks: Set[asyncio.Task] = set()

    @property
    def results(self) -> Mapping[str, BatchResult]:
        return MappingProxyType(self._results)

    @property
    def pending(self) -> Set[asyncio.Task]:
        return {t for t in self._tasks if not t.done()}

    def register_all(
        self, requests: Iterable[Union[LookupRequest, Mapping]]
    ) -> Callable[[str], Optional[BatchResult]]:
        """
        Dispatch every eligible request whose id has no slot yet.
        Ineligible requests get no slot at all and are re-checked on the next call.
        """
        today = self.clock()
        for raw in requests:
            request = raw if isinstance(raw, LookupRequest) else LookupRequest.model_validate(raw)
            if request.id in self._results:
                continue
            if not should_fetch_weather(request.location, request.date, today, self.window):
                continue

            self._write(BatchResult(id=request.id, loading=True))
            task = asyncio.get_running_loop().create_task(self._run(request))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
        return self.get_result

    def get_result(self, id: str) -> Optional[BatchResult]:
        """None means never registered or not eligible, distinct from loading=True."""
        return self._results.get(id)

    async def wait(self) -> Mapping[str, BatchResult]:
        """Wait until every dispatched sequence has written its result."""
        while self.pending:
            await asyncio.wait(self.pending)
        return self.results

    async def _run(self, request: LookupRequest) -> None:
        weather = None
        try:
            geocode = await self.geocoder.resolve(request.location)
            if geocode.has_coordinates:
                weather = await self.forecaster.resolve(geocode.latitude, geocode.longitude, request.date)
        except Exception:
            logger.exception("Batch weather lookup for id %s failed", request.id)
        self._write(BatchResult(id=request.id, weather=weather, loading=False))

    def _write(self, result: BatchResult) -> None:
        self._results[result.id] = result
        if self.on_change is not None:
            self.on_change(result)


async def lookup_weather(
    location: Optional[str],
    day: Optional[str],
    geocoder: Optional[GeocodeResolver] = None,
    forecaster: Optional[ForecastResolver] = None,
    **kwargs,
) -> LookupState:
    """One-shot lookup: dispatch, wait, return the settled state."""
    lookup = WeatherLookup(geocoder, forecaster, **kwargs)
    try:
        lookup.update(location, day)
        return await lookup.wait()
    finally:
        lookup.close()
