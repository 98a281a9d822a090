"""
Debounced, single-flight search over a catalog callable.

One SearchDebouncer per search box. Each keystroke goes through `submit()`;
the catalog is only hit once typing pauses for `delay` seconds, and only the
newest request may change the visible state:

    IDLE -> PENDING -> IN_FLIGHT -> IDLE (results | no results | error)
      ^________|____________|   any new input goes back to PENDING

Supersession is tracked with a generation counter. A timer or request whose
generation is no longer current is dropped at the moment it would deliver,
so a late response can never overwrite newer input even if the HTTP call
itself could not be aborted.
"""

from __future__ import annotations

import enum
import logging
import re
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

import config
from harvesters.openlibrary_client import SearchHit

logger = logging.getLogger(__name__)

SEARCH_FAILED = "Search failed. Try again."
NO_RESULTS = "No results found."

_WS = re.compile(r"\s+")


class SearchPhase(str, enum.Enum):
    IDLE = "idle"
    PENDING = "pending"
    IN_FLIGHT = "in_flight"


@dataclass(frozen=True)
class SearchState:
    phase: SearchPhase = SearchPhase.IDLE
    query: str = ""
    results: Tuple[SearchHit, ...] = field(default_factory=tuple)
    error: Optional[str] = None
    completed: bool = False  # a request for `query` finished (results or error)

    @property
    def no_results(self) -> bool:
        """A finished search that found nothing (not an error)."""
        return (
            self.phase is SearchPhase.IDLE
            and self.completed
            and self.error is None
            and not self.results
        )

    @property
    def message(self) -> Optional[str]:
        if self.error:
            return self.error
        if self.no_results:
            return NO_RESULTS
        return None


def normalize_query(raw: Optional[str]) -> str:
    """Trim and collapse inner whitespace."""
    return _WS.sub(" ", (raw or "").strip())


Listener = Callable[[SearchState], None]


class SearchDebouncer:
    def __init__(
        self,
        search: Callable[[str], Sequence[SearchHit]],
        delay: float = config.DEBOUNCE_SECONDS,
        on_change: Optional[Listener] = None,
        timer_factory=threading.Timer,
        name: str = "search",
    ):
        """
        Args:
            search: catalog call, e.g. openlibrary_client.search_title
            delay: quiet period (seconds) before a request is issued
            on_change: called with every new state, in transition order
            timer_factory: threading.Timer-compatible constructor
            name: label used in log lines
        """
        self._search = search
        self._delay = delay
        self._timer_factory = timer_factory
        self._name = name

        self._lock = threading.RLock()
        self._changed = threading.Condition(self._lock)
        self._generation = 0
        self._timer = None
        self._state = SearchState()
        self._listeners: List[Listener] = [on_change] if on_change else []

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def state(self) -> SearchState:
        with self._lock:
            return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a state listener; returns a function that removes it."""
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe

    def submit(self, raw_query: Optional[str]) -> None:
        """Feed the latest text of the search box."""
        query = normalize_query(raw_query)
        with self._lock:
            gen = self._supersede()
            if not query:
                self._set(SearchState())
                return

            # keep showing the previous results until new ones land
            self._set(SearchState(phase=SearchPhase.PENDING, query=query, results=self._state.results))
            timer = self._timer_factory(self._delay, self._fire, args=(gen, query))
            timer.daemon = True
            self._timer = timer
            timer.start()

    def clear(self) -> None:
        self.submit("")

    def cancel(self) -> None:
        """
        Drop any pending timer and ignore whatever is still in flight.
        The stream goes back to IDLE and keeps the results already shown.
        """
        with self._lock:
            self._supersede()
            self._set(SearchState(query=self._state.query, results=self._state.results))

    def wait_idle(self, timeout: Optional[float] = None) -> SearchState:
        """Block until the stream is IDLE (or `timeout` passes); returns the state."""
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._changed:
            while self._state.phase is not SearchPhase.IDLE:
                remaining = None if deadline is None else deadline - time.monotonic()
                if remaining is not None and remaining <= 0:
                    break
                self._changed.wait(remaining)
            return self._state

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _supersede(self) -> int:
        self._generation += 1
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        return self._generation

    def _is_current(self, gen: int) -> bool:
        return gen == self._generation

    def _set(self, state: SearchState) -> None:
        self._state = state
        self._changed.notify_all()
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("[%s] state listener failed", self._name)

    def _fire(self, gen: int, query: str) -> None:
        with self._lock:
            if not self._is_current(gen):
                return
            self._timer = None
            self._set(SearchState(phase=SearchPhase.IN_FLIGHT, query=query, results=self._state.results))

        # The request runs outside the lock so new input is never blocked by it.
        try:
            hits = tuple(self._search(query))
        except Exception as exc:
            logger.warning("[%s] search for %r failed: %s", self._name, query, exc)
            self._deliver(gen, SearchState(query=query, error=SEARCH_FAILED, completed=True))
            return
        self._deliver(gen, SearchState(query=query, results=hits, completed=True))

    def _deliver(self, gen: int, state: SearchState) -> bool:
        with self._lock:
            if not self._is_current(gen):
                logger.debug("[%s] dropping stale result for %r", self._name, state.query)
                return False
            self._set(state)
            return True
