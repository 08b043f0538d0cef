"""
Keyed request cache shared by client views.

Entries are addressed by a tuple key (conventionally the request path first).
An entry is served from cache while it is younger than its stale time and has
not been invalidated; otherwise the next ``fetch_query`` goes to the network.
Invalidation only marks entries; nothing is refetched behind the caller's back
except by an explicit ``refetch_query`` or a window-focus event for queries
that opted in.
"""
import logging
import threading
import time
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Hashable, List, Optional, Tuple

logger = logging.getLogger(__name__)

QueryKey = Tuple[Hashable, ...]
Listener = Callable[[QueryKey, "QueryState"], None]


@dataclass(frozen=True)
class QueryOptions:
    stale_time: float = 0.0
    retry: int = 0
    refetch_on_window_focus: bool = True


@dataclass(frozen=True)
class QueryState:
    data: Any = None
    error: Optional[Exception] = None
    status: str = "pending"  # pending | success | error
    is_fetching: bool = False
    updated_at: Optional[float] = None
    is_invalidated: bool = False

    @property
    def is_pending(self) -> bool:
        return self.status == "pending"


@dataclass
class _Entry:
    state: QueryState = field(default_factory=QueryState)
    fetcher: Optional[Callable[[], Any]] = None
    options: QueryOptions = field(default_factory=QueryOptions)


def _matches(key: QueryKey, prefix: Optional[QueryKey]) -> bool:
    return prefix is None or key[: len(prefix)] == tuple(prefix)


class QueryClient:
    """One cache per client session; pass it to whatever needs shared data."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: Dict[QueryKey, _Entry] = {}
        self._listeners: List[Listener] = []
        self._lock = threading.RLock()

    # -- observation -----------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener(key, state)`` on every state change; returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_state(self, key: QueryKey, state: QueryState) -> None:
        with self._lock:
            self._entries.setdefault(key, _Entry()).state = state
        for listener in list(self._listeners):
            listener(key, state)

    def get_state(self, key: QueryKey) -> QueryState:
        entry = self._entries.get(tuple(key))
        return entry.state if entry else QueryState()

    def get_query_data(self, key: QueryKey) -> Any:
        return self.get_state(key).data

    def set_query_data(self, key: QueryKey, data: Any) -> None:
        self._set_state(
            tuple(key),
            QueryState(data=data, status="success", updated_at=self._clock()),
        )

    def is_stale(self, key: QueryKey) -> bool:
        key = tuple(key)
        entry = self._entries.get(key)
        if entry is None or entry.state.status != "success" or entry.state.is_invalidated:
            return True
        return self._clock() - entry.state.updated_at >= entry.options.stale_time

    # -- fetching --------------------------------------------------------

    def fetch_query(
        self,
        key: QueryKey,
        fetcher: Callable[[], Any],
        options: Optional[QueryOptions] = None,
    ) -> Any:
        """Return cached data when fresh, otherwise run ``fetcher`` and cache its result."""
        key = tuple(key)
        with self._lock:
            entry = self._entries.setdefault(key, _Entry())
            entry.fetcher = fetcher
            if options is not None:
                entry.options = options
        if not self.is_stale(key):
            return entry.state.data
        return self._run(key)

    def refetch_query(self, key: QueryKey) -> Any:
        """Fetch again regardless of freshness, using the fetcher registered for ``key``."""
        key = tuple(key)
        entry = self._entries.get(key)
        if entry is None or entry.fetcher is None:
            raise KeyError(f"No fetcher registered for query {key!r}")
        return self._run(key)

    def _run(self, key: QueryKey) -> Any:
        entry = self._entries[key]
        self._set_state(key, replace(entry.state, is_fetching=True))

        attempts = entry.options.retry + 1
        for attempt in range(1, attempts + 1):
            try:
                data = entry.fetcher()
            except Exception as e:
                if attempt < attempts:
                    logger.debug("Query %r failed (attempt %d/%d): %s", key, attempt, attempts, e)
                    continue
                self._set_state(
                    key,
                    replace(entry.state, error=e, status="error", is_fetching=False),
                )
                raise
            self._set_state(
                key,
                QueryState(data=data, status="success", updated_at=self._clock()),
            )
            return data

    # -- invalidation ----------------------------------------------------

    def invalidate_queries(self, prefix: Optional[QueryKey] = None) -> List[QueryKey]:
        """Mark matching entries stale so their next fetch hits the network."""
        invalidated = []
        for key, entry in list(self._entries.items()):
            if _matches(key, prefix):
                self._set_state(key, replace(entry.state, is_invalidated=True))
                invalidated.append(key)
        return invalidated

    def remove_queries(self, prefix: Optional[QueryKey] = None) -> None:
        with self._lock:
            for key in [k for k in self._entries if _matches(k, prefix)]:
                del self._entries[key]

    def on_window_focus(self) -> List[QueryKey]:
        """Refetch stale queries that opted into focus refetching; returns the keys refetched."""
        refetched = []
        for key, entry in list(self._entries.items()):
            if entry.fetcher and entry.options.refetch_on_window_focus and self.is_stale(key):
                try:
                    self._run(key)
                except Exception as e:
                    logger.warning("Focus refetch of %r failed: %s", key, e)
                refetched.append(key)
        return refetched
