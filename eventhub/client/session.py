"""
Client-side view of "who is signed in".

Every view reads the current user through one cached query keyed by the
session endpoint path, so login, logout and registration only need to
invalidate that key for the whole client to converge.
"""
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from eventhub.api.schemas.auth import UserResponse
from eventhub.client.api import ApiClient
from eventhub.client.query_cache import QueryClient, QueryOptions, QueryState

logger = logging.getLogger(__name__)

SESSION_PATH = "/api/auth/user"
SESSION_QUERY_KEY = (SESSION_PATH,)
SESSION_STALE_SECONDS = 5 * 60

SESSION_QUERY_OPTIONS = QueryOptions(
    stale_time=SESSION_STALE_SECONDS,
    retry=0,
    refetch_on_window_focus=False,
)


@dataclass(frozen=True)
class AuthState:
    user: Optional[UserResponse]
    is_loading: bool

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def role(self) -> Optional[str]:
        return self.user.role if self.user else None


class SessionAccessor:
    def __init__(self, api: ApiClient, query_client: QueryClient):
        self.api = api
        self.query_client = query_client

    def _fetch(self) -> Optional[UserResponse]:
        data = self.api.get_query(SESSION_PATH, on_unauthorized="return_null")
        return UserResponse.model_validate(data) if data else None

    def get_current_user(self) -> Optional[UserResponse]:
        """Cached current user; an unauthenticated session is ``None``, not an error."""
        return self.query_client.fetch_query(SESSION_QUERY_KEY, self._fetch, SESSION_QUERY_OPTIONS)

    def refetch(self) -> Optional[UserResponse]:
        """Read the session from the server now, bypassing the cache."""
        self.invalidate()
        return self.get_current_user()

    def invalidate(self) -> None:
        self.query_client.invalidate_queries(SESSION_QUERY_KEY)

    def clear(self) -> None:
        """Forget the user locally, e.g. right after logout."""
        self.query_client.set_query_data(SESSION_QUERY_KEY, None)

    def state(self) -> AuthState:
        query = self.query_client.get_state(SESSION_QUERY_KEY)
        return AuthState(user=query.data, is_loading=query.is_pending or query.is_fetching)

    def subscribe(self, listener: Callable[[AuthState], None]) -> Callable[[], None]:
        """Notify ``listener`` whenever the session query changes."""

        def on_change(key, _state: QueryState) -> None:
            if key == SESSION_QUERY_KEY:
                listener(self.state())

        return self.query_client.subscribe(on_change)
