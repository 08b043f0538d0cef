"""
Client-side routing.

Routes map URL paths to view names. Guards (authentication, roles and the
role-aware home page) are evaluated in ``Router.resolve`` before anything is
rendered, so a decision is either a view to render or a path to navigate to.
"""
import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional
from urllib.parse import parse_qs, urlsplit

from eventhub.client.api import ApiError
from eventhub.client.session import AuthState, SessionAccessor

logger = logging.getLogger(__name__)

ROOT_PATH = "/"
LOGIN_PATH = "/login"
ADMIN_PATH = "/admin"
FALLBACK_PATTERN = "*"

MAX_REDIRECTS = 5

_PARAM = re.compile(r"^:([A-Za-z_][A-Za-z0-9_]*)$")


class RouteTableError(ValueError):
    """The route table is malformed (e.g. a route declared after the fallback)."""


@dataclass(frozen=True)
class RouteDecision:
    view: Optional[str] = None
    params: Dict[str, str] = field(default_factory=dict)
    redirect: Optional[str] = None

    @classmethod
    def render(cls, view: str, params: Optional[Dict[str, str]] = None) -> "RouteDecision":
        return cls(view=view, params=params or {})

    @classmethod
    def redirect_to(cls, path: str) -> "RouteDecision":
        return cls(redirect=path)

    @property
    def is_redirect(self) -> bool:
        return self.redirect is not None


Resolver = Callable[[AuthState, Dict[str, str]], RouteDecision]


@dataclass(frozen=True)
class Route:
    pattern: str
    view: Optional[str] = None
    protected: bool = False
    roles: Optional[FrozenSet[str]] = None
    resolver: Optional[Resolver] = None

    @property
    def is_fallback(self) -> bool:
        return self.pattern == FALLBACK_PATTERN

    def match(self, path: str) -> Optional[Dict[str, str]]:
        if self.is_fallback:
            return {}
        wanted = _segments(self.pattern)
        actual = _segments(path)
        if len(wanted) != len(actual):
            return None
        params = {}
        for expected, value in zip(wanted, actual):
            param = _PARAM.match(expected)
            if param:
                params[param.group(1)] = value
            elif expected != value:
                return None
        return params


def _segments(path: str) -> List[str]:
    return [segment for segment in path.split("/") if segment]


def normalize_path(location: str) -> str:
    path = urlsplit(location).path or ROOT_PATH
    if len(path) > 1:
        path = path.rstrip("/") or ROOT_PATH
    return path


def role_based_home(auth: AuthState, params: Dict[str, str]) -> RouteDecision:
    """Landing until the session is known and present; admins go to the admin dashboard."""
    if auth.is_loading or not auth.is_authenticated:
        return RouteDecision.render("landing")
    if auth.role == "admin":
        return RouteDecision.redirect_to(ADMIN_PATH)
    return RouteDecision.render("dashboard")


class Router:
    """Ordered route table; the first matching route wins."""

    def __init__(self, routes: Iterable[Route]):
        self.routes: List[Route] = []
        for route in routes:
            self.add(route)
        if not self.routes or not self.routes[-1].is_fallback:
            raise RouteTableError("The route table must end with the not-found fallback route")

    def add(self, route: Route) -> None:
        if self.routes and self.routes[-1].is_fallback:
            raise RouteTableError(
                f"Route {route.pattern!r} is declared after the not-found fallback"
            )
        self.routes.append(route)

    def resolve(self, location: str, auth: AuthState) -> RouteDecision:
        path = normalize_path(location)
        for route in self.routes:
            params = route.match(path)
            if params is None:
                continue
            if route.resolver is not None:
                return route.resolver(auth, params)
            return self._guard(route, params, auth)
        # Unreachable: the fallback always matches
        raise RouteTableError("No route matched")

    @staticmethod
    def _guard(route: Route, params: Dict[str, str], auth: AuthState) -> RouteDecision:
        if route.protected or route.roles:
            if auth.is_loading:
                return RouteDecision.render("loading")
            if not auth.is_authenticated:
                return RouteDecision.redirect_to(LOGIN_PATH)
            if route.roles and auth.role not in route.roles:
                return RouteDecision.redirect_to(ROOT_PATH)
        return RouteDecision.render(route.view, params)


ORGANIZERS = frozenset({"organizer", "admin"})
ADMINS = frozenset({"admin"})


def default_routes() -> List[Route]:
    return [
        Route(ROOT_PATH, resolver=role_based_home),
        Route(LOGIN_PATH, "login"),
        Route("/register", "register"),
        Route("/forgot-password", "forgot_password"),
        Route("/reset-password", "reset_password"),
        Route("/role-selection", "role_selection", protected=True),
        Route("/dashboard", "dashboard", protected=True),
        Route("/events", "events"),
        Route("/events/create", "event_create", roles=ORGANIZERS),
        Route("/events/:id/edit", "event_edit", roles=ORGANIZERS),
        Route("/events/:id", "event_details"),
        Route("/my-events", "my_events", protected=True),
        Route("/service-providers", "service_providers"),
        Route("/service-providers/:id", "service_provider_profile"),
        Route("/venues", "venues"),
        Route("/venues/:id", "venue_details"),
        Route("/organizers/:id", "organizer_profile"),
        Route("/sponsors", "sponsors"),
        Route("/messages", "messages", protected=True),
        Route("/profile", "profile", protected=True),
        Route("/ai-assistant", "ai_assistant", protected=True),
        Route(ADMIN_PATH, "admin_dashboard", roles=ADMINS),
        Route("/admin/users", "admin_users", roles=ADMINS),
        Route(FALLBACK_PATTERN, "not_found"),
    ]


class Navigator:
    """Current location plus history. ``location`` keeps the query string."""

    def __init__(self, location: str = ROOT_PATH):
        self.history: List[str] = [location]
        self._listeners: List[Callable[[str], None]] = []

    @property
    def location(self) -> str:
        return self.history[-1]

    @property
    def path(self) -> str:
        return normalize_path(self.location)

    @property
    def query(self) -> Dict[str, List[str]]:
        return parse_qs(urlsplit(self.location).query)

    def navigate(self, location: str, replace: bool = False) -> None:
        if replace:
            self.history[-1] = location
        else:
            self.history.append(location)
        logger.debug("Navigated to %s", location)
        for listener in list(self._listeners):
            listener(location)

    def back(self) -> None:
        if len(self.history) > 1:
            self.history.pop()
            for listener in list(self._listeners):
                listener(self.location)

    def subscribe(self, listener: Callable[[str], None]) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)


class App:
    """
    Shell tying the router to the session and navigator.

    ``current`` always holds the view for the navigator's location; it is
    recomputed when the location or the session query changes.
    """

    def __init__(self, router: Router, session: SessionAccessor, navigator: Navigator):
        self.router = router
        self.session = session
        self.navigator = navigator
        self.current: Optional[RouteDecision] = None
        self._resolving = False
        self._unsubscribers = [
            session.subscribe(lambda _auth: self.render()),
            navigator.subscribe(lambda _location: self.render()),
        ]

    def start(self) -> RouteDecision:
        """Kick off the first session read and render the initial location."""
        self.render()
        try:
            self.session.get_current_user()
        except ApiError as e:
            logger.warning("Initial session read failed: %s", e)
        return self.render()

    def render(self) -> RouteDecision:
        if self._resolving:
            return self.current
        self._resolving = True
        try:
            for _ in range(MAX_REDIRECTS):
                decision = self.router.resolve(self.navigator.location, self.session.state())
                if not decision.is_redirect:
                    self.current = decision
                    return decision
                self.navigator.navigate(decision.redirect, replace=True)
            raise RouteTableError(f"Too many redirects resolving {self.navigator.location!r}")
        finally:
            self._resolving = False

    def close(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
