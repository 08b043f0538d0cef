from uuid import uuid4

import httpx
import pytest

from eventhub.client.api import ApiClient
from eventhub.client.flows import LoginFlow, RegisterFlow, logout
from eventhub.client.forms import SubmitResult, Toaster
from eventhub.client.query_cache import QueryClient
from eventhub.client.routing import Navigator
from eventhub.client.session import SessionAccessor
from eventhub.i18n import Translator


def make_login(http):
    api = ApiClient(http)
    session = SessionAccessor(api, QueryClient())
    return LoginFlow(api, session, Navigator("/login"), Toaster(), Translator("en"))


@pytest.mark.parametrize("role, destination", [("admin", "/admin"), ("organizer", "/"), ("attendee", "/")])
def test_login_navigates_by_role(client, user_factory, role, destination):
    account = user_factory(role=role)
    flow = make_login(client)
    # A stale "signed out" read is cached before login
    assert flow.session.get_current_user() is None

    assert flow.submit(account["username"], account["password"]) == SubmitResult.SUCCESS

    assert flow.navigator.location == destination
    assert flow.session.state().user.role == role


def test_login_reads_session_after_login_response():
    order = []

    def handler(request):
        order.append((request.method, request.url.path))
        if request.url.path == "/api/auth/login":
            return httpx.Response(200, json={"success": True, "message": "Login successful"})
        return httpx.Response(200, json={"id": "a-1", "email": "admin@example.com", "role": "admin"})

    flow = make_login(httpx.Client(base_url="http://testserver", transport=httpx.MockTransport(handler)))
    flow.submit("admin", "Password123")

    assert order == [("POST", "/api/auth/login"), ("GET", "/api/auth/user")]
    assert flow.navigator.location == "/admin"


def test_failed_login_stays_put(client, user_factory):
    account = user_factory()
    flow = make_login(client)

    assert flow.submit(account["username"], "WrongPass999") == SubmitResult.FAILED

    assert flow.navigator.location == "/login"
    assert flow.toaster.last.variant == "destructive"
    assert flow.toaster.last.description == "Invalid username or password"


def test_blank_fields_are_rejected_locally():
    def handler(request):
        raise AssertionError("no request expected")

    flow = make_login(httpx.Client(base_url="http://testserver", transport=httpx.MockTransport(handler)))

    assert flow.submit("", "") == SubmitResult.INVALID
    assert flow.errors == {"username": "validation.required", "password": "validation.required"}


def test_register_then_logout(client):
    api = ApiClient(client)
    session = SessionAccessor(api, QueryClient())
    navigator = Navigator("/register")
    toaster = Toaster()
    translator = Translator("en")
    flow = RegisterFlow(api, session, navigator, toaster, translator)
    suffix = uuid4().hex[:8]

    result = flow.submit(
        {
            "email": f"reg_{suffix}@example.com",
            "username": f"reg_{suffix}",
            "firstName": "Faisal",
            "password": "Password123",
            "role": "service_provider",
        }
    )

    assert result == SubmitResult.SUCCESS
    assert navigator.location == "/"
    assert session.get_current_user().role == "service_provider"

    assert logout(api, session, navigator, toaster, translator) is True

    assert session.state().user is None
    assert session.refetch() is None


def test_register_rejects_admin_role_locally():
    def handler(request):
        raise AssertionError("no request expected")

    api = ApiClient(httpx.Client(base_url="http://testserver", transport=httpx.MockTransport(handler)))
    flow = RegisterFlow(api, SessionAccessor(api, QueryClient()), Navigator("/register"), Toaster(), Translator("en"))

    result = flow.submit(
        {"email": "x@example.com", "username": "xuser", "password": "Password123", "role": "admin"}
    )

    assert result == SubmitResult.INVALID
    assert flow.errors == {"role": "validation.role.invalid"}


def test_failed_logout_keeps_user_signed_in():
    def handler(request):
        if request.url.path == "/api/auth/logout":
            return httpx.Response(500, json={"message": "Logout failed"})
        return httpx.Response(200, json={"id": "o-1", "email": "org@example.com", "role": "organizer"})

    api = ApiClient(httpx.Client(base_url="http://testserver", transport=httpx.MockTransport(handler)))
    session = SessionAccessor(api, QueryClient())
    navigator = Navigator("/dashboard")
    toaster = Toaster()
    translator = Translator("ar")
    assert session.get_current_user().role == "organizer"

    assert logout(api, session, navigator, toaster, translator) is False

    assert navigator.location == "/dashboard"
    assert session.state().user.role == "organizer"
    assert toaster.last.variant == "destructive"
    assert toaster.last.title == translator.t("auth.logout.error.title")
    assert toaster.last.description == translator.t("auth.logout.error.description")
