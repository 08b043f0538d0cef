import json

import httpx
import pytest

from eventhub.client.api import ApiClient
from eventhub.client.flows import EmailStep, ForgotPasswordFlow, PasswordStep
from eventhub.client.forms import InvalidTransition, SubmitResult, Toaster
from eventhub.client.routing import Navigator
from eventhub.i18n import Translator, get_translation


class RecordingServer:
    """MockTransport handler that records every request and answers with ``status_code``."""

    def __init__(self, status_code=200):
        self.status_code = status_code
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json={"success": self.status_code < 400, "message": "server says"})


@pytest.fixture
def server():
    return RecordingServer()


def make_flow(http, language="en"):
    return ForgotPasswordFlow(ApiClient(http), Navigator("/forgot-password"), Toaster(), Translator(language))


@pytest.fixture
def mocked_flow(server):
    return make_flow(httpx.Client(base_url="http://testserver", transport=httpx.MockTransport(server)))


def test_invalid_email_never_reaches_the_network(mocked_flow, server):
    assert mocked_flow.submit_email("not-an-email") == SubmitResult.INVALID
    assert mocked_flow.errors == {"email": "validation.email.invalid"}
    assert isinstance(mocked_flow.step, EmailStep)

    assert mocked_flow.submit_email("   ") == SubmitResult.INVALID
    assert mocked_flow.errors == {"email": "validation.required"}
    assert server.requests == []


def test_verified_email_prefills_password_form(mocked_flow, server):
    assert mocked_flow.submit_email("user@example.com") == SubmitResult.SUCCESS

    assert mocked_flow.step == PasswordStep(email="user@example.com")
    assert mocked_flow.password_form == {"email": "user@example.com", "password": "", "confirmPassword": ""}
    assert server.requests[0].url.path == "/api/auth/forgot-password"


def test_mismatched_passwords_never_reach_the_network(mocked_flow, server):
    mocked_flow.submit_email("user@example.com")
    server.requests.clear()

    assert mocked_flow.submit_password("Password123", "Password124") == SubmitResult.INVALID
    assert mocked_flow.errors == {"confirmPassword": "validation.password.mismatch"}
    assert mocked_flow.submit_password("short1", "short1") == SubmitResult.INVALID
    assert mocked_flow.errors == {"password": "validation.password.min"}
    assert server.requests == []
    assert isinstance(mocked_flow.step, PasswordStep)


def test_password_step_posts_all_three_fields(mocked_flow, server):
    mocked_flow.submit_email("user@example.com")

    assert mocked_flow.submit_password("Password123", "Password123") == SubmitResult.SUCCESS

    request = server.requests[-1]
    assert request.url.path == "/api/auth/reset-password-direct"
    assert json.loads(request.content) == {
        "email": "user@example.com",
        "password": "Password123",
        "confirmPassword": "Password123",
    }
    assert mocked_flow.navigator.location == "/login"


def test_email_step_failure_shows_generic_localized_error(server):
    server.status_code = 500
    flow = make_flow(httpx.Client(base_url="http://testserver", transport=httpx.MockTransport(server)), "ar")

    assert flow.submit_email("user@example.com") == SubmitResult.FAILED

    assert isinstance(flow.step, EmailStep)
    toast = flow.toaster.last
    assert toast.variant == "destructive"
    assert toast.description == get_translation("ar", "auth.forgot.error.description")
    assert "server says" not in toast.description


def test_change_email_returns_to_email_step(mocked_flow):
    mocked_flow.submit_email("user@example.com")
    mocked_flow.submit_password("Password123", "Nope")

    mocked_flow.change_email()

    assert mocked_flow.step == EmailStep(email="user@example.com")
    assert mocked_flow.errors == {}


def test_illegal_transitions(mocked_flow):
    with pytest.raises(InvalidTransition):
        mocked_flow.submit_password("Password123", "Password123")
    with pytest.raises(InvalidTransition):
        mocked_flow.change_email()
    with pytest.raises(ValueError):
        PasswordStep(email="")


def test_second_submit_while_pending_is_ignored(mocked_flow, server):
    mocked_flow._in_flight.acquire()
    try:
        assert mocked_flow.is_submitting
        assert mocked_flow.submit_email("user@example.com") == SubmitResult.BUSY
    finally:
        mocked_flow._in_flight.release()
    assert server.requests == []


def test_cancel_resets_local_state(mocked_flow):
    mocked_flow.submit_email("user@example.com")
    mocked_flow.cancel()
    assert mocked_flow.step == EmailStep()


def test_full_flow_against_the_app(client, user_factory):
    account = user_factory()
    flow = make_flow(client)

    assert flow.submit_email(account["email"]) == SubmitResult.SUCCESS
    assert flow.submit_password("BrandNew123", "BrandNew123") == SubmitResult.SUCCESS
    assert flow.navigator.location == "/login"
    assert flow.toaster.last.title == get_translation("en", "auth.forgot.password.success.title")

    login = client.post("/api/auth/login", json={"username": account["username"], "password": "BrandNew123"})
    assert login.status_code == 200


def test_unknown_email_cannot_finish_the_flow(client):
    flow = make_flow(client)

    # Step one looks the same as for a real account
    assert flow.submit_email("ghost@example.com") == SubmitResult.SUCCESS
    assert flow.submit_password("BrandNew123", "BrandNew123") == SubmitResult.FAILED
    assert isinstance(flow.step, PasswordStep)
    assert flow.navigator.location == "/forgot-password"
