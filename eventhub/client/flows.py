"""
Client-side auth flows: login, registration, logout, the two-step
forgot-password flow and the emailed-link reset page.

Every flow validates input with the same pydantic models the server uses,
so invalid input produces per-field errors and never reaches the network.
Request failures surface as localized toasts and leave the flow's state as
it was.
"""
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union
from urllib.parse import parse_qs, urlsplit

from eventhub.api.schemas.auth import (
    ForgotPasswordRequest,
    LoginRequest,
    RegisterRequest,
    ResetPasswordDirectRequest,
    ResetPasswordRequest,
)
from eventhub.client.api import ApiClient, ApiError
from eventhub.client.forms import FormController, InvalidTransition, SubmitResult, Toaster, validate_form
from eventhub.client.routing import ADMIN_PATH, LOGIN_PATH, ROOT_PATH, Navigator
from eventhub.client.session import SessionAccessor
from eventhub.i18n import Translator

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Forgot password
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class EmailStep:
    email: str = ""


@dataclass(frozen=True)
class PasswordStep:
    email: str

    def __post_init__(self):
        if not self.email:
            raise ValueError("PasswordStep requires the verified email")


@dataclass(frozen=True)
class CompletedStep:
    pass


ForgotPasswordState = Union[EmailStep, PasswordStep, CompletedStep]


class ForgotPasswordFlow(FormController):
    """
    Two-step reset for users without a link: verify the email, then choose a
    new password. The server accepts step two only after its own record of a
    successful step one, so nothing here is trusted beyond convenience.
    """

    def __init__(self, api: ApiClient, navigator: Navigator, toaster: Toaster, translator: Translator):
        super().__init__(api, navigator, toaster, translator)
        self.step: ForgotPasswordState = EmailStep()

    @property
    def password_form(self) -> dict:
        """Initial values of the password form; the hidden email is the verified one."""
        if not isinstance(self.step, PasswordStep):
            raise InvalidTransition("The password form is only shown after email verification")
        return {"email": self.step.email, "password": "", "confirmPassword": ""}

    def submit_email(self, email: str) -> SubmitResult:
        if not isinstance(self.step, EmailStep):
            raise InvalidTransition("Email can only be submitted from the email step")
        if not self._begin():
            return SubmitResult.BUSY
        try:
            self.step = EmailStep(email=email)
            form, self.errors = validate_form(ForgotPasswordRequest, {"email": email})
            if form is None:
                return SubmitResult.INVALID

            try:
                self.api.request("POST", "/api/auth/forgot-password", json=form.model_dump())
            except ApiError as e:
                logger.info("Forgot-password request failed: %s", e)
                self._toast_error("auth.forgot")
                return SubmitResult.FAILED

            self.step = PasswordStep(email=form.email)
            self._toast_success("auth.forgot")
            return SubmitResult.SUCCESS
        finally:
            self._end()

    def submit_password(self, password: str, confirm_password: str) -> SubmitResult:
        if not isinstance(self.step, PasswordStep):
            raise InvalidTransition("A new password can only be submitted after email verification")
        if not self._begin():
            return SubmitResult.BUSY
        try:
            values = dict(self.password_form, password=password, confirmPassword=confirm_password)
            form, self.errors = validate_form(ResetPasswordDirectRequest, values)
            if form is None:
                return SubmitResult.INVALID

            try:
                self.api.request(
                    "POST", "/api/auth/reset-password-direct", json=form.model_dump(by_alias=True)
                )
            except ApiError as e:
                logger.info("Direct password reset failed: %s", e)
                self._toast_error("auth.forgot.password")
                return SubmitResult.FAILED

            self.step = CompletedStep()
            self._toast_success("auth.forgot.password")
            self.navigator.navigate(LOGIN_PATH)
            return SubmitResult.SUCCESS
        finally:
            self._end()

    def change_email(self) -> None:
        """Go back to the email step; entered passwords are discarded."""
        if not isinstance(self.step, PasswordStep):
            raise InvalidTransition("Already on the email step")
        self.step = EmailStep(email=self.step.email)
        self.errors = {}

    def cancel(self) -> None:
        """Reset local state. A request already in flight still completes."""
        self.step = EmailStep()
        self.errors = {}


# ---------------------------------------------------------------------------
# Reset via emailed link
# ---------------------------------------------------------------------------

def extract_token(location: str) -> Optional[str]:
    # Accepts a full location or a bare query string; the fragment is never part of the token
    query = urlsplit(location).query if "?" in location else location.split("#", 1)[0]
    values = parse_qs(query).get("token")
    return values[0] if values else None


class ResetPasswordPage(FormController):
    def __init__(self, api: ApiClient, navigator: Navigator, toaster: Toaster, translator: Translator):
        super().__init__(api, navigator, toaster, translator)
        self.token: Optional[str] = None

    @property
    def is_rendered(self) -> bool:
        return self.token is not None

    def mount(self, location: Optional[str] = None) -> bool:
        """
        Read the token from ``location`` (defaults to the navigator's).

        Without a token the page is unusable: an error is shown and the user
        is sent to the login page. Returns whether the form is rendered.
        """
        if location is None:
            location = self.navigator.location
        self.token = extract_token(location)
        if self.token is None:
            t = self.translator.t
            self.toaster.toast(t("auth.reset.error.title"), t("auth.reset.error.notoken"), variant="destructive")
            self.navigator.navigate(LOGIN_PATH, replace=True)
            return False
        return True

    def submit(self, password: str, confirm_password: str) -> SubmitResult:
        if self.token is None:
            raise InvalidTransition("The reset form needs a token; call mount() first")
        if not self._begin():
            return SubmitResult.BUSY
        try:
            values = {"token": self.token, "password": password, "confirmPassword": confirm_password}
            form, self.errors = validate_form(ResetPasswordRequest, values)
            if form is None:
                return SubmitResult.INVALID

            try:
                self.api.request("POST", "/api/auth/reset-password", json=form.model_dump(by_alias=True))
            except ApiError as e:
                logger.info("Token password reset failed: %s", e)
                self._toast_error("auth.reset")
                return SubmitResult.FAILED

            self._toast_success("auth.reset")
            self.navigator.navigate(LOGIN_PATH)
            return SubmitResult.SUCCESS
        finally:
            self._end()


# ---------------------------------------------------------------------------
# Login / registration / logout
# ---------------------------------------------------------------------------

class LoginFlow(FormController):
    def __init__(
        self,
        api: ApiClient,
        session: SessionAccessor,
        navigator: Navigator,
        toaster: Toaster,
        translator: Translator,
    ):
        super().__init__(api, navigator, toaster, translator)
        self.session = session

    def submit(self, username: str, password: str) -> SubmitResult:
        if not self._begin():
            return SubmitResult.BUSY
        try:
            form, self.errors = validate_form(LoginRequest, {"username": username, "password": password})
            if form is None:
                return SubmitResult.INVALID

            try:
                self.api.request("POST", "/api/auth/login", json=form.model_dump())
            except ApiError as e:
                self._toast_error("auth.login", e.message if e.status_code else None)
                return SubmitResult.FAILED

            self._toast_success("auth.login")

            # The login response carries no role; decide only after a fresh session read
            self.session.invalidate()
            try:
                user = self.session.refetch()
            except ApiError as e:
                logger.warning("Session read after login failed: %s", e)
                user = None

            self.navigator.navigate(ADMIN_PATH if user is not None and user.is_admin else ROOT_PATH)
            return SubmitResult.SUCCESS
        finally:
            self._end()


class RegisterFlow(FormController):
    def __init__(
        self,
        api: ApiClient,
        session: SessionAccessor,
        navigator: Navigator,
        toaster: Toaster,
        translator: Translator,
    ):
        super().__init__(api, navigator, toaster, translator)
        self.session = session

    def submit(self, data: Mapping[str, Any]) -> SubmitResult:
        """``data`` uses wire field names (``firstName``, ``lastName``...)."""
        if not self._begin():
            return SubmitResult.BUSY
        try:
            form, self.errors = validate_form(RegisterRequest, data)
            if form is None:
                return SubmitResult.INVALID

            try:
                self.api.request(
                    "POST", "/api/auth/register", json=form.model_dump(by_alias=True, exclude_none=True)
                )
            except ApiError as e:
                self._toast_error("auth.register", e.message if e.status_code else None)
                return SubmitResult.FAILED

            self._toast_success("auth.register")
            self.session.invalidate()
            self.navigator.navigate(ROOT_PATH)
            return SubmitResult.SUCCESS
        finally:
            self._end()


def logout(
    api: ApiClient,
    session: SessionAccessor,
    navigator: Navigator,
    toaster: Toaster,
    translator: Translator,
) -> bool:
    """
    End the session server-side, forget the cached user and go home.

    When the server call fails the user stays signed in where they are and
    sees an error toast. Returns whether the logout went through.
    """
    try:
        api.request("POST", "/api/auth/logout")
    except ApiError as e:
        logger.warning("Logout failed: %s", e)
        t = translator.t
        toaster.toast(t("auth.logout.error.title"), t("auth.logout.error.description"), variant="destructive")
        return False

    session.clear()
    toaster.toast(translator.t("auth.logout.success.title"))
    navigator.navigate(ROOT_PATH)
    return True
