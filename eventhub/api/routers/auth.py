"""
Authentication endpoints: session login/logout, registration, "who am I",
role selection and both password-reset flavors.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.orm import Session

from eventhub.api.schemas.auth import (
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    ResetPasswordDirectRequest,
    ResetPasswordRequest,
    RoleUpdateRequest,
    UserResponse,
)
from eventhub.core import password_reset
from eventhub.core.security import (
    User,
    authenticate_user,
    clear_session_cookie,
    create_session,
    create_user,
    end_session,
    extract_session_token,
    get_current_user,
    get_user_by_email,
    set_session_cookie,
    set_user_role,
)
from eventhub.db.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["authentication"])

# Same body whether or not the email belongs to an account
FORGOT_PASSWORD_ACK = "If an account exists for this email, you can now choose a new password."


@router.get("/user", response_model=UserResponse)
async def get_session_user(current_user: User = Depends(get_current_user)):
    """
    Return the user behind the current session.

    Responds 401 when there is no valid session; clients treat that as
    "signed out", not as a failure.
    """
    return UserResponse.model_validate(current_user)


@router.post("/login", response_model=MessageResponse)
async def login(credentials: LoginRequest, response: Response, db: Session = Depends(get_db)):
    """
    Login with username (or email) and password.

    Establishes the session cookie. The body carries no user payload;
    clients re-read ``/api/auth/user`` to learn the role.
    """
    try:
        user = authenticate_user(db, credentials.username, credentials.password)
        if not user:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid username or password"
            )

        token = create_session(db, user)
        set_session_cookie(response, token)
        logger.info("User %s signed in", user.id)
        return MessageResponse(success=True, message="Login successful")

    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Login failed")
        raise HTTPException(status_code=500, detail="Login failed") from e


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(payload: RegisterRequest, response: Response, db: Session = Depends(get_db)):
    """
    Register a new account and sign it in.

    ``admin`` cannot be requested here; admins are created by an existing
    admin or by ``create_admin_user.py``.
    """
    try:
        user = create_user(
            db=db,
            email=payload.email,
            password=payload.password,
            username=payload.username,
            first_name=payload.first_name,
            last_name=payload.last_name,
            role=payload.role,
        )
        token = create_session(db, user)
        set_session_cookie(response, token)
        logger.info("Registered user %s with role %s", user.id, user.role)
        return UserResponse.model_validate(user)

    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Registration failed")
        raise HTTPException(status_code=500, detail="Registration failed") from e


@router.post("/logout", response_model=MessageResponse)
async def logout(request: Request, response: Response, db: Session = Depends(get_db)):
    """Drop the current session. Succeeds even without one."""
    end_session(db, extract_session_token(request))
    clear_session_cookie(response)
    return MessageResponse(success=True, message="Logged out")


@router.patch("/user/role", response_model=UserResponse)
async def update_own_role(
    payload: RoleUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Let a signed-in user pick a non-admin role."""
    if current_user.role == "admin":
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Administrators cannot change their own role"
        )
    user = set_user_role(db, current_user.id, payload.role)
    return UserResponse.model_validate(user)


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    payload: ForgotPasswordRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Step one of a password reset.

    For a registered email this mails a reset link and records the step-one
    verification used by ``/reset-password-direct``. The response is the same
    for unknown emails so it cannot be used to enumerate accounts.
    """
    client_ip = request.client.host if request.client else None
    if not password_reset.allow_forgot_password(payload.email, client_ip):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many password reset requests. Please try again later."
        )

    user = get_user_by_email(db, payload.email)
    if user is not None and user.is_active:
        token = password_reset.issue_reset_token(db, user)
        password_reset.record_direct_request(db, user)
        password_reset.deliver_reset_link(user.email, password_reset.build_reset_link(token))
    else:
        logger.info("Forgot-password request for an unknown email")

    return MessageResponse(success=True, message=FORGOT_PASSWORD_ACK)


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(payload: ResetPasswordRequest, db: Session = Depends(get_db)):
    """Set a new password using the token from an emailed link."""
    if not password_reset.reset_password_with_token(db, payload.token, payload.password):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired reset token"
        )
    return MessageResponse(success=True, message="Password has been reset")


@router.post("/reset-password-direct", response_model=MessageResponse)
async def reset_password_direct(payload: ResetPasswordDirectRequest, db: Session = Depends(get_db)):
    """
    Step two of the in-app reset flow.

    The email is re-validated against the server's record of step one; the
    client having shown the password form proves nothing.
    """
    if not password_reset.reset_password_direct(db, payload.email, payload.password):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Unable to reset password for this email. Please request a new reset."
        )
    return MessageResponse(success=True, message="Password has been reset")
