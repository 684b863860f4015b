"""
api/routes/v1/auth.py -- Account creation and session REST endpoints.

Routes:
  POST /api/v1/auth/signup   -- password signup; 201 + session cookie
  POST /api/v1/auth/signin   -- passwordless sign-in (creates on first contact); 200 + session cookie
  POST /api/v1/auth/logout   -- clears cookie; 200
  GET  /api/v1/auth/me       -- current account (requires session)

Error mapping lives in api/main.py: every AccountError subclass carries its
own HTTP status and code, so these handlers only raise.

Notifications run after the account is committed. announce() never raises,
so its outcome shows up only as emailSent in the signup response.

Cache-Control: no-store on every response that sets a session cookie.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.models import AccountResponse, SignInRequest, SignInResponse, SignupRequest, SignupResponse
from auth.authenticator import sign_in
from auth.dependencies import get_current_account
from auth.models import Account
from auth.provisioner import signup
from auth.store import AccountStore
from auth.tokens import clear_auth_cookie, create_access_token, set_auth_cookie
from notify.dispatcher import NotificationDispatcher

# Auth policy:
# - POST /api/v1/auth/signup:  public
# - POST /api/v1/auth/signin:  public -- passwordless by product decision
# - POST /api/v1/auth/logout:  public -- clearing a cookie needs no prior auth
# - GET  /api/v1/auth/me:      requires session (get_current_account)
router = APIRouter()


def _with_session(resp: JSONResponse, account: Account) -> JSONResponse:
    token = create_access_token(account.id, account.email, account.role)
    set_auth_cookie(resp, token)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/signup", response_model=SignupResponse, status_code=201)
def signup_route(request: Request, body: SignupRequest) -> JSONResponse:
    """Create a password-backed account, announce it, and open a session.

    Sync handler: bcrypt is CPU-bound, so FastAPI runs this in its thread pool.
    """
    store: AccountStore = request.app.state.account_store
    dispatcher: NotificationDispatcher = request.app.state.dispatcher

    account = signup(store, body.email, body.password, name=body.name)
    email_sent = dispatcher.announce(account)

    payload = SignupResponse(user=AccountResponse.from_account(account), email_sent=email_sent)
    resp = JSONResponse(status_code=201, content=payload.model_dump(by_alias=True))
    return _with_session(resp, account)


@router.post("/auth/signin", response_model=SignInResponse)
def signin_route(request: Request, body: SignInRequest) -> JSONResponse:
    """Resolve an email into a session, provisioning the account on first contact."""
    store: AccountStore = request.app.state.account_store
    dispatcher: NotificationDispatcher = request.app.state.dispatcher

    account, created = sign_in(store, body.email, name=body.name, dispatcher=dispatcher)

    payload = SignInResponse(user=AccountResponse.from_account(account), created=created)
    resp = JSONResponse(status_code=200, content=payload.model_dump(by_alias=True))
    return _with_session(resp, account)


@router.post("/auth/logout")
async def logout() -> JSONResponse:
    """Clear the session cookie."""
    resp = JSONResponse(content={"message": "Logged out."})
    clear_auth_cookie(resp)
    return resp


@router.get("/auth/me", response_model=AccountResponse)
async def me(current_account: Account = Depends(get_current_account)) -> JSONResponse:
    """Return the account behind the current session."""
    return JSONResponse(content=AccountResponse.from_account(current_account).model_dump(by_alias=True))
