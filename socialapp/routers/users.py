from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from socialapp.schemas import ComparePasswordRequest, LoginRequest, RegisterRequest, UpdateUserRequest
from socialapp.services.session_service import (
    clear_session_cookie,
    set_session_cookie,
    token_from_request,
)
from socialapp.services.user_service import UserService, user_to_dict

router = APIRouter(prefix="/users", tags=["users"])


def _get_user_service(request: Request) -> UserService:
    svc = getattr(getattr(request.app, "state", None), "user_service", None)
    if not svc:
        raise RuntimeError("UserService not configured")
    return svc


def envelope(message: str | None = None, data=None, status_code: int = 200, status: str = "Success") -> JSONResponse:
    payload: dict = {"status": status}
    if message is not None:
        payload["message"] = message
    if data is not None:
        payload["data"] = data
    return JSONResponse(payload, status_code=status_code)


@router.post("/register")
def register(body: RegisterRequest, request: Request):
    user = _get_user_service(request).register(body)
    return envelope("The user was successfully created.", {"id": user.id})


@router.post("/login")
def login(body: LoginRequest, request: Request):
    result = _get_user_service(request).login(str(body.email), body.password)
    response = envelope(
        "You have been successfully logged in.",
        {"type": "bearer", "token": result.token},
    )
    set_session_cookie(response, result.token)
    return response


@router.post("/logout")
def logout(request: Request):
    _get_user_service(request).logout(token_from_request(request))
    response = envelope("You have been logged out.")
    clear_session_cookie(response)
    return response


@router.get("/me")
def get_self(request: Request):
    svc = _get_user_service(request)
    user_id = svc.sessions.resolve(token_from_request(request))
    return envelope("The user was successfully found.", svc.get_self(user_id))


@router.get("/search")
def search(request: Request, q: str = ""):
    users = _get_user_service(request).search(q)
    return envelope(data=users)


@router.post("/compare-password")
def compare_password(body: ComparePasswordRequest, request: Request):
    if _get_user_service(request).compare_password(body.password, body.hash):
        return envelope("The passwords match.")
    return envelope("No match", status_code=401, status="Error")


@router.get("")
def get_all(request: Request, page: int = 1, limit: int = 20):
    result = _get_user_service(request).get_all(page, limit)
    return envelope("The users was successfully found.", result.to_dict())


@router.get("/{user_id}")
def get_one(user_id: int, request: Request):
    data = _get_user_service(request).get_one(user_id)
    return envelope("The user was successfully found.", data)


@router.put("/{user_id}")
def update(user_id: int, body: UpdateUserRequest, request: Request):
    user = _get_user_service(request).update(user_id, body)
    return envelope("The user was successfully updated.", user_to_dict(user))


@router.delete("/{user_id}")
def delete(user_id: int, request: Request):
    _get_user_service(request).delete(user_id)
    return envelope("The user was successfully deleted.")
