from __future__ import annotations

from fastapi import APIRouter, File, Request, UploadFile

from socialapp.routers.users import envelope
from socialapp.services.avatar_service import AvatarService, avatar_to_dict

router = APIRouter(prefix="/users", tags=["avatars"])


def _get_avatar_service(request: Request) -> AvatarService:
    svc = getattr(getattr(request.app, "state", None), "avatar_service", None)
    if not svc:
        raise RuntimeError("AvatarService not configured")
    return svc


@router.post("/{user_id}/avatar")
def change_profile_picture(user_id: int, request: Request, profile_pic: UploadFile | None = File(None)):
    avatar = _get_avatar_service(request).change_avatar(user_id, profile_pic)
    return envelope("updated profile picture!", avatar_to_dict(avatar))


@router.get("/{user_id}/avatars")
def list_avatars(user_id: int, request: Request):
    avatars = _get_avatar_service(request).list_avatars(user_id)
    return envelope(data=[avatar_to_dict(a) for a in avatars])
