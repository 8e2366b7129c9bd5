from datetime import datetime

from fastapi import APIRouter, Depends, Response

from app.deps import SESSION_COOKIE_NAME, get_current_user
from app.models.user import User

router = APIRouter()


@router.get("/me")
async def auth_me(user: User = Depends(get_current_user)):
    """Return current user. Requires session cookie."""
    return {
        "id": str(user.id),
        "email": user.email,
        "name": user.name,
        "role": user.role,
    }


@router.post("/logout")
async def auth_logout(response: Response, user: User = Depends(get_current_user)):
    """Invalidate every session of this user and clear the cookie."""
    await user.set({User.session_version: user.session_version + 1, User.updated_at: datetime.utcnow()})
    response.delete_cookie(SESSION_COOKIE_NAME, path="/")
    return {"status": "ok"}
