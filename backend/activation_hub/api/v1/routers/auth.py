from fastapi import APIRouter, HTTPException, Response, status, Depends
from activation_hub.core.security import verify_password, create_access_token
from activation_hub.api.v1.deps import get_current_user
from activation_hub.models.user import User
from activation_hub.schemas.auth import LoginRequest, UserOut, LoginData

router = APIRouter(prefix="/auth", tags=["auth"])


def _user_out(user: User) -> UserOut:
    return UserOut(id=str(user.id), username=user.username, email=user.email, role=user.role)


@router.post("/login")
async def login(payload: LoginRequest, response: Response):
    """
    Authenticate an operator and issue an access token.

    The token is returned in the body and also set as an HttpOnly
    "accessToken" cookie for the admin panel.

    Raises:
        HTTPException (401): AUTH_INVALID_CREDENTIALS
    """
    user = await User.get_or_none(username=payload.username)
    if not user or not verify_password(payload.password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED,
                            detail={"code": "AUTH_INVALID_CREDENTIALS", "message": "Incorrect username or password"})
    token = create_access_token(str(user.id), user.role)
    response.set_cookie("accessToken", token, httponly=True, secure=False, samesite="lax")
    data = LoginData(user=_user_out(user), accessToken=token)
    return {"success": True, "data": data.model_dump()}


@router.get("/me")
async def me(user: User = Depends(get_current_user)):
    """Current operator."""
    return {"success": True, "data": _user_out(user).model_dump()}


@router.post("/logout")
async def logout(response: Response):
    """
    Clear the access token cookie. The JWT itself stays valid until it expires.
    """
    response.delete_cookie("accessToken")
    return {"success": True}
