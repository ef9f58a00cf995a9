from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from typing import Any
import logging

from study_overlay.middlewares.auth_middleware import get_bearer_token, get_current_user_id
from study_overlay.schemas.response import BaseResponse
from study_overlay.schemas.user_schemas import ErrorResponse, RefreshRequest, TokenRefreshResponse
from study_overlay.utils.jwt import (
    blacklist_token,
    create_access_token,
    is_refresh_token_payload,
    seconds_until_expiry,
    verify_token,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])

def api_response(success: bool, message: str, data: Any = None, errors: Any = None):
    return {"success": success, "message": message, "data": data, "errors": errors}

@router.post(
    "/refresh",
    response_model=BaseResponse[TokenRefreshResponse],
    responses={401: {"model": ErrorResponse}},
)
async def refresh_token_endpoint(data: RefreshRequest):
    """Exchange a valid refresh token for a new access token."""
    try:
        payload = verify_token(data.refresh_token)
        if payload is None or not is_refresh_token_payload(payload):
            raise HTTPException(status_code=401, detail="Invalid refresh token")

        user_id = payload.get("sub")
        if not user_id:
            raise HTTPException(status_code=401, detail="Invalid refresh token payload")

        new_access = create_access_token({"sub": user_id})
        return api_response(
            True,
            "Token refreshed",
            TokenRefreshResponse(access_token=new_access).model_dump(),
            None,
        )
    except HTTPException as e:
        return JSONResponse(status_code=e.status_code, content=api_response(False, e.detail, None, e.detail))

@router.post(
    "/logout",
    response_model=BaseResponse[dict],
    responses={401: {"model": ErrorResponse}},
)
async def logout(
    user_id=Depends(get_current_user_id),
    token: str = Depends(get_bearer_token),
):
    """Revoke the presented access token until it would have expired anyway."""
    payload = verify_token(token) or {}
    await blacklist_token(token, seconds_until_expiry(payload))
    logger.info(f"User {user_id} logged out")
    return api_response(True, "Logged out", {}, None)
