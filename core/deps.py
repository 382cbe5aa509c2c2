import logging

from fastapi import Depends, HTTPException, Request, status
from typing import Annotated  # Use typing.Annotated for Python 3.9+

from core.firebase import verify_id_token

logger = logging.getLogger(__name__)

# Standard credentials exception
CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Could not validate credentials",
    headers={"WWW-Authenticate": "Bearer"},
)


# Basic Check Matches Firebase Auth Token
async def get_current_user(request: Request):
    # 1) Extract & Analyze Authorization Header
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        raise CREDENTIALS_EXCEPTION
    token = auth_header.split(" ", 1)[1]

    # 2) Verify This Points to a Real User Account
    try:
        decoded = verify_id_token(token)
    except Exception as e:
        logger.warning(f"[AUTH] Token verification failed: {e}")
        raise CREDENTIALS_EXCEPTION
    uid = decoded.get("uid")
    if not uid:
        raise CREDENTIALS_EXCEPTION

    return {
        "uid": uid,
        "email": decoded.get("email", ""),
        "name": decoded.get("name", ""),
    }


# Caller May Only Touch Their Own Attendance Records
async def require_same_user(
    user_id: str,
    current_user: Annotated[dict, Depends(get_current_user)],
):
    if current_user.get("uid") != user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have permission to access this user's attendance.",
        )
    return current_user
