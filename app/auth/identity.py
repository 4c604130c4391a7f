"""
identity.py
-----------
Purpose:
    Caller identity for protected routes.

Notes:
    - Tokens are verified by the upstream auth gateway, which forwards the
      authenticated user id in the `X-User-Id` header.
    - Provides `auth_dependency` returning claims in the same shape as a
      decoded token (`{"sub": user_id}`).
"""

from fastapi import Header, HTTPException, status

USER_ID_HEADER = "X-User-Id"


def auth_dependency(x_user_id: str | None = Header(default=None, alias=USER_ID_HEADER)) -> dict:
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Missing {USER_ID_HEADER} header",
        )
    return {"sub": user_id}
