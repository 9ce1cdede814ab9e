import secrets

from fastapi import Depends, HTTPException
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from cohortpay.core.settings import settings


security = HTTPBasic(auto_error=False)


def require_basic_auth(credentials: HTTPBasicCredentials | None = Depends(security)) -> None:
    if not settings.basic_auth_enabled:
        return

    if settings.basic_auth_username is None or settings.basic_auth_password is None:
        raise RuntimeError("Basic Auth enabled but credentials are not set")

    if credentials is None:
        raise HTTPException(
            status_code=401,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Basic"},
        )

    username_ok = secrets.compare_digest(credentials.username, settings.basic_auth_username)
    password_ok = secrets.compare_digest(credentials.password, settings.basic_auth_password)

    if not (username_ok and password_ok):
        raise HTTPException(
            status_code=401,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Basic"},
        )
