"""HTTP Basic gate that names the acting user for each request."""

from __future__ import annotations

import secrets
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from ..config import BoardConfig
from ..constants import AUTH_REALM, UNKNOWN_USER

security = HTTPBasic(auto_error=False, realm=AUTH_REALM)


def verify_credentials(config: BoardConfig, username: str, password: str) -> bool:
    """Verify username and password.

    Args:
        config: Board configuration holding the user table.
        username: Username to verify.
        password: Password to verify.

    Returns:
        True if credentials are valid.
    """
    if not config.auth_enabled:
        return True  # Auth disabled, always succeed

    expected = config.users.get(username)
    if expected is None:
        return False
    return secrets.compare_digest(password.encode("utf-8"), expected.encode("utf-8"))


def current_user(
    request: Request,
    credentials: Optional[HTTPBasicCredentials] = Depends(security),
) -> str:
    """Resolve the acting user.

    With auth disabled the Basic username is trusted when present, otherwise
    the user is ``"unknown"``.  With auth enabled, missing or wrong
    credentials get a 401 challenge.
    """
    config: BoardConfig = request.app.state.config
    if credentials is None:
        if config.auth_enabled:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Authentication required",
                headers={"WWW-Authenticate": f'Basic realm="{AUTH_REALM}"'},
            )
        return UNKNOWN_USER
    if not verify_credentials(config, credentials.username, credentials.password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": f'Basic realm="{AUTH_REALM}"'},
        )
    return credentials.username
