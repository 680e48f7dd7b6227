"""
JWT bearer auth for the lead management routes.
Tokens are issued upstream and must name the entity or project they act for.
Every failure is a 403.
"""
import logging
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

logger = logging.getLogger(__name__)
bearer_scheme = HTTPBearer(auto_error=False)


def _jwt_secret() -> str:
    from leadgate.config import get_settings
    settings = get_settings()
    return settings.jwt_secret or settings.app_secret_key


async def require_api_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> dict:
    """Dependency returning the verified token payload."""
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=403, detail="Can't parse token")

    import jwt as pyjwt

    try:
        payload = pyjwt.decode(
            credentials.credentials,
            _jwt_secret(),
            algorithms=["HS256"],
        )
    except pyjwt.ExpiredSignatureError:
        raise HTTPException(status_code=403, detail="Provided token is expired.")
    except pyjwt.InvalidTokenError:
        raise HTTPException(status_code=403, detail="An error while decoding token.")

    if not payload.get("external_entity_id") and not payload.get("external_project_id"):
        raise HTTPException(status_code=403, detail="Project id or Entity id should be specified")

    return payload
