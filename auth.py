"""Bearer authentication for the HTTP API.

``Authorization: Bearer <token>`` where the token is either the user's
long-lived API key or a session token issued at login. Either way the user
must be active.
"""

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from database import User, get_db
from errors import UnauthorizedError
from security import decode_access_token
import users_crud


def _bearer_token(request: Request) -> str:
    raw = (request.headers.get("Authorization") or "").strip()
    if not raw:
        raise UnauthorizedError("Token não fornecido")
    scheme, _, token = raw.partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        raise UnauthorizedError("Token não fornecido")
    return token


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    """Resolve the caller. API key first, session token second."""
    token = _bearer_token(request)

    user = users_crud.get_active_user_by_api_key(db, token)
    if user is not None:
        return user

    user_id = decode_access_token(token)
    user = users_crud.get_active_user(db, user_id)
    if user is None:
        raise UnauthorizedError("Usuário inativo ou não encontrado")
    return user
