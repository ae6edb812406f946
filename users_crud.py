"""CRUD operations for users: registration, login, profile and API keys."""

import re
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from database import User, UserStatusEnum
from errors import ConflictError, InvalidInputError, NotFoundError, UnauthorizedError
from logger_config import setup_logger
from security import create_access_token, generate_api_key, hash_password, verify_password

logger = setup_logger(__name__, 'crud.log')

NON_DIGITS = re.compile(r'\D')


def digits_only(phone: str) -> str:
    return NON_DIGITS.sub('', phone or '')


def _normalized_phone(phone: str) -> str:
    """Digits of ``phone``; InvalidInputError when nothing is left."""
    digits = digits_only(phone)
    if not digits:
        raise InvalidInputError.for_field("telefone", "O telefone deve conter dígitos")
    return digits


def _ensure_unique(db: Session, email: Optional[str], telefone: Optional[str], exclude_id: Optional[int] = None):
    clauses = []
    if email:
        clauses.append(User.email == email)
    if telefone:
        clauses.append(User.telefone == telefone)
    if not clauses:
        return
    query = db.query(User.id).filter(or_(*clauses))
    if exclude_id is not None:
        query = query.filter(User.id != exclude_id)
    if query.first() is not None:
        raise ConflictError("Email ou telefone já cadastrado")


def register_user(db: Session, user_data: dict) -> User:
    """Create a user with a hashed password and a fresh API key.

    Raises:
        InvalidInputError: Phone without digits
        ConflictError: Email or phone already registered
    """
    telefone = _normalized_phone(user_data['telefone'])
    _ensure_unique(db, user_data['email'], telefone)

    user = User(
        nome=user_data['nome'],
        email=user_data['email'],
        senha=hash_password(user_data['senha']),
        telefone=telefone,
        api_key=generate_api_key(),
        status=UserStatusEnum.ACTIVE,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"User {user.id} registered")
    return user


def authenticate(db: Session, senha: str, telefone: Optional[str] = None, email: Optional[str] = None) -> dict:
    """Check credentials and issue a session token.

    Returns:
        dict: ``token`` (signed, 24h by default) and ``api_key``

    Raises:
        UnauthorizedError: Unknown user, wrong password or inactive user
    """
    query = db.query(User)
    if telefone:
        query = query.filter(User.telefone == digits_only(telefone))
    else:
        query = query.filter(User.email == email)
    user = query.first()

    if user is None or not verify_password(senha, user.senha):
        logger.warning("Login failed: invalid credentials")
        raise UnauthorizedError("Credenciais inválidas")
    if user.status != UserStatusEnum.ACTIVE:
        logger.warning(f"Login refused for inactive user {user.id}")
        raise UnauthorizedError("Usuário inativo")

    logger.info(f"User {user.id} logged in")
    return {"token": create_access_token(user.id), "api_key": user.api_key}


def get_user(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise NotFoundError("Usuário não encontrado")
    return user


def get_active_user(db: Session, user_id: int) -> Optional[User]:
    return db.query(User).filter(
        User.id == user_id,
        User.status == UserStatusEnum.ACTIVE
    ).first()


def get_active_user_by_api_key(db: Session, api_key: str) -> Optional[User]:
    return db.query(User).filter(
        User.api_key == api_key,
        User.status == UserStatusEnum.ACTIVE
    ).first()


def update_user(db: Session, user: User, updates: dict) -> User:
    """Partial profile update. A new password is hashed; phone is reduced to digits."""
    if 'telefone' in updates and updates['telefone'] is not None:
        updates['telefone'] = _normalized_phone(updates['telefone'])
    _ensure_unique(db, updates.get('email'), updates.get('telefone'), exclude_id=user.id)

    for key, value in updates.items():
        if value is None and key in ('nome', 'email', 'senha', 'telefone'):
            continue
        if key == 'senha':
            value = hash_password(value)
        setattr(user, key, value)

    db.commit()
    db.refresh(user)
    logger.info(f"User {user.id} profile updated: {sorted(k for k in updates if k != 'senha')}")
    return user


def regenerate_api_key(db: Session, user: User) -> str:
    user.api_key = generate_api_key()
    db.commit()
    logger.info(f"User {user.id} API key regenerated")
    return user.api_key
