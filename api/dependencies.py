"""API Dependencies - Authentication"""
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError

from domain.auth import User, UserInDB
from infrastructure.security import decode_access_token, get_password_hash
from api.schemas import TokenData

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token")

# Stand-in user table; a real deployment reads users from the account service
fake_users_db = {
    "owner": {
        "username": "owner",
        "full_name": "Olivia Owner",
        "email": "owner@example.com",
        "plain_password": "owner123",
        "disabled": False,
        "user_id": "3f1c2a9e-5b7d-4e21-9a0c-8d6f4b2e1a01"
    },
    "guest": {
        "username": "guest",
        "full_name": "Gabriel Guest",
        "email": "guest@example.com",
        "plain_password": "guest123",
        "disabled": False,
        "user_id": "7a4e9b13-2c6f-4d88-b5e0-1f3a6c9d2b02"
    },
    "other": {
        "username": "other",
        "full_name": "Oscar Other",
        "email": "other@example.com",
        "plain_password": "other123",
        "disabled": False,
        "user_id": "c2d8e5f1-9a3b-4c67-8e10-5b4d7a6f3c03"
    },
}

# Passwords are hashed lazily on first lookup
_password_hash_cache = {}


def _get_hashed_password(username: str) -> str:
    if username not in _password_hash_cache:
        user = fake_users_db.get(username)
        if user and "plain_password" in user:
            _password_hash_cache[username] = get_password_hash(user["plain_password"])
    return _password_hash_cache.get(username, "")


def get_user(db, username: str):
    if username in db:
        user_dict = db[username].copy()
        if "plain_password" in user_dict:
            user_dict["hashed_password"] = _get_hashed_password(username)
            del user_dict["plain_password"]
        return UserInDB(**user_dict)
    return None


async def get_current_user(token: str = Depends(oauth2_scheme)):
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = decode_access_token(token)
        username: str = payload.get("sub")
        if username is None:
            raise credentials_exception
        token_data = TokenData(username=username)
    except JWTError:
        raise credentials_exception

    user = get_user(fake_users_db, username=token_data.username)
    if user is None:
        raise credentials_exception
    return user


async def get_current_active_user(current_user: User = Depends(get_current_user)):
    if current_user.disabled:
        raise HTTPException(status_code=400, detail="Inactive user")
    return current_user
