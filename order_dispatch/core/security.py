from datetime import datetime , timedelta , timezone
from typing import Optional
from jose import JWTError , jwt
from order_dispatch.config import settings
from order_dispatch.core.exception import AuthenticationException


def create_access_token(data : dict , expire_delta : Optional[timedelta] = None) -> str:
    # Tokens are minted by the auth service in production; used here by tooling and tests
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expire_delta or timedelta(minutes=30))

    to_encode.update({"exp": expire})

    return jwt.encode(to_encode , settings.SECRET_KEY , algorithm=settings.ALGORITHM)


def verify_token(token : str) -> dict:
    try:
        return jwt.decode(token , settings.SECRET_KEY , algorithms=[settings.ALGORITHM])

    except JWTError:
        raise AuthenticationException("Could not validate credentials")
