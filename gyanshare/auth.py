from datetime import timedelta
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from gyanshare.config import get_settings
from gyanshare.database import get_db
from gyanshare.errors import NotAuthenticated
from gyanshare.models.profile import Profile
from gyanshare.schemas.user import TokenPayload
from gyanshare.utils.clock import utcnow

security = HTTPBearer(auto_error=False)

# Use Argon2 for password hashing
pwd_context = CryptContext(
    schemes=["argon2"],
    deprecated="auto",
)

def hash_password(password: str) -> str:
    return pwd_context.hash(password)

def verify_password(plain: str, hashed: str | None) -> bool:
    if not hashed:
        return False
    return pwd_context.verify(plain, hashed)

def create_access_token(user_id: str, email: str) -> str:
    settings = get_settings()
    expire = utcnow() + timedelta(
        minutes=settings.access_token_expire_minutes
    )
    payload = {
        "sub": user_id,
        "email": email,
        "exp": expire,
        "type": "access",
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.algorithm)

def decode_token(token: str) -> TokenPayload | None:
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.algorithm],
        )
        if payload.get("type") != "access":
            return None
        return TokenPayload(
            sub=payload["sub"],
            email=payload["email"],
            exp=payload["exp"],
        )
    except (JWTError, KeyError):
        return None

def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
) -> Profile:
    """Caller identity from the Bearer token; NotAuthenticated (401) otherwise."""
    if not credentials:
        raise NotAuthenticated()

    payload = decode_token(credentials.credentials)
    if not payload:
        raise NotAuthenticated("Invalid or expired token")

    user = db.query(Profile).filter(Profile.id == payload.sub).first()
    if not user:
        raise NotAuthenticated("User not found")

    return user
