from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session
from gyanshare.database import get_db
from gyanshare.models.profile import Profile
from gyanshare.auth import create_access_token, get_current_user, hash_password, verify_password
from gyanshare.errors import InvalidInput
from gyanshare.schemas.user import LoginRequest, RegisterRequest, TokenResponse, ProfileResponse
from gyanshare.services import rewards
from gyanshare.routers.profile import profile_response

router = APIRouter(prefix="/api/auth", tags=["auth"])

PASSWORD_MIN = 8
PASSWORD_MAX = 72


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def register(body: RegisterRequest, db: Session = Depends(get_db)):
    """Create an account (optionally with a friend's referral code) and log in."""
    if not PASSWORD_MIN <= len(body.password) <= PASSWORD_MAX:
        raise InvalidInput(f"Password must be {PASSWORD_MIN}-{PASSWORD_MAX} characters")
    user = rewards.register_profile(
        db,
        email=body.email,
        password_hash=hash_password(body.password),
        full_name=body.full_name,
        referral_code=body.referral_code,
    )
    db.commit()
    return TokenResponse(access_token=create_access_token(user.id, user.email))


@router.post("/login", response_model=TokenResponse)
def login(body: LoginRequest, db: Session = Depends(get_db)):
    """Login with email and password."""
    email = body.email.strip().lower()
    user = db.query(Profile).filter(func.lower(Profile.email) == email).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")
    if not verify_password(body.password, user.password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")
    token = create_access_token(user.id, user.email)
    return TokenResponse(access_token=token)


@router.get("/me", response_model=ProfileResponse)
def get_me(user: Profile = Depends(get_current_user), db: Session = Depends(get_db)):
    return profile_response(db, user)
