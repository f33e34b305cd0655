"""
Auth collaborator for the Restocker API
Signup/login with argon2 password hashes and JWT bearer tokens (or cookie)
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel, EmailStr, Field

from config.config import Config
from restock_agent.database.user_store import UserStore
from restock_agent.models import UserInDB

logger = logging.getLogger(__name__)

TOKEN_COOKIE = "token"

# Password hashing
pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login", auto_error=False)

router = APIRouter(prefix="/auth", tags=["auth"])


# Models
class SignupRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    name: str = Field(..., min_length=1, max_length=200)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


# Helper functions
def verify_password(plain_password, hashed_password):
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password):
    return pwd_context.hash(password)


def create_access_token(user_id: str, config: Config) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES)
    return jwt.encode({"sub": user_id, "exp": expire}, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str, config: Config) -> Optional[str]:
    """User id carried by a valid token, or None"""
    try:
        payload = jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])
    except JWTError:
        return None
    return payload.get("sub")


def get_config(request: Request) -> Config:
    return request.app.state.config


def get_user_store(request: Request) -> UserStore:
    return request.app.state.user_store


def get_current_user(
    request: Request,
    token: Annotated[Optional[str], Depends(oauth2_scheme)],
) -> UserInDB:
    """Bearer header first, then the token cookie"""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    token = token or request.cookies.get(TOKEN_COOKIE)
    if not token:
        raise credentials_exception

    user_id = decode_access_token(token, get_config(request))
    if user_id is None:
        raise credentials_exception

    user = get_user_store(request).get_by_id(user_id)
    if user is None:
        raise credentials_exception
    return user


def _set_token_cookie(response: Response, token: str, config: Config):
    response.set_cookie(
        TOKEN_COOKIE,
        token,
        httponly=True,
        secure=config.COOKIE_SECURE,
        samesite="none" if config.COOKIE_SECURE else "lax",
        max_age=config.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )


# Routes
@router.post("/signup", status_code=status.HTTP_201_CREATED)
def signup(payload: SignupRequest, request: Request, response: Response):
    """Create an account and log it in"""
    config = get_config(request)
    users = get_user_store(request)

    if users.get_by_email(payload.email):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User already exists")

    # A concurrent signup for the same email surfaces as ValidationError (400)
    user = users.create(payload.email, payload.name, get_password_hash(payload.password))
    logger.info("Created user %s", user.id)

    token = create_access_token(user.id, config)
    _set_token_cookie(response, token, config)
    return {"message": "User created & logged in", "token": token, "userId": user.id}


@router.post("/login")
def login(payload: LoginRequest, request: Request, response: Response):
    config = get_config(request)
    user = get_user_store(request).get_by_email(payload.email)
    if not user or not verify_password(payload.password, user.hashed_password):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid credentials")

    token = create_access_token(user.id, config)
    _set_token_cookie(response, token, config)
    return {"message": "Logged in", "token": token, "userId": user.id}


@router.get("/verify")
def verify(current_user: Annotated[UserInDB, Depends(get_current_user)]):
    return {"user": current_user.public().model_dump(mode="json", by_alias=True)}


@router.get("/me")
def read_me(current_user: Annotated[UserInDB, Depends(get_current_user)]):
    """Current user profile, without the password hash"""
    return {"user": current_user.public().model_dump(mode="json", by_alias=True)}


@router.post("/logout")
def logout(request: Request, response: Response):
    config = get_config(request)
    response.delete_cookie(
        TOKEN_COOKIE,
        httponly=True,
        secure=config.COOKIE_SECURE,
        samesite="none" if config.COOKIE_SECURE else "lax",
    )
    return {"message": "Logged out"}
