"""
Security & Authentication

JWT-based authentication for API access. Verification is stateless: there is
no server-side session table, the signed token is the session.
"""
import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import ValidationError as PydanticValidationError

from .config import Settings, settings as default_settings
from .errors import Forbidden, InvalidCredentials, InvalidToken
from estatemap.schemas import TokenClaims, UserSummary
from estatemap.storage import PersistenceAdapter

logger = logging.getLogger(__name__)


def build_password_context(rounds: int) -> CryptContext:
    return CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)


# Password hashing (process-wide default; create_app builds one per Settings)
pwd_context = build_password_context(default_settings.BCRYPT_ROUNDS)


def verify_password(plain_password: str, hashed_password: str, context: Optional[CryptContext] = None) -> bool:
    """Verify a password against its hash"""
    if not hashed_password:
        return False
    return (pwd_context if context is None else context).verify(plain_password, hashed_password)


def hash_password(password: str, context: Optional[CryptContext] = None) -> str:
    """Hash a password"""
    return (pwd_context if context is None else context).hash(password)


async def hash_password_async(password: str, context: Optional[CryptContext] = None) -> str:
    """bcrypt is CPU bound; keep it off the event loop"""
    return await asyncio.to_thread(hash_password, password, context)


async def verify_password_async(
    plain_password: str, hashed_password: str, context: Optional[CryptContext] = None
) -> bool:
    return await asyncio.to_thread(verify_password, plain_password, hashed_password, context)


def create_access_token(data: dict, config: Settings, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token

    Args:
        data: Payload data (should include 'sub' for user identifier)
        config: Settings holding the signing secret and algorithm
        expires_delta: Token lifetime, JWT_EXPIRE_DAYS when omitted

    Returns:
        Encoded JWT token
    """
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(days=config.JWT_EXPIRE_DAYS))
    to_encode.update({"exp": expire, "iat": now})

    return jwt.encode(to_encode, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def verify_token(token: str, config: Settings) -> dict:
    """
    Verify and decode a JWT token

    Raises:
        InvalidToken: If token is invalid or expired
    """
    try:
        return jwt.decode(token, config.JWT_SECRET_KEY, algorithms=[config.JWT_ALGORITHM])
    except JWTError as exc:
        raise InvalidToken() from exc


class AuthGateway:
    """Issues and verifies session tokens, enforces roles"""

    def __init__(self, storage: PersistenceAdapter, config: Settings):
        self.storage = storage
        self.config = config
        self.pwd_context = build_password_context(config.BCRYPT_ROUNDS)

    async def login(self, email: str, credential: str) -> Tuple[str, UserSummary]:
        """
        Exchange an email and password for a signed token

        Raises:
            InvalidCredentials: Unknown email, inactive account or wrong password
        """
        user = await self.storage.get_user_by_email((email or "").strip())
        if user is None or not user.active:
            raise InvalidCredentials()
        if not await verify_password_async(credential or "", user.password_hash, self.pwd_context):
            logger.info("Failed login for user %s", user.id)
            raise InvalidCredentials()

        claims = TokenClaims(id=user.id, email=user.email, name=user.name, role=user.role)
        return self.issue(claims), user.summary()

    def issue(self, claims: TokenClaims) -> str:
        payload = {"sub": str(claims.id), **claims.model_dump()}
        return create_access_token(payload, self.config)

    def verify(self, token: str) -> TokenClaims:
        """
        Raises:
            InvalidToken: Bad signature, expired, or malformed payload
        """
        payload = verify_token(token, self.config)
        try:
            return TokenClaims(
                id=payload["id"],
                email=payload["email"],
                name=payload.get("name"),
                role=payload["role"],
            )
        except (KeyError, PydanticValidationError) as exc:
            raise InvalidToken("Invalid token payload") from exc

    @staticmethod
    def require_role(claims: TokenClaims, role: str) -> TokenClaims:
        if claims.role != role:
            raise Forbidden(f"{role.capitalize()} access required")
        return claims
