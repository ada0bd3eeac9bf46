import hashlib
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from jose import JWTError, jwt

from timegate.core.config import Settings, settings


def hash_sha256(text: str) -> str:
    """Hash text using SHA-256."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class AuthConfig:
    """Signing key, token lifetime and hash cost, passed explicitly to the hasher and token service."""
    secret_key: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24
    bcrypt_rounds: int = 12

    @classmethod
    def from_settings(cls, s: Settings) -> "AuthConfig":
        return cls(
            secret_key=s.SECRET_KEY,
            algorithm=s.ALGORITHM,
            access_token_expire_minutes=s.ACCESS_TOKEN_EXPIRE_MINUTES,
            bcrypt_rounds=s.BCRYPT_ROUNDS,
        )


class PasswordHasher:
    """Salted bcrypt hashing. A failed verification is a normal False, never an exception."""

    def __init__(self, rounds: int = 12):
        self.rounds = rounds

    @staticmethod
    def _encode(password: str) -> bytes:
        # bcrypt reads at most 72 bytes; the 64-char hex digest always fits
        return hash_sha256(password).encode("utf-8")

    def hash(self, password: str) -> str:
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(self._encode(password), salt).decode("utf-8")

    def verify(self, password: str, hashed_password: Optional[str]) -> bool:
        if not password or not hashed_password:
            return False
        try:
            return bcrypt.checkpw(self._encode(password), hashed_password.encode("utf-8"))
        except ValueError:
            # Stored value is not a bcrypt hash
            return False


class TokenError(Exception):
    pass


class TokenExpiredError(TokenError):
    pass


class TokenInvalidError(TokenError):
    pass


@dataclass(frozen=True)
class TokenClaims:
    user_id: int
    role: str
    email: Optional[str]
    issued_at: datetime
    expires_at: datetime


@dataclass(frozen=True)
class IssuedToken:
    access_token: str
    expires_in: int
    expires_at: datetime


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class TokenService:
    """Issues and validates signed, stateless access tokens."""

    TOKEN_TYPE = "access"

    def __init__(self, secret_key: str, algorithm: str = "HS256", expire_minutes: int = 60 * 24):
        if not secret_key:
            raise ValueError("secret_key must not be empty")
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.expire_minutes = expire_minutes

    def issue(
        self,
        user_id: int,
        role: str,
        email: Optional[str] = None,
        now: Optional[datetime] = None,
        expires_delta: Optional[timedelta] = None,
    ) -> IssuedToken:
        issued_at = _as_utc(now) if now is not None else _utcnow()
        lifetime = expires_delta or timedelta(minutes=self.expire_minutes)
        expire = issued_at + lifetime
        to_encode = {
            "sub": str(user_id),
            "role": role,
            "email": email,
            "iat": int(issued_at.timestamp()),
            "exp": int(expire.timestamp()),
            "jti": secrets.token_urlsafe(32),
            "type": self.TOKEN_TYPE,
        }
        token = jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)
        return IssuedToken(
            access_token=token,
            expires_in=int(lifetime.total_seconds()),
            expires_at=expire,
        )

    def validate(self, token: str, now: Optional[datetime] = None) -> TokenClaims:
        """
        Verify signature and expiry of `token` and return its claims.

        Raises TokenExpiredError when the signature is good but `now` is past
        `exp`, and TokenInvalidError for anything structurally wrong or forged.
        Expiry is checked against `now` here rather than inside jose so callers
        can evaluate tokens at a pinned time.
        """
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"verify_exp": False},
            )
        except JWTError as e:
            raise TokenInvalidError(str(e)) from e

        if payload.get("type") != self.TOKEN_TYPE:
            raise TokenInvalidError("wrong token type")

        exp = payload.get("exp")
        iat = payload.get("iat")
        if not isinstance(exp, int) or not isinstance(iat, int):
            raise TokenInvalidError("missing exp/iat")

        current = _as_utc(now) if now is not None else _utcnow()
        if current.timestamp() > exp:
            raise TokenExpiredError("token expired")

        try:
            user_id = int(payload.get("sub"))
        except (TypeError, ValueError) as e:
            raise TokenInvalidError("invalid subject") from e

        role = payload.get("role")
        if not isinstance(role, str):
            raise TokenInvalidError("missing role")

        return TokenClaims(
            user_id=user_id,
            role=role,
            email=payload.get("email"),
            issued_at=datetime.fromtimestamp(iat, tz=timezone.utc),
            expires_at=datetime.fromtimestamp(exp, tz=timezone.utc),
        )


_auth_config = AuthConfig.from_settings(settings)
_password_hasher = PasswordHasher(rounds=_auth_config.bcrypt_rounds)
_token_service = TokenService(
    _auth_config.secret_key,
    algorithm=_auth_config.algorithm,
    expire_minutes=_auth_config.access_token_expire_minutes,
)


def get_password_hasher() -> PasswordHasher:
    return _password_hasher


def get_token_service() -> TokenService:
    return _token_service
