"""Identity and access: registration, credential checks, bearer tokens and roles."""

import logging
import uuid
from datetime import timedelta
from typing import Any
from uuid import UUID

import bcrypt
import jwt
from pydantic import ValidationError

from ..config import settings
from ..errors import (
    DuplicateUserError,
    ForbiddenError,
    InvalidCredentialsError,
    InvalidTokenError,
    UnauthorizedError,
    UserNotFoundError,
    ValidationFailedError,
)
from ..models import LoginResponse, Principal, TokenClaims, User, UserRole
from ..storage import Database
from ..telemetry import TelemetryEvents, track_event
from ..time_utils import utc_now

logger = logging.getLogger(__name__)


# bcrypt only looks at the first 72 bytes of a password
MAX_PASSWORD_BYTES = 72


def hash_password(password: str) -> str:
    """Hash a password with bcrypt using the configured cost factor."""
    password_bytes = password.encode("utf-8")
    if len(password_bytes) > MAX_PASSWORD_BYTES:
        raise ValueError(f"password must be at most {MAX_PASSWORD_BYTES} bytes")

    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(password_bytes, salt).decode("utf-8")


def check_password(password: str, password_hash: str) -> bool:
    password_bytes = password.encode("utf-8")
    if len(password_bytes) > MAX_PASSWORD_BYTES:
        # Never stored, so it cannot match
        return False

    try:
        return bcrypt.checkpw(password_bytes, password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        logger.warning("Stored password hash could not be parsed")
        return False


class AuthService:
    """Registers users, issues and verifies HS256 tokens, and checks roles."""

    def __init__(self, db: Database):
        self.db = db

    async def register(self, email: str, password: str) -> User:
        """Create a ``user``-role account.

        Raises:
            DuplicateUserError: the email is already registered, either found
                up front or reported by the unique constraint on a race.
            ValidationFailedError: the password is longer than bcrypt accepts.
        """
        if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValidationFailedError(f"password must be at most {MAX_PASSWORD_BYTES} bytes")

        if await self.db.user_exists(email):
            raise DuplicateUserError()

        row = await self.db.create_user(
            user_id=uuid.uuid4(),
            email=email,
            password_hash=hash_password(password),
            role=UserRole.USER.value,
        )
        user = User(**row)
        logger.info(f"Registered user {user.id}")
        track_event(TelemetryEvents.USER_REGISTERED, {"registered_user_id": str(user.id)})
        return user

    async def authenticate_credentials(self, email: str, password: str) -> User:
        """Check an email/password pair.

        Unknown email and wrong password fail identically.
        """
        row = await self.db.get_user_by_email(email)
        if row is None or not check_password(password, row["password"]):
            raise InvalidCredentialsError()

        return User(**{key: value for key, value in row.items() if key != "password"})

    async def login(self, email: str, password: str) -> LoginResponse:
        user = await self.authenticate_credentials(email, password)
        token = self.issue_token(user)
        track_event(TelemetryEvents.USER_LOGGED_IN, {"user_id": str(user.id)})
        return LoginResponse(token=token, user=user)

    def issue_token(self, user: User) -> str:
        """Sign a bearer token for ``user``."""
        now = utc_now()
        payload: dict[str, Any] = {
            "user_id": str(user.id),
            "email": user.email,
            "role": UserRole(user.role).value,
            "sub": str(user.id),
            "iss": settings.jwt_issuer,
            "iat": now,
            "nbf": now,
            "exp": now + timedelta(hours=settings.jwt_expire_hours),
        }
        return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)

    def verify_token(self, token: str) -> TokenClaims:
        """Validate signature, algorithm, issuer and time claims.

        Raises:
            InvalidTokenError: on any verification failure.
        """
        try:
            payload = jwt.decode(
                token,
                settings.jwt_secret,
                algorithms=[settings.jwt_algorithm],
                issuer=settings.jwt_issuer,
                options={"require": ["exp", "iat", "nbf", "iss", "sub"]},
            )
            return TokenClaims(**payload)
        except jwt.ExpiredSignatureError as e:
            logger.debug(f"Rejected expired token: {e}")
            raise InvalidTokenError() from e
        except (jwt.InvalidTokenError, ValidationError) as e:
            logger.debug(f"Rejected token: {e}")
            raise InvalidTokenError() from e

    async def authenticate(self, token: str) -> Principal:
        """Resolve a bearer token to the current state of its user.

        The role comes from the user row, not the token.
        """
        claims = self.verify_token(token)
        row = await self.db.get_user_by_id(claims.user_id)
        if row is None:
            raise UnauthorizedError("user not found")

        return Principal(id=row["id"], email=row["email"], role=UserRole(row["role"]))

    @staticmethod
    def authorize(principal: Principal, required_role: UserRole) -> None:
        """Raise ForbiddenError unless ``principal`` satisfies ``required_role``."""
        if not principal.role.satisfies(required_role):
            track_event(
                TelemetryEvents.ACCESS_DENIED,
                {"required_role": required_role.value, "role": principal.role.value},
            )
            raise ForbiddenError(
                f"insufficient permissions: required role {required_role.value}"
            )

    async def get_profile(self, user_id: UUID) -> User:
        row = await self.db.get_user_by_id(user_id)
        if row is None:
            raise UserNotFoundError()
        return User(**row)

    async def list_users(self, limit: int = 50, offset: int = 0) -> list[User]:
        rows = await self.db.list_users(limit=limit, offset=offset)
        return [User(**row) for row in rows]
