import logging
import uuid
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storyloom.core.config import settings
from storyloom.core.exceptions import ConflictError
from storyloom.models.user import User
from storyloom.schemas.auth import TokenData

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def normalize_email(email: str) -> str:
    return email.strip().lower()


class AuthService:
    """Service for handling authentication operations"""

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        """Verify a password against its hash"""
        return pwd_context.verify(plain_password, hashed_password)

    @staticmethod
    def get_password_hash(password: str) -> str:
        """Hash a password"""
        return pwd_context.hash(password)

    @staticmethod
    def create_access_token(user: User, expires_delta: timedelta | None = None) -> str:
        """Create a JWT access token for ``user``"""
        expire = datetime.now(timezone.utc) + (
            expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        )
        to_encode = {"sub": str(user.id), "email": user.email, "exp": expire}
        return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

    @staticmethod
    def verify_token(token: str) -> TokenData | None:
        """Verify and decode a JWT token"""
        if not token or not isinstance(token, str):
            return None
        try:
            payload = jwt.decode(
                token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM]
            )
        except JWTError:
            return None

        user_id = payload.get("sub")
        if user_id is None:
            return None
        try:
            uuid.UUID(str(user_id))
        except ValueError:
            return None
        return TokenData(user_id=str(user_id), email=payload.get("email"))

    @staticmethod
    def get_user_by_email(db: Session, email: str, *, active_only: bool = True) -> User | None:
        query = db.query(User).filter(User.email == normalize_email(email))
        if active_only:
            query = query.filter(User.is_active.is_(True))
        return query.first()

    @staticmethod
    def authenticate_user(db: Session, email: str, password: str) -> User | None:
        """Authenticate an active user by email and password"""
        user = AuthService.get_user_by_email(db, email)
        if not user:
            return None
        if not AuthService.verify_password(password, user.hashed_password):
            return None
        return user

    @staticmethod
    def create_user(
        db: Session,
        email: str,
        password: str,
        first_name: str | None = None,
        last_name: str | None = None,
    ) -> User:
        """Create a new user; a second registration of the same email is a conflict"""
        email = normalize_email(email)
        if AuthService.get_user_by_email(db, email, active_only=False):
            raise ConflictError("User with this email already exists")

        user = User(
            email=email,
            hashed_password=AuthService.get_password_hash(password),
            first_name=first_name,
            last_name=last_name,
            is_active=True,
        )
        db.add(user)
        try:
            db.commit()
        except IntegrityError as exc:
            # Unique index caught a concurrent registration of the same email.
            db.rollback()
            raise ConflictError("User with this email already exists") from exc
        db.refresh(user)
        logger.info("Registered user %s", user.id)
        return user

    @staticmethod
    def change_password(db: Session, user: User, new_password: str) -> None:
        user.hashed_password = AuthService.get_password_hash(new_password)
        db.commit()
        logger.info("Password changed for user %s", user.id)
