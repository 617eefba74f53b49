from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from typing import Optional
import bcrypt

from retrade.core.logging_config import get_logger
from retrade.core_settings import get_settings
from retrade.domain.models import User
from .errors import ActionError
from .schemas import RegisterRequest, LoginRequest, CurrentUser
from .session import SessionData, redirect_path_for

logger = get_logger(__name__)
settings = get_settings()

DUPLICATE_EMAIL = "User with this email already exists"
INVALID_CREDENTIALS = "Invalid email or password"

def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")

def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash
        return False

class LoginResult:
    def __init__(self, user: User, session: SessionData):
        self.user = user
        self.session = session
        self.redirect_path = redirect_path_for(user.user_type)

class AuthService:
    def __init__(self, db: Session):
        self.db = db

    def find_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email.lower()).first()

    def register(self, data: RegisterRequest) -> User:
        if self.find_by_email(data.email):
            raise ActionError(DUPLICATE_EMAIL)

        user = User(
            name=data.name,
            email=data.email.lower(),
            password=hash_password(data.password),
            phone=data.phone or None,
            user_type=data.user_type,
        )
        try:
            self.db.add(user)
            self.db.commit()
        except IntegrityError:
            # Lost a race with a concurrent registration for the same email
            self.db.rollback()
            raise ActionError(DUPLICATE_EMAIL)
        except SQLAlchemyError:
            self.db.rollback()
            logger.error("Registration failed", exc_info=True)
            raise ActionError("Registration failed", status_code=500)
        self.db.refresh(user)
        logger.info(f"Registered {user.user_type.value} account {user.id}")
        return user

    def login(self, data: LoginRequest) -> LoginResult:
        user = self.find_by_email(data.email)
        if not user or not verify_password(data.password, user.password):
            raise ActionError(INVALID_CREDENTIALS, status_code=401)
        logger.info(f"User {user.id} logged in")
        return LoginResult(user, SessionData.for_user(user))

    def current_user(self, session: Optional[SessionData]) -> Optional[CurrentUser]:
        if not session or not session.is_logged_in:
            return None
        user = self.db.get(User, session.user_id)
        return CurrentUser(
            user_id=session.user_id,
            name=session.name,
            email=session.email,
            phone=(user.phone if user and user.phone else ""),
            role=session.role,
        )
