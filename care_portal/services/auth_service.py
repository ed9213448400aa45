from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from datetime import datetime, timedelta
import logging
import uuid

from ..models.user import User, RefreshToken
from ..models.patient import PatientProfile
from ..models.doctor import DoctorProfile, DoctorStatus
from ..core.exceptions import (
    DuplicateEmail, InvalidCredentials, NotFound, Unauthenticated, ValidationError
)
from ..core.permissions import ensure_can_view_account
from ..core.security import (
    verify_password, get_password_hash, dummy_verify_password, hash_token,
    create_token_pair, verify_token, UserRole
)
from ..schemas.account import AccountResponse, PatientProfileIn
from ..schemas.auth import (
    PatientRegister, DoctorRegister, UserLogin, TokenResponse, ChangePassword
)
from .account_service import AccountService

logger = logging.getLogger(__name__)


def _is_duplicate_email(error: IntegrityError) -> bool:
    """True when the violated constraint is the unique index on users.email."""
    message = str(error.orig).lower()
    return "email" in message and ("unique" in message or "duplicate" in message)


class AuthService:
    def __init__(self, db: Session):
        self.db = db

    def register_patient(self, user_data: PatientRegister) -> User:
        """Register a patient. The role is always PATIENT."""
        user = self._new_user(user_data, UserRole.PATIENT)
        profile = user_data.patient_profile or PatientProfileIn()
        user.patient_profile = PatientProfile(**profile.model_dump())
        return self._insert_user(user)

    def register_doctor(self, user_data: DoctorRegister) -> User:
        """Register a doctor awaiting admin approval."""
        user = self._new_user(user_data, UserRole.DOCTOR)
        user.doctor_profile = DoctorProfile(
            **user_data.doctor_profile.model_dump(),
            status=DoctorStatus.PENDING,
        )
        return self._insert_user(user)

    def create_admin(self, email: str, password: str, first_name: str, last_name: str) -> User:
        """Create an admin account; used by the bootstrap script only."""
        user = User(
            email=email.strip().lower(),
            password_hash=get_password_hash(password),
            role=UserRole.ADMIN,
            first_name=first_name,
            last_name=last_name,
        )
        return self._insert_user(user)

    def authenticate_user(self, login_data: UserLogin) -> TokenResponse:
        """Authenticate user and return tokens."""
        user = self.db.query(User).filter(
            User.email == login_data.email
        ).first()

        if not user:
            dummy_verify_password()
            logger.warning("Rejected login for unknown account")
            raise InvalidCredentials()

        if not verify_password(login_data.password, user.password_hash):
            logger.warning(f"Rejected login for account id={user.id}")
            raise InvalidCredentials()

        token_response = self._issue_tokens(user)
        self.db.commit()

        logger.info(f"Account id={user.id} ({user.role.value}) logged in")
        return token_response

    def fetch_account(self, actor: User, user_id: int) -> User:
        """Look up an account by id, subject to the viewing rules."""
        user = self.get_user(user_id)
        ensure_can_view_account(actor, user, AccountService(self.db).shares_appointment(actor, user))
        return user

    def get_user(self, user_id: int) -> User:
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFound("User not found")
        return user

    def refresh_access_token(self, refresh_token: str) -> TokenResponse:
        """Rotate a refresh token into a new token pair."""
        token_payload = verify_token(refresh_token)
        if not token_payload or token_payload.token_type != "refresh":
            raise Unauthenticated("Invalid refresh token")

        stored_token = self.db.query(RefreshToken).filter(
            RefreshToken.token_hash == hash_token(refresh_token),
            RefreshToken.is_revoked == False,  # noqa: E712
            RefreshToken.expires_at > datetime.utcnow()
        ).first()

        if not stored_token:
            raise Unauthenticated("Invalid or expired refresh token")

        user = self.db.query(User).filter(
            User.id == token_payload.sub
        ).first()

        if not user:
            raise Unauthenticated("User not found")

        stored_token.is_revoked = True
        token_response = self._issue_tokens(user)
        self.db.commit()

        return token_response

    def logout_user(self, refresh_token: str) -> bool:
        """Revoke a refresh token. Returns False if it was unknown."""
        stored_token = self.db.query(RefreshToken).filter(
            RefreshToken.token_hash == hash_token(refresh_token)
        ).first()

        if not stored_token:
            return False

        stored_token.is_revoked = True
        self.db.commit()
        return True

    def change_password(self, user: User, password_data: ChangePassword) -> None:
        if not verify_password(password_data.current_password, user.password_hash):
            raise ValidationError("Current password is incorrect")

        user.password_hash = get_password_hash(password_data.new_password)
        self._revoke_refresh_tokens(user.id)
        self.db.commit()
        logger.info(f"Password changed for account id={user.id}")

    def _new_user(self, user_data, role: UserRole) -> User:
        return User(
            email=user_data.email,
            password_hash=get_password_hash(user_data.password),
            role=role,
            first_name=user_data.first_name,
            last_name=user_data.last_name,
            phone=user_data.phone,
            city=user_data.city,
            province=user_data.province,
        )

    def _insert_user(self, user: User) -> User:
        # The unique index on email decides; no read-then-write pre-check
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            if not _is_duplicate_email(e):
                raise
            logger.info("Registration rejected: email already registered")
            raise DuplicateEmail()

        self.db.refresh(user)
        logger.info(f"Registered {user.role.value} account id={user.id}")
        return user

    def _issue_tokens(self, user: User) -> TokenResponse:
        tokens = create_token_pair(user.id, user.email, user.role, uuid.uuid4().hex)
        self._store_refresh_token(user.id, tokens.refresh_token)

        return TokenResponse(
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            token_type=tokens.token_type,
            expires_in=tokens.expires_in,
            user=AccountResponse.model_validate(user)
        )

    def _revoke_refresh_tokens(self, user_id: int):
        self.db.query(RefreshToken).filter(
            RefreshToken.user_id == user_id,
            RefreshToken.is_revoked == False  # noqa: E712
        ).update({"is_revoked": True})

    def _store_refresh_token(self, user_id: int, refresh_token: str):
        """Store refresh token in database."""
        token_payload = verify_token(refresh_token)
        expires_at = datetime.utcfromtimestamp(token_payload.exp) if token_payload and token_payload.exp else datetime.utcnow() + timedelta(days=7)

        # One live refresh token per account
        self._revoke_refresh_tokens(user_id)

        self.db.add(RefreshToken(
            user_id=user_id,
            token_hash=hash_token(refresh_token),
            expires_at=expires_at
        ))
