from __future__ import annotations

import logging
import secrets
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from identity_service.core.config import (
    MAX_EMAIL_LENGTH,
    MIN_PASSWORD_LENGTH,
    SEND_CODE_RATE_LIMIT_WINDOW,
    VERIFICATION_CODE_LENGTH,
    VERIFICATION_CODE_TTL,
)
from identity_service.repositories.base import UniqueViolation
from identity_service.services._shared.base import BaseService, ServiceContext
from identity_service.services._shared.errors import (
    EmailAlreadyExistsError,
    InternalError,
    InvalidArgumentError,
    InvalidCredentialsError,
    InvalidVerificationCodeError,
    NotFoundError,
    TooManyRequestsError,
    VerificationCodeExpiredError,
)
from identity_service.services._shared.ports import (
    MailDeliveryError,
    Mailer,
    PasswordHasher,
    RateLimiter,
    StoreError,
    VerificationCode,
    VerificationCodeStore,
)
from identity_service.services.accounts.dto import (
    LoginIn,
    ProfileUpdateIn,
    RegisterIn,
    SendCodeIn,
    UserOut,
)
from identity_service.services.tokens.dto import TokenPairOut
from identity_service.services.tokens.service import TokenLifecycleService

log = logging.getLogger(__name__)

VERIFICATION_SUBJECT = "Your verification code"


def mask_email(email: str) -> str:
    """
    Hide most of the local part: ``"alexander@x.io"`` -> ``"ale******@x.io"``.

    Local parts of three characters or fewer are left as they are.
    """
    local, at, domain = email.partition("@")
    masked = local[:3] + "*" * max(0, len(local) - 3)
    return f"{masked}{at}{domain}"


def generate_verification_code(length: int = VERIFICATION_CODE_LENGTH) -> str:
    """Return ``length`` uniformly random ASCII digits from :mod:`secrets`."""
    return f"{secrets.randbelow(10**length):0{length}d}"


def _require(**fields: str | None) -> None:
    missing = [name for name, value in fields.items() if not value]
    if missing:
        raise InvalidArgumentError(f"Missing required field(s): {', '.join(missing)}")


def _check_email_length(email: str) -> None:
    if len(email) > MAX_EMAIL_LENGTH:
        raise InvalidArgumentError(f"Email must be at most {MAX_EMAIL_LENGTH} characters")


class AccountService(BaseService):
    """
    Credential and registration manager.

    Owns the verification-code flow, account creation, password login and
    the owner's profile. Token minting is delegated to
    :class:`TokenLifecycleService`.
    """

    def __init__(
        self,
        *,
        code_store: VerificationCodeStore,
        rate_limiter: RateLimiter,
        password_hasher: PasswordHasher,
        mailer: Mailer,
        tokens: TokenLifecycleService,
        ctx: ServiceContext | None = None,
    ) -> None:
        super().__init__(ctx=ctx)
        self.codes = code_store
        self.rate_limiter = rate_limiter
        self.hasher = password_hasher
        self.mailer = mailer
        self.tokens = tokens

    # ------------------------------------------------------------------ #
    # Verification codes
    # ------------------------------------------------------------------ #

    def send_verification_code(self, dto: SendCodeIn) -> None:
        """
        Mail a fresh registration code to ``dto.email``.

        At most one code per email is sent per rate-limit window. A code
        that was stored but could not be mailed stays valid.

        :raises InvalidArgumentError: Empty or over-long email.
        :raises EmailAlreadyExistsError: The email is already registered.
        :raises TooManyRequestsError: A code was sent within the window.
        :raises InternalError: Store or mail failure.
        """
        _require(email=dto.email)
        _check_email_length(dto.email)
        email = dto.email
        masked = mask_email(email)

        try:
            with self.ro_uow() as uow:
                taken = uow.users.exists_by_email(email)
        except SQLAlchemyError as exc:
            log.error("User lookup failed", extra={"email": masked}, exc_info=True)
            raise InternalError() from exc
        if taken:
            raise EmailAlreadyExistsError()

        try:
            claimed = self.rate_limiter.claim(f"send_code:{email}", SEND_CODE_RATE_LIMIT_WINDOW)
        except StoreError as exc:
            log.error("Rate-limit claim failed", extra={"email": masked}, exc_info=True)
            raise InternalError() from exc
        if not claimed:
            log.info("Verification code throttled", extra={"email": masked})
            raise TooManyRequestsError()

        code = generate_verification_code()
        record = VerificationCode(
            email=email,
            code=code,
            expires_at=self.now_utc() + VERIFICATION_CODE_TTL,
        )
        try:
            self.codes.save(record)
        except StoreError as exc:
            log.error("Storing verification code failed", extra={"email": masked}, exc_info=True)
            raise InternalError() from exc

        try:
            self.mailer.send(
                recipient=email,
                subject=VERIFICATION_SUBJECT,
                body=self._render_code_mail(masked, code),
            )
        except MailDeliveryError as exc:
            log.error("Verification mail failed", extra={"email": masked}, exc_info=True)
            raise InternalError() from exc
        log.info("Verification code sent", extra={"email": masked})

    @staticmethod
    def _render_code_mail(masked_email: str, code: str) -> str:
        minutes = int(VERIFICATION_CODE_TTL.total_seconds() // 60)
        return (
            f"Hello {masked_email},\n\n"
            f"Your verification code is {code}.\n"
            f"It expires in {minutes} minutes. If you did not request it, ignore this message.\n"
        )

    # ------------------------------------------------------------------ #
    # Registration
    # ------------------------------------------------------------------ #

    def register(self, dto: RegisterIn) -> UserOut:
        """
        Create an account after checking its verification code.

        Uniqueness is enforced by the database at insert time only; there is
        no existence pre-check, so concurrent registrations for one email
        yield exactly one account.

        :raises InvalidArgumentError: Missing field, over-long email or password too short.
        :raises InvalidVerificationCodeError: No stored code, or mismatch.
        :raises VerificationCodeExpiredError: Stored code is past its expiry.
        :raises EmailAlreadyExistsError: The email was registered meanwhile.
        :raises InternalError: Store failure.
        """
        _require(email=dto.email, password=dto.password, code=dto.code, nickname=dto.nickname)
        _check_email_length(dto.email)
        if len(dto.password) < MIN_PASSWORD_LENGTH:
            raise InvalidArgumentError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
            )
        masked = mask_email(dto.email)

        try:
            stored = self.codes.get(dto.email)
        except StoreError as exc:
            log.error("Reading verification code failed", extra={"email": masked}, exc_info=True)
            raise InternalError() from exc
        if stored is None or not secrets.compare_digest(stored.code.encode(), dto.code.encode()):
            raise InvalidVerificationCodeError()
        if self.now_utc() >= stored.expires_at:
            raise VerificationCodeExpiredError()

        try:
            self.codes.delete(dto.email)
        except StoreError:
            log.warning("Deleting used verification code failed", extra={"email": masked}, exc_info=True)

        password_hash = self.hasher.hash(dto.password)
        try:
            with self.rw_uow() as uow:
                user = uow.users.create(
                    email=dto.email,
                    password_hash=password_hash,
                    nickname=dto.nickname,
                )
                out = UserOut.from_model(user)
        except UniqueViolation as exc:
            log.info("Registration lost to existing account", extra={"email": masked})
            raise EmailAlreadyExistsError() from exc
        except SQLAlchemyError as exc:
            log.error("Creating user failed", extra={"email": masked}, exc_info=True)
            raise InternalError() from exc

        log.info("User registered", extra={"user_id": out.id})
        return out

    # ------------------------------------------------------------------ #
    # Login
    # ------------------------------------------------------------------ #

    def login(self, dto: LoginIn) -> TokenPairOut:
        """
        Verify credentials and open a refresh session.

        Unknown email and wrong password are indistinguishable to callers.

        :raises InvalidArgumentError: Missing field or over-long email.
        :raises InvalidCredentialsError: Unknown email or wrong password.
        :raises InternalError: Store or signing failure.
        """
        _require(email=dto.email, password=dto.password)
        _check_email_length(dto.email)
        try:
            with self.ro_uow() as uow:
                user = uow.users.get_by_email(dto.email)
                found = (user.id, user.password_hash) if user is not None else None
        except SQLAlchemyError as exc:
            log.error("User lookup failed", extra={"email": mask_email(dto.email)}, exc_info=True)
            raise InternalError() from exc

        if found is None:
            # Unknown emails pay the same hashing cost as wrong passwords
            self.hasher.hash(dto.password)
            raise InvalidCredentialsError()
        user_id, password_hash = found
        if not self.hasher.verify(dto.password, password_hash):
            log.info("Password mismatch", extra={"user_id": user_id})
            raise InvalidCredentialsError()

        return self.tokens.open_session(user_id)

    # ------------------------------------------------------------------ #
    # Profile
    # ------------------------------------------------------------------ #

    def get_profile(self, user_id: int) -> UserOut:
        """
        :raises NotFoundError: If the account does not exist.
        :raises InternalError: Store failure.
        """
        try:
            with self.ro_uow() as uow:
                user = uow.users.get(user_id)
                out = UserOut.from_model(user) if user is not None else None
        except SQLAlchemyError as exc:
            log.error("Profile lookup failed", extra={"user_id": user_id}, exc_info=True)
            raise InternalError() from exc
        if out is None:
            raise NotFoundError("User", user_id)
        return out

    def update_profile(self, user_id: int, dto: ProfileUpdateIn) -> UserOut:
        """
        Apply a partial profile update.

        :raises InvalidArgumentError: Empty nickname.
        :raises NotFoundError: If the account does not exist.
        :raises InternalError: Store failure.
        """
        changes: dict[str, Any] = {}
        if dto.nickname is not None:
            if not dto.nickname.strip():
                raise InvalidArgumentError("Nickname cannot be empty")
            changes["nickname"] = dto.nickname
        if dto.avatar_url is not None:
            changes["avatar_url"] = dto.avatar_url or None
        if not changes:
            return self.get_profile(user_id)

        try:
            with self.rw_uow() as uow:
                user = uow.users.update_profile(user_id, changes)
                out = UserOut.from_model(user) if user is not None else None
        except SQLAlchemyError as exc:
            log.error("Profile update failed", extra={"user_id": user_id}, exc_info=True)
            raise InternalError() from exc
        if out is None:
            raise NotFoundError("User", user_id)
        return out
