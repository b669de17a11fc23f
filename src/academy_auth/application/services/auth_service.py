"""Authentication orchestration over the embedded session list and reset ledger."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from enum import StrEnum
from uuid import UUID, uuid4

from academy_auth.application.ports.notification_sender_port import (
    NotificationRecipient,
    NotificationSenderPort,
)
from academy_auth.application.ports.password_hasher_port import PasswordHasherPort
from academy_auth.application.ports.token_codec_port import InvalidTokenError, TokenCodecPort
from academy_auth.application.ports.user_repository_port import (
    ConcurrentUpdateError,
    DuplicateEmailError,
    UserCreateInput,
    UserRecord,
    UserRepositoryPort,
)
from academy_auth.application.services.auth_messages import DEFAULT_AUTH_MESSAGES, AuthMessages
from academy_auth.application.services.notification_dispatcher import (
    NotificationDispatcher,
    NotificationHooks,
)
from academy_auth.domain.auth.account_status import AccountStatus
from academy_auth.domain.auth.credentials import (
    normalize_user_email,
    require_minimum_password_length,
    require_strong_password,
)
from academy_auth.domain.auth.reset_ledger import (
    ResetTokenLedger,
    generate_reset_token,
    hash_reset_token,
)
from academy_auth.domain.auth.roles import DEFAULT_ROLE
from academy_auth.domain.auth.session_tokens import SessionTokens

logger = logging.getLogger(__name__)

_MAX_SAVE_ATTEMPTS = 3


class InvalidCredentialsError(PermissionError):
    """Raised for unknown email or wrong password; deliberately indistinguishable."""


class AccountNotActiveError(PermissionError):
    """Raised when a non-active account attempts to log in."""

    def __init__(self, message: str, *, status: AccountStatus) -> None:
        super().__init__(message)
        self.status = status


class InvalidRefreshTokenError(PermissionError):
    """Raised for any refresh failure: missing, forged, expired, revoked or inactive."""


class NotAuthorizedError(PermissionError):
    """Raised when an access token cannot be resolved to an active user."""


class UserNotFoundError(LookupError):
    """Raised when an authenticated caller's user row no longer exists."""

    def __init__(self, message: str, *, user_id: UUID) -> None:
        super().__init__(message)
        self.user_id = user_id


class WrongCurrentPasswordError(PermissionError):
    """Raised when change-password receives an incorrect current password."""


class InvalidResetTokenError(ValueError):
    """Raised when a reset token is unknown, already used or expired."""


class ResetDeliveryError(RuntimeError):
    """Raised when the reset email failed and the stored reset token was rolled back."""


class _ResetStillPendingError(Exception):
    """Raised inside a reset-token write when a concurrent request already stored one."""

    def __init__(self, ledger: ResetTokenLedger) -> None:
        super().__init__("reset token still pending")
        self.ledger = ledger


@dataclass(frozen=True)
class TokenPair:
    """Freshly issued access/refresh token pair."""

    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class AuthSession:
    """Authenticated user state returned by register/login/refresh."""

    user: UserRecord
    tokens: TokenPair


@dataclass(frozen=True)
class RegisterInput:
    """Registration payload."""

    email: str
    password: str
    first_name: str
    last_name: str
    phone_number: str | None = None


@dataclass(frozen=True)
class ProfileUpdateInput:
    """Profile fields a caller may change; `None` leaves a field untouched."""

    first_name: str | None = None
    last_name: str | None = None
    phone_number: str | None = None


class ForgotPasswordOutcome(StrEnum):
    """Supported forgot-password outcomes."""

    UNKNOWN_EMAIL = "unknown_email"
    SENT = "sent"
    COOLDOWN = "cooldown"


@dataclass(frozen=True)
class ForgotPasswordResult:
    """Forgot-password result model."""

    outcome: ForgotPasswordOutcome
    message: str
    minutes_left: int | None = None
    expires_at: datetime | None = None

    @property
    def cooldown(self) -> bool:
        return self.outcome is ForgotPasswordOutcome.COOLDOWN


class AuthService:
    """Coordinate token issuance, rotation, revocation and password resets.

    Every state-changing operation loads the user row, derives the new state in
    memory and persists it with one version-guarded write.
    """

    def __init__(
        self,
        *,
        users: UserRepositoryPort,
        password_hasher: PasswordHasherPort,
        token_codec: TokenCodecPort,
        notifier: NotificationSenderPort,
        client_url: str,
        dispatcher: NotificationDispatcher | None = None,
        hooks: NotificationHooks | None = None,
        messages: AuthMessages = DEFAULT_AUTH_MESSAGES,
        now: Callable[[], datetime] | None = None,
        reset_token_factory: Callable[[], str] = generate_reset_token,
    ) -> None:
        self._users = users
        self._password_hasher = password_hasher
        self._token_codec = token_codec
        self._notifier = notifier
        self._client_url = client_url.rstrip("/")
        self._dispatcher = dispatcher or NotificationDispatcher()
        self._hooks = hooks or NotificationHooks()
        self._messages = messages
        self._now = now or (lambda: datetime.now(tz=UTC))
        self._reset_token_factory = reset_token_factory

    @property
    def messages(self) -> AuthMessages:
        return self._messages

    @property
    def dispatcher(self) -> NotificationDispatcher:
        return self._dispatcher

    @property
    def token_codec(self) -> TokenCodecPort:
        return self._token_codec

    async def register(self, payload: RegisterInput) -> AuthSession:
        """Create an active account seeded with one session."""

        email = normalize_user_email(email=payload.email)
        require_strong_password(password=payload.password)
        if await self._users.get_by_email(email=email) is not None:
            raise DuplicateEmailError(email=email)

        user_id = uuid4()
        tokens = self._issue_pair(user_id)
        user = await self._users.create_user(
            UserCreateInput(
                user_id=user_id,
                email=email,
                password_hash=self._password_hasher.hash_password(payload.password),
                first_name=payload.first_name.strip(),
                last_name=payload.last_name.strip(),
                phone_number=payload.phone_number,
                role=DEFAULT_ROLE,
                status=AccountStatus.ACTIVE,
                sessions=SessionTokens().add(tokens.refresh_token),
            )
        )
        logger.info("auth_register_success user_id=%s", user.user_id)
        self._notify(user, kind="welcome", send=self._notifier.send_welcome)
        return AuthSession(user=user, tokens=tokens)

    async def login(self, *, email: str, password: str) -> AuthSession:
        """Verify credentials and append a new session, evicting the oldest beyond capacity."""

        user = await self._users.get_by_email(email=normalize_user_email(email=email))
        if user is None:
            logger.info("auth_login_failed reason=unknown_email")
            raise InvalidCredentialsError(self._messages.invalid_credentials)

        if not user.is_active:
            logger.info(
                "auth_login_blocked user_id=%s status=%s", user.user_id, user.status.value
            )
            raise AccountNotActiveError(
                self._messages.account_not_active(user.status.value),
                status=user.status,
            )

        if not self._password_hasher.verify_password(
            password=password,
            password_hash=user.password_hash,
        ):
            logger.info("auth_login_failed reason=wrong_password user_id=%s", user.user_id)
            raise InvalidCredentialsError(self._messages.invalid_credentials)

        tokens = self._issue_pair(user.user_id)
        logged_in_at = self._now()

        def _append_session(current: UserRecord) -> UserRecord:
            if not current.is_active:
                raise AccountNotActiveError(
                    self._messages.account_not_active(current.status.value),
                    status=current.status,
                )
            return replace(
                current,
                sessions=current.sessions.add(tokens.refresh_token),
                last_login=logged_in_at,
            )

        saved = await self._update_user(user, _append_session)
        logger.info(
            "auth_login_success user_id=%s sessions=%s", saved.user_id, len(saved.sessions)
        )
        return AuthSession(user=saved, tokens=tokens)

    async def refresh(self, *, refresh_token: str | None) -> AuthSession:
        """Rotate one live refresh token into a new access/refresh pair."""

        if not refresh_token:
            raise InvalidRefreshTokenError(self._messages.refresh_token_missing)

        generic = self._messages.invalid_refresh_token
        try:
            user_id = UUID(self._token_codec.verify_refresh(refresh_token))
        except (InvalidTokenError, ValueError) as exc:
            logger.info("auth_refresh_rejected reason=invalid_token")
            raise InvalidRefreshTokenError(generic) from exc

        user = await self._users.get_by_id(user_id=user_id)
        if user is None:
            logger.info("auth_refresh_rejected reason=unknown_user user_id=%s", user_id)
            raise InvalidRefreshTokenError(generic)

        tokens = self._issue_pair(user_id)

        def _rotate(current: UserRecord) -> UserRecord:
            if not current.sessions.contains(refresh_token):
                logger.info("auth_refresh_rejected reason=revoked user_id=%s", user_id)
                raise InvalidRefreshTokenError(generic)
            if not current.is_active:
                logger.info("auth_refresh_rejected reason=inactive user_id=%s", user_id)
                raise InvalidRefreshTokenError(generic)
            return replace(
                current,
                sessions=current.sessions.rotate(
                    used=refresh_token,
                    replacement=tokens.refresh_token,
                ),
            )

        try:
            saved = await self._update_user(user, _rotate)
        except (ConcurrentUpdateError, UserNotFoundError) as exc:
            logger.warning("auth_refresh_rejected reason=%s user_id=%s", type(exc).__name__, user_id)
            raise InvalidRefreshTokenError(generic) from exc

        logger.info("auth_refresh_success user_id=%s", user_id)
        return AuthSession(user=saved, tokens=tokens)

    async def authenticate_access_token(self, access_token: str | None) -> UserRecord:
        """Resolve a presented access token to its active user."""

        if not access_token:
            raise NotAuthorizedError(self._messages.not_authorized)
        try:
            user_id = UUID(self._token_codec.verify_access(access_token))
        except (InvalidTokenError, ValueError) as exc:
            raise NotAuthorizedError(self._messages.not_authorized) from exc

        user = await self._users.get_by_id(user_id=user_id)
        if user is None:
            raise NotAuthorizedError(self._messages.user_gone)
        if not user.is_active:
            raise NotAuthorizedError(self._messages.guard_account_not_active)
        return user

    async def logout(self, *, user_id: UUID, refresh_token: str | None) -> None:
        """Revoke one session; unknown or missing tokens are a no-op."""

        if not refresh_token:
            return
        user = await self._users.get_by_id(user_id=user_id)
        if user is None or not user.sessions.contains(refresh_token):
            return

        await self._update_user(
            user,
            lambda current: replace(current, sessions=current.sessions.remove(refresh_token)),
        )
        logger.info("auth_logout user_id=%s", user_id)

    async def logout_all(self, *, user_id: UUID) -> None:
        """Revoke every session of one user."""

        user = await self._users.get_by_id(user_id=user_id)
        if user is None:
            return
        await self._update_user(
            user,
            lambda current: replace(current, sessions=current.sessions.clear()),
        )
        logger.info("auth_logout_all user_id=%s", user_id)

    async def change_password(
        self,
        *,
        user_id: UUID,
        current_password: str,
        new_password: str,
    ) -> None:
        """Replace the password and revoke every session."""

        user = await self._require_user(user_id)
        if not self._password_hasher.verify_password(
            password=current_password,
            password_hash=user.password_hash,
        ):
            logger.info("auth_change_password_rejected user_id=%s", user_id)
            raise WrongCurrentPasswordError(self._messages.wrong_current_password)
        require_minimum_password_length(password=new_password)

        new_hash = self._password_hasher.hash_password(new_password)
        saved = await self._update_user(
            user,
            lambda current: replace(
                current,
                password_hash=new_hash,
                sessions=current.sessions.clear(),
            ),
        )
        logger.info("auth_change_password_success user_id=%s", user_id)
        if self._hooks.password_changed:
            self._notify(saved, kind="password_changed", send=self._notifier.send_password_changed)

    async def forgot_password(self, *, email: str) -> ForgotPasswordResult:
        """Issue and deliver a reset token unless one is still pending."""

        user = await self._users.get_by_email(email=normalize_user_email(email=email))
        if user is None:
            logger.info("auth_forgot_password outcome=unknown_email")
            return ForgotPasswordResult(
                outcome=ForgotPasswordOutcome.UNKNOWN_EMAIL,
                message=self._messages.forgot_password_generic,
            )

        now = self._now()
        if user.reset_ledger.is_live(now=now):
            return self._cooldown_result(user.user_id, user.reset_ledger, now=now)

        issued = ResetTokenLedger.issue(now=now, token_factory=self._reset_token_factory)

        def _issue(current: UserRecord) -> UserRecord:
            if current.reset_ledger.is_live(now=now):
                raise _ResetStillPendingError(current.reset_ledger)
            return replace(current, reset_ledger=issued.ledger)

        try:
            saved = await self._update_user(user, _issue)
        except _ResetStillPendingError as pending:
            return self._cooldown_result(user.user_id, pending.ledger, now=now)

        try:
            await self._notifier.send_password_reset(
                _recipient(saved),
                reset_url=f"{self._client_url}/reset-password/{issued.raw_token}",
            )
        except Exception as exc:
            logger.exception("auth_forgot_password_delivery_failed user_id=%s", saved.user_id)

            def _rollback(current: UserRecord) -> UserRecord:
                # Only the token this request stored may be withdrawn.
                if current.reset_ledger.token_hash != issued.ledger.token_hash:
                    return current
                return replace(current, reset_ledger=current.reset_ledger.clear())

            await self._update_user(saved, _rollback)
            raise ResetDeliveryError(self._messages.reset_delivery_failed) from exc

        logger.info("auth_forgot_password outcome=sent user_id=%s", saved.user_id)
        return ForgotPasswordResult(
            outcome=ForgotPasswordOutcome.SENT,
            message=self._messages.forgot_password_sent,
            expires_at=issued.ledger.expires_at,
        )

    async def reset_password(self, *, reset_token: str, new_password: str) -> None:
        """Consume a live reset token, set the new password and revoke every session."""

        require_minimum_password_length(password=new_password)
        user = await self._users.get_by_reset_token_hash(token_hash=hash_reset_token(reset_token))
        now = self._now()
        if user is None or not user.reset_ledger.accepts(reset_token, now=now):
            logger.info("auth_reset_password_rejected")
            raise InvalidResetTokenError(self._messages.invalid_reset_token)

        new_hash = self._password_hasher.hash_password(new_password)

        def _consume(current: UserRecord) -> UserRecord:
            if not current.reset_ledger.accepts(reset_token, now=now):
                raise InvalidResetTokenError(self._messages.invalid_reset_token)
            return replace(
                current,
                password_hash=new_hash,
                reset_ledger=current.reset_ledger.clear(),
                sessions=current.sessions.clear(),
            )

        saved = await self._update_user(user, _consume)
        logger.info("auth_reset_password_success user_id=%s", saved.user_id)
        if self._hooks.password_reset:
            self._notify(
                saved,
                kind="password_reset_success",
                send=self._notifier.send_password_reset_success,
            )

    async def update_profile(self, *, user_id: UUID, changes: ProfileUpdateInput) -> UserRecord:
        """Apply non-credential profile changes."""

        user = await self._require_user(user_id)

        def _apply(current: UserRecord) -> UserRecord:
            return replace(
                current,
                first_name=changes.first_name.strip() if changes.first_name else current.first_name,
                last_name=changes.last_name.strip() if changes.last_name else current.last_name,
                phone_number=(
                    current.phone_number
                    if changes.phone_number is None
                    else changes.phone_number.strip() or None
                ),
            )

        saved = await self._update_user(user, _apply)
        logger.info("auth_profile_updated user_id=%s", user_id)
        if self._hooks.profile_updated:
            self._notify(saved, kind="profile_updated", send=self._notifier.send_profile_updated)
        return saved

    def _cooldown_result(
        self,
        user_id: UUID,
        ledger: ResetTokenLedger,
        *,
        now: datetime,
    ) -> ForgotPasswordResult:
        minutes_left = ledger.minutes_left(now=now)
        logger.info(
            "auth_forgot_password outcome=cooldown user_id=%s minutes_left=%s",
            user_id,
            minutes_left,
        )
        return ForgotPasswordResult(
            outcome=ForgotPasswordOutcome.COOLDOWN,
            message=self._messages.forgot_password_cooldown(minutes_left),
            minutes_left=minutes_left,
            expires_at=ledger.expires_at,
        )

    async def _require_user(self, user_id: UUID) -> UserRecord:
        user = await self._users.get_by_id(user_id=user_id)
        if user is None:
            raise UserNotFoundError(self._messages.user_not_found, user_id=user_id)
        return user

    async def _update_user(
        self,
        user: UserRecord,
        mutate: Callable[[UserRecord], UserRecord],
    ) -> UserRecord:
        """Apply `mutate` and save, reloading and reapplying after a lost race."""

        attempt = 1
        while True:
            try:
                return await self._users.save_user(mutate(user))
            except ConcurrentUpdateError:
                if attempt >= _MAX_SAVE_ATTEMPTS:
                    logger.warning(
                        "auth_user_save_conflict user_id=%s attempts=%s", user.user_id, attempt
                    )
                    raise
                attempt += 1
                user = await self._require_user(user.user_id)

    def _issue_pair(self, user_id: UUID) -> TokenPair:
        subject = str(user_id)
        return TokenPair(
            access_token=self._token_codec.issue_access(subject),
            refresh_token=self._token_codec.issue_refresh(subject),
        )

    def _notify(
        self,
        user: UserRecord,
        *,
        kind: str,
        send: Callable[[NotificationRecipient], Awaitable[None]],
    ) -> None:
        recipient = _recipient(user)
        self._dispatcher.dispatch(lambda: send(recipient), kind=kind, user_id=str(user.user_id))


def _recipient(user: UserRecord) -> NotificationRecipient:
    return NotificationRecipient(email=user.email, first_name=user.first_name)
