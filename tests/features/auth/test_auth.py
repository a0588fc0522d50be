"""Comprehensive tests for the auth feature.
Covers: AuthService, JWT helpers, session store and refresh-token rotation.
"""

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import jwt
import pytest
from sqlalchemy import select

from src.config.settings import settings
from src.database.base import utcnow
from src.features.auth.exceptions import (
    AuthErrorCode,
    EmailAlreadyExists,
    EmailNotVerifiedException,
    IncorrectPassword,
    InvalidCredentialsException,
    InvalidRefreshTokenException,
    InvalidTokenException,
    ProfileNoChangesException,
    SessionRepositoryMissingException,
    TokenExpiredException,
    UserNotFoundException,
)
from src.features.auth.jwt_utils import (
    create_access_token,
    decode_access_token,
    generate_refresh_token,
    hash_token,
)
from src.features.auth.models import AuthSession
from src.features.auth.repository import SessionRepository
from src.features.auth.service import AuthService
from src.features.user.models import User, UserRole
from src.features.user.repository import UserRepository

PASSWORD = "TestPass123"


@pytest.fixture
def auth_service(session):
    return AuthService(UserRepository(session), SessionRepository(session), ip_address="10.0.0.1", user_agent="pytest")


async def _sessions_for(session, user_id) -> list[AuthSession]:
    session.expire_all()
    result = await session.execute(select(AuthSession).where(AuthSession.user_id == user_id))
    return list(result.scalars().all())


# JWT helpers


class TestAccessTokens:
    async def test_round_trip_carries_identity(self, make_user):
        user = await make_user(email="jwt@example.com", role=UserRole.COLLABORATOR)
        payload = decode_access_token(create_access_token(user))

        assert payload.user_id == user.id
        assert payload.email == "jwt@example.com"
        assert payload.role == UserRole.COLLABORATOR
        assert payload.expires_at > payload.issued_at

    async def test_default_lifetime_is_seven_days(self, make_user):
        user = await make_user()
        payload = decode_access_token(create_access_token(user))
        assert payload.expires_at - payload.issued_at == timedelta(days=7)

    async def test_expired_token_is_distinguished(self, make_user):
        user = await make_user()
        token = create_access_token(user, expires_delta=timedelta(seconds=-5))
        with pytest.raises(TokenExpiredException) as exc_info:
            decode_access_token(token)
        assert exc_info.value.code == AuthErrorCode.TOKEN_EXPIRED

    async def test_wrong_signature_is_invalid(self, make_user):
        user = await make_user()
        token = jwt.encode(
            {"sub": str(user.id), "exp": datetime.now(UTC) + timedelta(hours=1)},
            "another-secret-that-is-long-enough-for-hs256",
            algorithm="HS256",
        )
        with pytest.raises(InvalidTokenException):
            decode_access_token(token)

    def test_garbage_is_invalid(self):
        with pytest.raises(InvalidTokenException) as exc_info:
            decode_access_token("not-a-jwt")
        assert exc_info.value.code == AuthErrorCode.INVALID_TOKEN

    def test_missing_role_claim_defaults_to_owner(self):
        token = jwt.encode(
            {"sub": str(uuid4()), "email": "legacy@example.com", "exp": datetime.now(UTC) + timedelta(hours=1)},
            settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
        )
        assert decode_access_token(token).role == UserRole.OWNER

    def test_unknown_role_claim_defaults_to_owner(self):
        token = jwt.encode(
            {"sub": str(uuid4()), "role": "superuser", "exp": datetime.now(UTC) + timedelta(hours=1)},
            settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
        )
        assert decode_access_token(token).role == UserRole.OWNER

    def test_non_uuid_subject_is_invalid(self):
        token = jwt.encode(
            {"sub": "42", "exp": datetime.now(UTC) + timedelta(hours=1)},
            settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
        )
        with pytest.raises(InvalidTokenException):
            decode_access_token(token)

    def test_other_token_type_is_invalid(self):
        token = jwt.encode(
            {"sub": str(uuid4()), "type": "refresh", "exp": datetime.now(UTC) + timedelta(hours=1)},
            settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
        )
        with pytest.raises(InvalidTokenException):
            decode_access_token(token)


class TestRefreshTokenHelpers:
    def test_refresh_token_is_64_hex_chars(self):
        token = generate_refresh_token()
        assert len(token) == 64
        int(token, 16)

    def test_refresh_tokens_are_unique(self):
        assert generate_refresh_token() != generate_refresh_token()

    def test_hash_is_deterministic_sha256(self):
        assert hash_token("abc") == hash_token("abc")
        assert hash_token("abc") == "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"


# AuthService.register


class TestRegister:
    async def test_creates_user_and_session(self, session, auth_service):
        result = await auth_service.register("New@Example.com", "New User", PASSWORD)

        assert result.user.email == "new@example.com"
        assert result.user.role == UserRole.OWNER
        assert result.expires_in == 7 * 24 * 3600
        assert decode_access_token(result.access_token).user_id == result.user.id

        sessions = await _sessions_for(session, result.user.id)
        assert len(sessions) == 1
        assert sessions[0].refresh_token_hash == hash_token(result.refresh_token)
        assert sessions[0].ip_address == "10.0.0.1"
        assert sessions[0].user_agent == "pytest"

    async def test_password_is_stored_hashed(self, auth_service):
        result = await auth_service.register("hash@example.com", "Hash User", PASSWORD)
        assert result.user.password_hash != PASSWORD
        assert result.user.password_hash.startswith("$2")
        assert result.user.verify_password(PASSWORD)

    async def test_duplicate_email_is_case_insensitive(self, auth_service, make_user, metric_count):
        await make_user(email="taken@example.com")
        before = metric_count("auth.register.failure", "EMAIL_EXISTS")

        with pytest.raises(EmailAlreadyExists) as exc_info:
            await auth_service.register("TAKEN@example.com", "Other", PASSWORD)

        assert exc_info.value.code == AuthErrorCode.EMAIL_EXISTS
        assert metric_count("auth.register.failure", "EMAIL_EXISTS") == before + 1

    async def test_requires_session_repository(self, session):
        service = AuthService(UserRepository(session))
        with pytest.raises(SessionRepositoryMissingException) as exc_info:
            await service.register("norepo@example.com", "No Repo", PASSWORD)
        assert exc_info.value.code == AuthErrorCode.SESSION_REPO_MISSING
        assert await UserRepository(session).find_by_email("norepo@example.com") is None

    async def test_register_without_session_opens_no_session(self, session):
        service = AuthService(UserRepository(session))
        user = await service.register_without_session("pending@example.com", "Pending", PASSWORD)
        assert user.email_verified_at is None
        assert await _sessions_for(session, user.id) == []


# AuthService.login


class TestLogin:
    async def test_success(self, session, auth_service, make_user, metric_count):
        user = await make_user(email="login@example.com")
        before = metric_count("auth.login.success")

        result = await auth_service.login("LOGIN@example.com", PASSWORD)

        assert result.user.id == user.id
        assert result.refresh_token
        assert len(await _sessions_for(session, user.id)) == 1
        assert metric_count("auth.login.success") == before + 1

    async def test_unknown_email_and_wrong_password_fail_identically(self, auth_service, make_user):
        await make_user(email="real@example.com")

        with pytest.raises(InvalidCredentialsException) as unknown:
            await auth_service.login("ghost@example.com", PASSWORD)
        with pytest.raises(InvalidCredentialsException) as wrong:
            await auth_service.login("real@example.com", "WrongPass123")

        assert unknown.value.code == wrong.value.code == AuthErrorCode.INVALID_CREDENTIALS
        assert unknown.value.message == wrong.value.message
        assert unknown.value.status_code == wrong.value.status_code == 401

    async def test_failure_emits_metric(self, auth_service, metric_count):
        before = metric_count("auth.login.failure", "INVALID_CREDENTIALS")
        with pytest.raises(InvalidCredentialsException):
            await auth_service.login("ghost@example.com", PASSWORD)
        assert metric_count("auth.login.failure", "INVALID_CREDENTIALS") == before + 1

    async def test_unverified_email_blocked_when_required(self, auth_service, make_user, monkeypatch):
        monkeypatch.setattr(settings, "require_email_verification", True)
        await make_user(email="unverified@example.com", verified=False)

        with pytest.raises(EmailNotVerifiedException) as exc_info:
            await auth_service.login("unverified@example.com", PASSWORD)
        assert exc_info.value.status_code == 403

    async def test_unverified_email_allowed_when_not_required(self, auth_service, make_user):
        await make_user(email="relaxed@example.com", verified=False)
        result = await auth_service.login("relaxed@example.com", PASSWORD)
        assert result.user.email == "relaxed@example.com"


class TestLoginWithProvider:
    async def test_creates_verified_user_on_first_use(self, auth_service):
        result = await auth_service.login_with_provider("Google@Example.com", "Google User")

        assert result.user.email == "google@example.com"
        assert result.user.name == "Google User"
        assert result.user.is_email_verified
        assert result.user.role == UserRole.OWNER
        assert not result.user.verify_password("")

    async def test_falls_back_to_email_local_part_for_name(self, auth_service):
        result = await auth_service.login_with_provider("nameless@example.com", None)
        assert result.user.name == "nameless"

    async def test_existing_user_is_marked_verified(self, auth_service, make_user):
        user = await make_user(email="existing@example.com", verified=False)
        result = await auth_service.login_with_provider("existing@example.com", "Ignored")

        assert result.user.id == user.id
        assert result.user.name == "Test User"
        assert result.user.is_email_verified


# AuthService.refresh


class TestRefresh:
    async def test_rotates_refresh_token(self, session, auth_service, make_user):
        user = await make_user(email="rotate@example.com")
        first = await auth_service.login("rotate@example.com", PASSWORD)

        second = await auth_service.refresh(first.refresh_token)

        assert second.refresh_token != first.refresh_token
        assert second.user.id == user.id

        sessions = {s.refresh_token_hash: s for s in await _sessions_for(session, user.id)}
        assert sessions[hash_token(first.refresh_token)].revoked_at is not None
        assert sessions[hash_token(second.refresh_token)].revoked_at is None

    async def test_replayed_token_is_rejected(self, auth_service, make_user, metric_count):
        await make_user(email="replay@example.com")
        first = await auth_service.login("replay@example.com", PASSWORD)
        await auth_service.refresh(first.refresh_token)
        before = metric_count("auth.refresh.failure", "INVALID_REFRESH_TOKEN")

        with pytest.raises(InvalidRefreshTokenException) as exc_info:
            await auth_service.refresh(first.refresh_token)

        assert exc_info.value.code == AuthErrorCode.INVALID_REFRESH_TOKEN
        assert metric_count("auth.refresh.failure", "INVALID_REFRESH_TOKEN") == before + 1

    async def test_rotated_token_keeps_working(self, auth_service, make_user):
        await make_user(email="chain@example.com")
        first = await auth_service.login("chain@example.com", PASSWORD)
        second = await auth_service.refresh(first.refresh_token)
        third = await auth_service.refresh(second.refresh_token)
        assert third.refresh_token not in (first.refresh_token, second.refresh_token)

    async def test_unknown_token_is_rejected(self, auth_service):
        with pytest.raises(InvalidRefreshTokenException):
            await auth_service.refresh(generate_refresh_token())

    async def test_expired_session_is_rejected(self, session, auth_service, make_user):
        user = await make_user()
        raw = generate_refresh_token()
        await SessionRepository(session).create(user.id, hash_token(raw), utcnow() - timedelta(seconds=1))

        with pytest.raises(InvalidRefreshTokenException):
            await auth_service.refresh(raw)

    async def test_revoked_session_is_rejected(self, auth_service, make_user):
        await make_user(email="revoked@example.com")
        first = await auth_service.login("revoked@example.com", PASSWORD)
        await auth_service.logout(first.refresh_token)

        with pytest.raises(InvalidRefreshTokenException):
            await auth_service.refresh(first.refresh_token)

    async def test_session_of_deleted_user(self, session, auth_service, make_user):
        user = await make_user()
        raw = generate_refresh_token()
        await SessionRepository(session).create(user.id, hash_token(raw), utcnow() + timedelta(days=1))
        await session.delete(user)
        await session.flush()

        with pytest.raises(UserNotFoundException) as exc_info:
            await auth_service.refresh(raw)
        assert exc_info.value.status_code == 404


# AuthService.logout


class TestLogout:
    async def test_revokes_session(self, session, auth_service, make_user):
        user = await make_user(email="logout@example.com")
        result = await auth_service.login("logout@example.com", PASSWORD)

        await auth_service.logout(result.refresh_token)

        sessions = await _sessions_for(session, user.id)
        assert sessions[0].revoked_at is not None

    async def test_is_idempotent(self, auth_service, make_user):
        await make_user(email="twice@example.com")
        result = await auth_service.login("twice@example.com", PASSWORD)
        await auth_service.logout(result.refresh_token)
        await auth_service.logout(result.refresh_token)

    async def test_without_token_is_noop(self, auth_service, metric_count):
        before = metric_count("auth.logout.success")
        await auth_service.logout(None)
        assert metric_count("auth.logout.success") == before + 1


# Profile operations


class TestProfile:
    async def test_get_profile_unknown_user(self, auth_service):
        with pytest.raises(UserNotFoundException):
            await auth_service.get_profile(uuid4())

    async def test_update_name(self, auth_service, make_user):
        user = await make_user(name="Old Name")
        updated = await auth_service.update_profile(user.id, name="New Name")
        assert updated.name == "New Name"

    async def test_update_email_is_normalized(self, auth_service, make_user):
        user = await make_user()
        updated = await auth_service.update_profile(user.id, email="  Fresh@Example.com ")
        assert updated.email == "fresh@example.com"

    async def test_update_email_to_taken_address(self, auth_service, make_user):
        await make_user(email="other@example.com")
        user = await make_user()
        with pytest.raises(EmailAlreadyExists):
            await auth_service.update_profile(user.id, email="other@example.com")

    async def test_no_changes(self, auth_service, make_user):
        user = await make_user(email="same@example.com", name="Same Name")
        with pytest.raises(ProfileNoChangesException) as exc_info:
            await auth_service.update_profile(user.id, name="Same Name", email="SAME@example.com")
        assert exc_info.value.code == AuthErrorCode.PROFILE_NO_CHANGES

    async def test_no_fields(self, auth_service, make_user):
        user = await make_user()
        with pytest.raises(ProfileNoChangesException):
            await auth_service.update_profile(user.id)


class TestChangePassword:
    async def test_success(self, auth_service, make_user):
        user = await make_user()
        await auth_service.change_password(user.id, PASSWORD, "BrandNew456")
        assert user.verify_password("BrandNew456")
        assert not user.verify_password(PASSWORD)

    async def test_wrong_current_password(self, auth_service, make_user, metric_count):
        user = await make_user()
        before = metric_count("auth.password_change.failure", "INVALID_PASSWORD")

        with pytest.raises(IncorrectPassword) as exc_info:
            await auth_service.change_password(user.id, "WrongPass123", "BrandNew456")

        assert exc_info.value.code == AuthErrorCode.INVALID_PASSWORD
        assert metric_count("auth.password_change.failure", "INVALID_PASSWORD") == before + 1


class TestDeleteAccount:
    async def test_removes_user_and_sessions(self, session, auth_service, make_user):
        user = await make_user(email="bye@example.com")
        result = await auth_service.login("bye@example.com", PASSWORD)
        user_id = user.id

        await auth_service.delete_account(user_id)

        assert await _sessions_for(session, user_id) == []
        assert (await session.execute(select(User).where(User.id == user_id))).scalar_one_or_none() is None
        with pytest.raises(InvalidRefreshTokenException):
            await auth_service.refresh(result.refresh_token)

    async def test_unknown_user(self, auth_service):
        with pytest.raises(UserNotFoundException):
            await auth_service.delete_account(uuid4())


class TestExtractUserIdFromHeader:
    async def test_valid_bearer(self, make_user):
        user = await make_user()
        header = f"Bearer {create_access_token(user)}"
        assert AuthService.extract_user_id_from_header(header) == user.id

    @pytest.mark.parametrize("header", [None, "", "Basic abc", "Bearer ", "Bearer not-a-jwt"])
    def test_unusable_headers(self, header):
        assert AuthService.extract_user_id_from_header(header) is None


# Session store


class TestSessionRepository:
    async def test_find_valid_ignores_revoked(self, session, make_user):
        user = await make_user()
        repo = SessionRepository(session)
        raw = generate_refresh_token()
        await repo.create(user.id, hash_token(raw), utcnow() + timedelta(days=1))

        assert await repo.find_valid_by_token_hash(hash_token(raw)) is not None
        assert await repo.revoke_by_token_hash(hash_token(raw)) is True
        assert await repo.find_valid_by_token_hash(hash_token(raw)) is None
        assert await repo.revoke_by_token_hash(hash_token(raw)) is False

    async def test_consume_succeeds_once(self, session, make_user):
        user = await make_user()
        repo = SessionRepository(session)
        raw = generate_refresh_token()
        await repo.create(user.id, hash_token(raw), utcnow() + timedelta(days=1))

        assert await repo.consume_valid_by_token_hash(hash_token(raw)) == user.id
        assert await repo.consume_valid_by_token_hash(hash_token(raw)) is None

    async def test_revoke_all_for_user(self, session, make_user):
        user = await make_user()
        other = await make_user()
        repo = SessionRepository(session)
        for owner in (user, user, other):
            await repo.create(owner.id, hash_token(generate_refresh_token()), utcnow() + timedelta(days=1))

        assert await repo.revoke_all_for_user(user.id) == 2
        remaining = [s for s in await _sessions_for(session, other.id) if s.revoked_at is None]
        assert len(remaining) == 1

    async def test_long_user_agent_is_truncated(self, session, make_user):
        user = await make_user()
        record = await SessionRepository(session).create(
            user.id, hash_token(generate_refresh_token()), utcnow() + timedelta(days=1), user_agent="x" * 900
        )
        assert len(record.user_agent) == 500
