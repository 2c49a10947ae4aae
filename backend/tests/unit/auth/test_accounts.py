"""
Unit Tests for the account repository and login flow
"""
import pytest

from aaghaaz.core import two_factor
from aaghaaz.core.exceptions import (
    AccountInactiveError,
    InvalidCredentialsError,
    InvalidTokenError,
    InvalidVerificationCodeError,
)
from aaghaaz.models import StudentStatus, UserRole
from aaghaaz.modules.auth.accounts import (
    AccountKind,
    AccountRepository,
    complete_two_factor_login,
    kind_for_role,
    start_session,
)

STAFF_PASSWORD = 'staffpass123'
STUDENT_PASSWORD = 'studentpass123'


class TestLookup:
    @pytest.mark.asyncio
    async def test_email_lookup_is_case_insensitive(self, db_session, admin_user):
        repo = AccountRepository(db_session)
        found = await repo.get_by_email(AccountKind.STAFF, f"  {admin_user.email.upper()} ")

        assert found is not None
        assert found.id == admin_user.id

    @pytest.mark.asyncio
    async def test_get_by_id_rejects_malformed_id(self, db_session):
        assert await AccountRepository(db_session).get_by_id(AccountKind.STAFF, "nope") is None

    @pytest.mark.asyncio
    async def test_email_taken_across_kinds(self, db_session, enrolled_student):
        repo = AccountRepository(db_session)

        assert await repo.email_taken(enrolled_student.email) is True
        assert await repo.email_taken("nobody@example.com") is False

    def test_kind_for_role(self):
        assert kind_for_role("student") == AccountKind.STUDENT
        assert kind_for_role(UserRole.ADMIN.value) == AccountKind.STAFF


class TestClaimsResolution:
    @pytest.mark.asyncio
    async def test_resolves_staff(self, db_session, admin_user, token_service):
        claims = token_service.verify(token_service.issue_full_token(admin_user.id, "admin"))
        account = await AccountRepository(db_session).get_by_claims(claims)
        assert account.id == admin_user.id

    @pytest.mark.asyncio
    async def test_resolves_student(self, db_session, enrolled_student, token_service):
        claims = token_service.verify(token_service.issue_full_token(enrolled_student.id, "student"))
        account = await AccountRepository(db_session).get_by_claims(claims)
        assert account.roll_id == enrolled_student.roll_id

    @pytest.mark.asyncio
    async def test_role_mismatch_is_invalid(self, db_session, instructor_user, token_service):
        """A token claiming a different role than the record is not honoured"""
        claims = token_service.verify(token_service.issue_full_token(instructor_user.id, "admin"))
        with pytest.raises(InvalidTokenError):
            await AccountRepository(db_session).get_by_claims(claims)


class TestAuthenticate:
    @pytest.mark.asyncio
    async def test_staff_success(self, db_session, admin_user):
        account = await AccountRepository(db_session).authenticate(
            AccountKind.STAFF, admin_user.email, STAFF_PASSWORD
        )
        assert account.id == admin_user.id

    @pytest.mark.asyncio
    async def test_unknown_email_and_wrong_password_look_alike(self, db_session, admin_user):
        repo = AccountRepository(db_session)

        with pytest.raises(InvalidCredentialsError) as unknown:
            await repo.authenticate(AccountKind.STAFF, "ghost@example.com", STAFF_PASSWORD)
        with pytest.raises(InvalidCredentialsError) as wrong:
            await repo.authenticate(AccountKind.STAFF, admin_user.email, "wrong-password")

        assert unknown.value.message == wrong.value.message == "Invalid credentials"

    @pytest.mark.asyncio
    async def test_staff_cannot_use_student_portal(self, db_session, admin_user):
        with pytest.raises(InvalidCredentialsError):
            await AccountRepository(db_session).authenticate(
                AccountKind.STUDENT, admin_user.email, STAFF_PASSWORD
            )

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [StudentStatus.PENDING, StudentStatus.SUSPENDED, StudentStatus.ELIMINATED])
    async def test_inactive_student(self, db_session, student_factory, status):
        student = await student_factory(status=status)

        with pytest.raises(AccountInactiveError) as exc_info:
            await AccountRepository(db_session).authenticate(
                AccountKind.STUDENT, student.email, STUDENT_PASSWORD
            )
        assert exc_info.value.details["status"] == status.value

    @pytest.mark.asyncio
    async def test_inactive_student_wrong_password_hides_status(self, db_session, student_factory):
        student = await student_factory(status=StudentStatus.SUSPENDED)

        with pytest.raises(InvalidCredentialsError):
            await AccountRepository(db_session).authenticate(
                AccountKind.STUDENT, student.email, "wrong-password"
            )

    @pytest.mark.asyncio
    async def test_student_without_password(self, db_session, student_factory):
        student = await student_factory(password=None)

        with pytest.raises(InvalidCredentialsError):
            await AccountRepository(db_session).authenticate(AccountKind.STUDENT, student.email, "")


class TestSessions:
    @pytest.mark.asyncio
    async def test_full_session_without_two_factor(self, admin_user, token_service):
        outcome = start_session(admin_user, token_service)

        assert outcome.requires_2fa is False
        assert token_service.verify_full(outcome.access_token).subject == admin_user.id

    @pytest.mark.asyncio
    async def test_pending_session_with_active_two_factor(self, admin_user, token_service):
        admin_user.two_factor_secret = two_factor.generate_secret()
        admin_user.two_factor_enabled = True

        outcome = start_session(admin_user, token_service)

        assert outcome.requires_2fa is True
        assert outcome.access_token is None
        assert token_service.verify_pending(outcome.pending_token).role == "admin"

    @pytest.mark.asyncio
    async def test_setup_not_confirmed_gives_full_session(self, admin_user, token_service):
        two_factor.begin_setup(admin_user)
        assert start_session(admin_user, token_service).requires_2fa is False

    @pytest.mark.asyncio
    async def test_complete_two_factor_login(self, db_session, staff_factory, token_service):
        user = await staff_factory(role=UserRole.INSTRUCTOR, two_factor_active=True)
        pending = start_session(user, token_service).pending_token

        outcome = await complete_two_factor_login(
            AccountRepository(db_session), token_service, pending,
            two_factor.current_code(user.two_factor_secret),
        )

        assert token_service.verify_full(outcome.access_token).subject == user.id

    @pytest.mark.asyncio
    async def test_complete_two_factor_login_bad_code(self, db_session, staff_factory, token_service):
        user = await staff_factory(two_factor_active=True)
        pending = start_session(user, token_service).pending_token

        with pytest.raises(InvalidVerificationCodeError):
            await complete_two_factor_login(AccountRepository(db_session), token_service, pending, "abcdef")

    @pytest.mark.asyncio
    async def test_full_token_cannot_complete_two_factor(self, db_session, staff_factory, token_service):
        user = await staff_factory(two_factor_active=True)
        full = token_service.issue_full_token(user.id, user.role_name)

        with pytest.raises(InvalidTokenError):
            await complete_two_factor_login(
                AccountRepository(db_session), token_service, full,
                two_factor.current_code(user.two_factor_secret),
            )
