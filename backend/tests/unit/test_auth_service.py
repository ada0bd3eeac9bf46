"""
Unit tests for auth_service: login, logout, password changes and user management.
"""
from datetime import datetime, timezone

import pytest

from timegate.core import errors
from timegate.core.config import Settings
from timegate.core.errors import Conflict, Forbidden, NotFound, ValidationFailure
from timegate.models import LoginSession, RoleEnum, User
from timegate.schemas.user import UserCreate
from timegate.services import auth_service
from timegate.services.session_tracker import SessionTracker
from tests.factories import create_user

MORNING = datetime(2026, 10, 18, 9, 30, tzinfo=timezone.utc)
EVENING = datetime(2026, 10, 18, 18, 1, tzinfo=timezone.utc)


@pytest.fixture
def employee(db, hasher):
    return create_user(
        db, hasher, email="worker@example.com", password="password123",
        login_start_time="09:00:00", login_end_time="18:00:00",
    )


def do_login(db, hasher, token_service, email, password, now=MORNING):
    return auth_service.login(db, hasher, token_service, email, password, "10.1.1.1", "pytest-agent", now)


class TestLogin:
    def test_success_issues_token_and_starts_session(self, db, hasher, token_service, employee):
        result = do_login(db, hasher, token_service, "worker@example.com", "password123")

        claims = token_service.validate(result.token.access_token, now=MORNING)
        assert claims.user_id == employee.id
        assert claims.role == "employee"
        assert result.user.id == employee.id

        sessions = db.query(LoginSession).all()
        assert len(sessions) == 1
        assert sessions[0].ip_address == "10.1.1.1"
        assert sessions[0].user_agent == "pytest-agent"

    def test_email_is_normalized(self, db, hasher, token_service, employee):
        result = do_login(db, hasher, token_service, "  Worker@Example.COM ", "password123")

        assert result.user.id == employee.id

    def test_unknown_email_and_wrong_password_look_identical(self, db, hasher, token_service, employee):
        with pytest.raises(ValidationFailure) as unknown:
            do_login(db, hasher, token_service, "nobody@example.com", "password123")
        with pytest.raises(ValidationFailure) as wrong:
            do_login(db, hasher, token_service, "worker@example.com", "bad-password")

        assert unknown.value.code == wrong.value.code == errors.INVALID_CREDENTIALS
        assert unknown.value.message == wrong.value.message == "Invalid email or password"
        assert db.query(LoginSession).count() == 0

    def test_deactivated_account(self, db, hasher, token_service, employee):
        employee.is_active = False
        db.commit()

        with pytest.raises(Forbidden) as exc_info:
            do_login(db, hasher, token_service, "worker@example.com", "password123")

        assert exc_info.value.code == errors.ACCOUNT_DEACTIVATED

    def test_deactivated_account_with_wrong_password_is_generic(self, db, hasher, token_service, employee):
        employee.is_active = False
        db.commit()

        with pytest.raises(ValidationFailure):
            do_login(db, hasher, token_service, "worker@example.com", "nope")

    def test_employee_outside_window(self, db, hasher, token_service, employee):
        with pytest.raises(Forbidden) as exc_info:
            do_login(db, hasher, token_service, "worker@example.com", "password123", now=EVENING)

        assert exc_info.value.code == errors.OUTSIDE_ALLOWED_TIME
        assert exc_info.value.extra["current_time"] == "18:01:00"
        assert db.query(LoginSession).count() == 0

    def test_admin_outside_any_window(self, db, hasher, token_service):
        create_user(
            db, hasher, email="root@example.com", password="password123", role=RoleEnum.ADMIN,
            login_start_time="09:00:00", login_end_time="10:00:00",
        )

        result = do_login(db, hasher, token_service, "root@example.com", "password123", now=EVENING)

        assert result.user.role == RoleEnum.ADMIN

    def test_every_login_opens_a_session(self, db, hasher, token_service, employee):
        do_login(db, hasher, token_service, "worker@example.com", "password123")
        do_login(db, hasher, token_service, "worker@example.com", "password123")

        assert len(SessionTracker(db).get_active_sessions(employee.id)) == 2


class TestLogout:
    def test_logout_closes_session(self, db, hasher, token_service, employee):
        do_login(db, hasher, token_service, "worker@example.com", "password123")

        ended = auth_service.logout(db, employee.id, now=MORNING)

        assert ended is not None and ended.is_valid is False

    def test_logout_without_session(self, db, employee):
        assert auth_service.logout(db, employee.id) is None


class TestChangePassword:
    def test_change_password(self, db, hasher, employee):
        auth_service.change_password(db, hasher, employee.id, "password123", "newpassword456")

        db.refresh(employee)
        assert hasher.verify("newpassword456", employee.hashed_password)
        assert not hasher.verify("password123", employee.hashed_password)

    def test_wrong_current_password(self, db, hasher, employee):
        with pytest.raises(ValidationFailure) as exc_info:
            auth_service.change_password(db, hasher, employee.id, "wrong", "newpassword456")

        assert exc_info.value.code == errors.INCORRECT_PASSWORD

    def test_unknown_user(self, db, hasher):
        with pytest.raises(NotFound):
            auth_service.change_password(db, hasher, 404, "a", "b")


class TestRegisterUser:
    def test_register_employee(self, db, hasher):
        data = UserCreate(
            name="New Person", email="New@Example.com", password="secret12",
            login_start_time="9:00", login_end_time="17:30",
        )

        user = auth_service.register_user(db, hasher, data)

        assert user.email == "new@example.com"
        assert user.role == RoleEnum.EMPLOYEE
        assert user.login_start_time == "09:00:00"
        assert user.login_end_time == "17:30:00"
        assert user.is_active is True
        assert hasher.verify("secret12", user.hashed_password)

    def test_duplicate_email(self, db, hasher, employee):
        data = UserCreate(name="Dup User", email="worker@example.com", password="secret12")

        with pytest.raises(Conflict) as exc_info:
            auth_service.register_user(db, hasher, data)

        assert exc_info.value.code == errors.EMAIL_EXISTS


class TestResetPassword:
    def test_reset_ends_all_sessions(self, db, hasher, token_service, employee):
        do_login(db, hasher, token_service, "worker@example.com", "password123")
        do_login(db, hasher, token_service, "worker@example.com", "password123")

        closed = auth_service.reset_password(db, hasher, employee.id, "resetpass1")

        assert closed == 2
        assert SessionTracker(db).get_active_sessions(employee.id) == []
        db.refresh(employee)
        assert hasher.verify("resetpass1", employee.hashed_password)

    def test_unknown_user(self, db, hasher):
        with pytest.raises(NotFound) as exc_info:
            auth_service.reset_password(db, hasher, 12345, "resetpass1")

        assert exc_info.value.code == errors.USER_NOT_FOUND


class TestUserManagement:
    def test_update_only_whitelisted_fields(self, db, employee):
        user = auth_service.update_user(
            db, employee.id,
            {"name": "Renamed", "login_start_time": None, "login_end_time": None, "email": "hack@example.com"},
        )

        assert user.name == "Renamed"
        assert user.login_start_time is None and user.login_end_time is None
        assert user.email == "worker@example.com"

    def test_update_nothing(self, db, employee):
        with pytest.raises(ValidationFailure) as exc_info:
            auth_service.update_user(db, employee.id, {"email": "x@example.com"})

        assert exc_info.value.code == errors.NO_FIELDS

    def test_delete_user_cascades_sessions(self, db, hasher, employee):
        admin = create_user(db, hasher, email="root@example.com", role=RoleEnum.ADMIN)
        SessionTracker(db).start_session(employee.id, now=MORNING)
        employee_id = employee.id

        assert auth_service.delete_user(db, admin.id, employee_id) == (employee_id, "worker@example.com")
        assert db.query(User).filter(User.email == "worker@example.com").first() is None
        assert db.query(LoginSession).count() == 0

    def test_cannot_delete_self(self, db, employee):
        with pytest.raises(ValidationFailure) as exc_info:
            auth_service.delete_user(db, employee.id, employee.id)

        assert exc_info.value.code == errors.CANNOT_DELETE_SELF

    def test_delete_unknown(self, db):
        with pytest.raises(NotFound):
            auth_service.delete_user(db, 1, 999)

    def test_list_users_filters_and_pages(self, db, hasher, employee):
        create_user(db, hasher, email="root@example.com", role=RoleEnum.ADMIN)
        create_user(db, hasher, email="idle@example.com", is_active=False)

        employees, total = auth_service.list_users(db, role=RoleEnum.EMPLOYEE)
        inactive, inactive_total = auth_service.list_users(db, is_active=False)
        page, all_total = auth_service.list_users(db, page=2, limit=2)

        assert total == 2 and {u.email for u in employees} == {"worker@example.com", "idle@example.com"}
        assert inactive_total == 1 and inactive[0].email == "idle@example.com"
        assert all_total == 3 and len(page) == 1


class TestSeedAdmin:
    def test_seed_is_idempotent(self, db, hasher):
        s = Settings(ADMIN_EMAIL="Seed@Example.com", ADMIN_PASSWORD="seedpass1", ADMIN_NAME="Seed Admin")

        admin = auth_service.seed_admin(db, hasher, s)
        again = auth_service.seed_admin(db, hasher, s)

        assert admin.email == "seed@example.com"
        assert admin.role == RoleEnum.ADMIN
        assert hasher.verify("seedpass1", admin.hashed_password)
        assert again is None
        assert db.query(User).count() == 1
