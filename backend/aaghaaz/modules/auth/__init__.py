# Authentication module

from aaghaaz.modules.auth.accounts import (
    Account,
    AccountKind,
    AccountRepository,
    LoginOutcome,
    start_session,
    complete_two_factor_login,
)

from aaghaaz.modules.auth.dependencies import (
    get_current_principal,
    get_current_account,
    require_roles,
    admin_only,
    maintenance_office_only,
    admin_or_maintenance,
    staff_only,
    student_only,
)

__all__ = [
    # Accounts
    "Account",
    "AccountKind",
    "AccountRepository",
    "LoginOutcome",
    "start_session",
    "complete_two_factor_login",
    # Access gate
    "get_current_principal",
    "get_current_account",
    "require_roles",
    "admin_only",
    "maintenance_office_only",
    "admin_or_maintenance",
    "staff_only",
    "student_only",
]
