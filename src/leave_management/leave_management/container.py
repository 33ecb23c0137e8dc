from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from .auth.identity import GoogleIdentityVerifier, IdentityVerifier
from .auth.service import AuthService
from .auth.tokens import TokenService
from .common.datetime_utils import now_local
from .core.constants import DEFAULT_EMAIL_DOMAIN, DEFAULT_TOKEN_DAYS
from .database.connection import DBConfig, DatabaseConnection
from .leaves.mysql_leave_repository import MySQLLeaveRepository
from .leaves.repository import LeaveRepository
from .leaves.service import LeaveService
from .reports.service import ReportService
from .users.mysql_user_repository import MySQLUserRepository
from .users.repository import UserRepository
from .users.service import UserService


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    users_repo: UserRepository
    leaves_repo: LeaveRepository

    token_service: TokenService
    identity_verifier: IdentityVerifier

    user_service: UserService
    auth_service: AuthService
    leave_service: LeaveService
    report_service: ReportService


def assemble_container(
    *,
    users_repo: UserRepository,
    leaves_repo: LeaveRepository,
    token_service: TokenService,
    identity_verifier: IdentityVerifier,
    email_domain: str = DEFAULT_EMAIL_DOMAIN,
    clock: Callable[[], datetime] = now_local,
    conn: Optional[DatabaseConnection] = None,
) -> Container:
    user_service = UserService(users_repo, email_domain=email_domain, clock=clock)
    auth_service = AuthService(user_service, token_service, identity_verifier)
    leave_service = LeaveService(leaves_repo, users_repo, clock=clock)
    report_service = ReportService(leaves_repo, users_repo, clock=clock)

    return Container(
        conn=conn,
        users_repo=users_repo,
        leaves_repo=leaves_repo,
        token_service=token_service,
        identity_verifier=identity_verifier,
        user_service=user_service,
        auth_service=auth_service,
        leave_service=leave_service,
        report_service=report_service,
    )


def build_container(*, db_config: dict, settings: object) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    token_service = TokenService(
        str(getattr(settings, "JWT_SECRET")),
        algorithm=str(getattr(settings, "JWT_ALGORITHM", TokenService.DEFAULT_ALGORITHM)),
        expire_days=int(getattr(settings, "TOKEN_EXPIRE_DAYS", DEFAULT_TOKEN_DAYS)),
    )
    verifier = GoogleIdentityVerifier(str(getattr(settings, "GOOGLE_CLIENT_ID", "")))

    return assemble_container(
        users_repo=MySQLUserRepository(conn),
        leaves_repo=MySQLLeaveRepository(conn),
        token_service=token_service,
        identity_verifier=verifier,
        email_domain=str(getattr(settings, "ALLOWED_EMAIL_DOMAIN", DEFAULT_EMAIL_DOMAIN)),
        conn=conn,
    )
