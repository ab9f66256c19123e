"""
repositories/user_repository.py — User / role / permission lookups.

SessionService depends on the UserLookup protocol, not on SQLAlchemy.
SqlAlchemyUserRepository is the production implementation; unit tests pass a
MagicMock instead.

Absence is returned as None (or an empty collection), never raised. Two
exceptions leave this layer on purpose:
  DuplicateUser      a UNIQUE constraint rejected a new row
  LookupUnavailable  any other database failure (connection lost, bad data, ...)
Raw SQLAlchemy exceptions never escape.

Transaction policy: the repository flushes, it never commits. The route
commits once the service call has succeeded.
"""

from __future__ import annotations

import functools
from typing import Iterable, Protocol

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from authcore.app.models.permission import Permission, PermissionStatus
from authcore.app.models.role import Role, RoleStatus
from authcore.app.models.user import User, UserStatus


class DuplicateUser(Exception):
    """A UNIQUE constraint on users rejected the insert."""


class LookupUnavailable(Exception):
    """The user store could not answer (database down, timeout, rejected write)."""


# Everything a UserLookup implementation may raise for an infrastructure
# failure. Implementations other than SqlAlchemyUserRepository may let
# SQLAlchemy errors through unwrapped.
LOOKUP_ERRORS = (LookupUnavailable, SQLAlchemyError)


def _translate_db_errors(method):
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except SQLAlchemyError as exc:
            raise LookupUnavailable(f"{method.__name__} failed: {exc.__class__.__name__}") from exc

    return wrapper


class UserLookup(Protocol):

    def find_user_by_email(self, email: str) -> User | None: ...

    def find_user_by_id(self, user_id: str) -> User | None: ...

    def find_user_by_any_of(
            self,
            email: str | None = None,
            phone: str | None = None,
            username: str | None = None,
    ) -> User | None: ...

    def find_role_by_key(self, key: str) -> Role | None: ...

    def find_roles_by_keys(self, keys: Iterable[str]) -> list[Role]: ...

    def find_permission_keys_for_user(self, user_id: str) -> set[str]: ...

    def create_user(
            self,
            *,
            email: str,
            username: str,
            name: str,
            password_hash: str,
            roles: list[Role],
            phone: str | None = None,
            status: UserStatus = UserStatus.INACTIVE,
    ) -> User: ...


class SqlAlchemyUserRepository:

    def __init__(self, session: Session) -> None:
        self.session = session

    @_translate_db_errors
    def find_user_by_email(self, email: str) -> User | None:
        return self.session.execute(
            select(User)
            .where(User.email == email)
            .options(selectinload(User.roles))
        ).scalar_one_or_none()

    @_translate_db_errors
    def find_user_by_id(self, user_id: str) -> User | None:
        return self.session.execute(
            select(User)
            .where(User.id == user_id)
            .options(selectinload(User.roles).selectinload(Role.permissions))
        ).scalar_one_or_none()

    @_translate_db_errors
    def find_user_by_any_of(
            self,
            email: str | None = None,
            phone: str | None = None,
            username: str | None = None,
    ) -> User | None:
        """
        OR-lookup across the identifiers that were actually supplied.

        With no identifiers there is nothing to match; return None rather
        than building an unconstrained query.
        """
        conditions = []
        if email is not None:
            conditions.append(User.email == email)
        if phone is not None:
            conditions.append(User.phone == phone)
        if username is not None:
            conditions.append(User.username == username)
        if not conditions:
            return None

        return self.session.execute(
            select(User).where(or_(*conditions)).limit(1)
        ).scalars().first()

    @_translate_db_errors
    def find_role_by_key(self, key: str) -> Role | None:
        return self.session.execute(
            select(Role).where(Role.key == key)
        ).scalar_one_or_none()

    @_translate_db_errors
    def find_roles_by_keys(self, keys: Iterable[str]) -> list[Role]:
        keys = list(keys)
        if not keys:
            return []
        return list(
            self.session.execute(
                select(Role).where(Role.key.in_(keys)).order_by(Role.key)
            ).scalars().all()
        )

    @_translate_db_errors
    def find_permission_keys_for_user(self, user_id: str) -> set[str]:
        """Permission keys granted through the user's ACTIVE roles."""
        rows = self.session.execute(
            select(Permission.key)
            .join(Permission.roles)
            .join(Role.users)
            .where(
                User.id == user_id,
                Role.status == RoleStatus.ACTIVE,
                Permission.status == PermissionStatus.ACTIVE,
            )
            .distinct()
        ).scalars().all()
        return set(rows)

    @_translate_db_errors
    def create_user(
            self,
            *,
            email: str,
            username: str,
            name: str,
            password_hash: str,
            roles: list[Role],
            phone: str | None = None,
            status: UserStatus = UserStatus.INACTIVE,
    ) -> User:
        user = User(
            email=email,
            username=username,
            name=name,
            phone=phone,
            password_hash=password_hash,
            status=status,
            roles=list(roles),
        )
        self.session.add(user)
        try:
            # flush so the UNIQUE constraints fire here; commit is the route's job
            self.session.flush()
        except IntegrityError as exc:
            self.session.rollback()
            raise DuplicateUser(str(exc.orig)) from exc
        return user
