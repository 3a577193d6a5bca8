# cloudstorage/services/_shared/base.py
from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime
from http import HTTPStatus

from cloudstorage.core import errors as api_errors
from cloudstorage.repositories.base import Pagination
from cloudstorage.services._shared.errors import (
    AccountExists,
    AuthenticationError,
    AuthorizationError,
    FederatedLoginFailed,
    FederatedLoginNotConfigured,
    NotFoundError,
    ServiceError,
    StorageError,
)
from cloudstorage.uow.sqlalchemy_uow import (
    SQLAlchemyReadOnlyUnitOfWork,
    SQLAlchemyUnitOfWork,
)

# Most specific first: the first matching class wins.
_STATUS_BY_ERROR: tuple[tuple[type[ServiceError], int], ...] = (
    (NotFoundError, HTTPStatus.NOT_FOUND),
    (AccountExists, HTTPStatus.CONFLICT),
    (AuthenticationError, HTTPStatus.UNAUTHORIZED),
    (AuthorizationError, HTTPStatus.FORBIDDEN),
    (FederatedLoginNotConfigured, HTTPStatus.NOT_IMPLEMENTED),
    (FederatedLoginFailed, HTTPStatus.BAD_GATEWAY),
    (StorageError, HTTPStatus.BAD_GATEWAY),
)


def translate_service_error(exc: ServiceError) -> api_errors.APIError:
    """
    Map a service-level error to its API-level (HTTP) counterpart.

    :param exc: Exception raised within a service.
    :type exc: ServiceError
    :returns: ``APIError`` carrying the status and the error's stable ``code``.
    :rtype: APIError
    """
    status = HTTPStatus.BAD_REQUEST
    for error_type, mapped in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            status = mapped
            break
    return api_errors.APIError(message=str(exc), status_code=status, code=exc.code)


class BaseService:
    """
    Base class for application services.

    Responsibilities
    ----------------
    * Provide helpers to run read-only and read-write units of work.
    * Offer shared validation helpers (pagination/sorting) and a clock.

    Notes
    -----
    - Services must never touch the global session; always use a Unit of Work.
    - Never open a Unit of Work while another one is active: they share the
      Flask-scoped session and the inner exit would commit the outer work.
    """

    DEFAULT_READ_ISOLATION = "READ COMMITTED"

    # -------------------------- UoW helpers ---------------------------------

    def rw_uow(self) -> SQLAlchemyUnitOfWork:
        """
        Create a read-write Unit of Work.

        :returns: Read-write UoW instance.
        :rtype: SQLAlchemyUnitOfWork
        """
        return SQLAlchemyUnitOfWork()

    def ro_uow(
        self, *, isolation: str | None = None, enforce_db_readonly: bool = True
    ) -> SQLAlchemyReadOnlyUnitOfWork:
        """
        Create a read-only Unit of Work.

        :param isolation: Transaction isolation level (e.g. "READ COMMITTED").
        :type isolation: str | None
        :param enforce_db_readonly: Apply `SET TRANSACTION READ ONLY` when supported.
        :type enforce_db_readonly: bool
        :returns: Read-only UoW instance.
        :rtype: SQLAlchemyReadOnlyUnitOfWork
        """
        return SQLAlchemyReadOnlyUnitOfWork(
            isolation_level=isolation or self.DEFAULT_READ_ISOLATION,
            enforce_db_readonly=enforce_db_readonly,
        )

    # ----------------------- Validation utilities ---------------------------

    def ensure_pagination(
        self, *, page: int, limit: int, sort: Iterable[str] | None = None, max_limit: int = 100
    ) -> Pagination:
        """
        Build a Pagination value object with basic clamping.

        :param page: 1-based page number.
        :param limit: Page size, clamped to ``[1, max_limit]``.
        :param sort: Sort tokens like ["-created_at", "name"].
        :returns: Pagination instance.
        :rtype: Pagination
        """
        page = max(1, int(page))
        limit = min(max(1, int(limit)), max_limit)
        return Pagination(page=page, limit=limit, sort=list(sort or []))

    # ------------------------------ Clock -----------------------------------

    @staticmethod
    def now_utc() -> datetime:
        return datetime.now(UTC)
