"""Transactional boundary shared by repositories and services."""

from __future__ import annotations

from collections.abc import Callable

from sqlalchemy.orm import Session

from ..exceptions import handle_sqlalchemy_errors


class SqlAlchemyUnitOfWork:
    """Represents an atomic transactional boundary over one session.

    Leaving the context without :meth:`commit` rolls the transaction back.
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory
        self._session: Session | None = None
        self._committed = False

    @property
    def session(self) -> Session:
        if self._session is None:
            raise RuntimeError("unit of work is not active")
        return self._session

    def __enter__(self) -> SqlAlchemyUnitOfWork:
        self._session = self._session_factory()
        self._committed = False
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: object,
    ) -> None:
        session = self.session
        try:
            if not self._committed:
                session.rollback()
        finally:
            session.close()
            self._session = None

    def commit(self) -> None:
        with handle_sqlalchemy_errors(entity="unit_of_work"):
            self.session.commit()
        self._committed = True
