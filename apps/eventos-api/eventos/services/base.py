"""Common base for SQLAlchemy-backed services."""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from eventos.database.errors import classify_db_error


class BaseService:
    """Holds the request-scoped session every service works against."""

    def __init__(self, db: Session):
        self.db = db
        self.logger = logging.getLogger(self.__class__.__module__)

    def _commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            err = classify_db_error(e)
            if err is e:
                raise
            raise err from e
