import logging
from typing import Optional

from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session

from eventos.database.errors import classify_db_error


class BaseRepository:

    def __init__(self, db: Session, logger: Optional[logging.Logger] = None):
        self.db = db
        self.logger = logger or logging.getLogger(self.__class__.__module__)

    def _raise_classified(self, e: DBAPIError) -> None:
        self.db.rollback()
        err = classify_db_error(e)
        if err is e:
            raise e
        raise err from e

    def commit(self) -> None:
        try:
            self.db.commit()
        except DBAPIError as e:
            self._raise_classified(e)

    def rollback(self) -> None:
        self.db.rollback()

    def flush(self) -> None:
        try:
            self.db.flush()
        except DBAPIError as e:
            self._raise_classified(e)
