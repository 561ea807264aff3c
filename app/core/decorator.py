import logging
from functools import wraps

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

logger = logging.getLogger(__name__)


class DBException(Exception):
    def __init__(self, message: str, status_code: int = 400):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


def db_exception(func):
    """Map storage errors raised by a service write to ``DBException``.

    The wrapped callable must be a method of a service holding ``self.db``;
    the session is rolled back before the error is re-raised.
    """

    @wraps(func)
    def wrapper(self, *args, **kwargs):
        try:
            return func(self, *args, **kwargs)
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"Integrity error in {func.__name__}: {e.orig}")
            raise DBException("Conflicts with existing data", 409)
        except SQLAlchemyError:
            self.db.rollback()
            logger.error(f"Database error in {func.__name__}", exc_info=True)
            raise DBException("Database error occurred", 500)

    return wrapper
