"""
Base service class.
Services contain business logic and coordinate repositories.
"""

from abc import ABC

from sqlalchemy.exc import SQLAlchemyError

from consultrack.core.exceptions import StoreError


class BaseService(ABC):
    """Base service class for all services."""
    
    @staticmethod
    def store_error(exc: SQLAlchemyError, message: str) -> StoreError:
        """Wrap a persistence failure; callers raise it ``from exc``."""
        return StoreError(message, details={"exception_type": type(exc).__name__})
