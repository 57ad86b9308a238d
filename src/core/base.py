from sqlalchemy.ext.asyncio import AsyncSession

from src.utils.logger import get_logger


class BaseService:
    """Shared plumbing for services: the request's session and a named logger.

    Services commit or roll back their own work. Callers hand in a session
    and never see a half-finished transaction.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.logger = get_logger(f"{type(self).__module__}.{type(self).__name__}")
