import structlog

from refkeeper.core.core import Service
from refkeeper.core.modules.user.models import User
from refkeeper.core.roots import RootKind
from refkeeper.errors import NotFoundError

logger = structlog.get_logger(__name__)


class UserService(Service):
    """Reads user profiles. Users are deleted only through the cascade service."""

    async def find_user(self, uid: str) -> User | None:
        """Get user profile by uid, None if it does not exist."""
        doc = await self.store.get(RootKind.USER.ref(uid))
        return User.from_document(doc) if doc else None

    async def get_user(self, uid: str) -> User:
        """Get user profile by uid."""
        user = await self.find_user(uid)
        if user is None:
            raise NotFoundError(f"User '{uid}' not found")
        return user

    async def list_user_ids(self) -> set[str]:
        """Load the id of every existing user."""
        docs = await self.store.query(RootKind.USER.value)
        logger.debug("list_user_ids", user_count=len(docs))
        return {doc.id for doc in docs}
