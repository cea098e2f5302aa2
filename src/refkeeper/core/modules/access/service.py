from refkeeper.core.core import Service
from refkeeper.core.modules.access.models import Identity
from refkeeper.errors import AccessDeniedError, AuthenticationError


class AccessService(Service):
    def identify(self, uid: str | None) -> Identity:
        """Build the identity for a gateway-verified uid."""
        if not uid:
            raise AuthenticationError
        return Identity(uid=uid, is_admin=uid in self.core.config.admin_uids)

    def ensure_admin(self, identity: Identity) -> None:
        """Ensure the caller is admin, raise AccessDeniedError if not."""
        if not identity.is_admin:
            raise AccessDeniedError("Admin privileges required")

    def ensure_self_or_admin(self, identity: Identity, uid: str) -> None:
        """Ensure the caller acts on their own account or is admin."""
        if identity.uid != uid and not identity.is_admin:
            raise AccessDeniedError("Access denied: cannot act on another user's account")

    def ensure_owner_or_admin(self, identity: Identity, *owner_uids: str | None) -> None:
        """Ensure the caller is one of the owners of a record or is admin."""
        if identity.is_admin or identity.uid in owner_uids:
            return
        raise AccessDeniedError("Access denied: you do not own this record")
