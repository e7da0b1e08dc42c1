"""Auto-share linkage: durable public share links for cover art."""

import logging

from sonicat.application.services.record_decoding import Decoded, decode_record
from sonicat.domain.entities import Share, ShareItemType, User
from sonicat.domain.ports import ICatalogStore
from sonicat.domain.value_objects import Collection, generate_id

logger = logging.getLogger(__name__)

DEFAULT_DESCRIPTION = "Cover art"


class AutoShareService:
    """Idempotent find-or-create of cover-art shares.

    Hey future me - the ("autoShares", "coverArt", itemId) index entry is what makes this
    idempotent: the second call for the same item returns the stored id without touching
    the shares collection. The sweep deletes share AND index entry together when the cover
    goes away, so the index never points at a dead share after a sweep.
    """

    def __init__(self, store: ICatalogStore) -> None:
        self._store = store

    async def find_admin_user_id(self) -> str | None:
        """Get the id of the first user with the admin role."""
        async for entry in self._store.list(Collection.USERS.prefix):
            result = decode_record(User, entry.value)
            if isinstance(result, Decoded) and result.record.admin_role:
                return result.record.id
        return None

    async def get_or_create_share(
        self, item_id: str, description: str | None = None
    ) -> str | None:
        """Get the cover-art share id for an item, creating it on first use.

        Args:
            item_id: Cover art id
            description: Share description (default "Cover art")

        Returns:
            Share id, or None when no admin user exists to own the share
        """
        index_key = Collection.AUTO_SHARES.key(ShareItemType.COVER_ART.value, item_id)
        existing = await self._store.get(index_key)
        if isinstance(existing, str) and existing:
            return existing

        owner_id = await self.find_admin_user_id()
        if owner_id is None:
            logger.warning("No admin user found for auto-share creation")
            return None

        share = Share(
            id=generate_id(),
            user_id=owner_id,
            item_id=item_id,
            item_type=ShareItemType.COVER_ART,
            description=description or DEFAULT_DESCRIPTION,
            expires=None,
            view_count=0,
        )
        await self._store.set(Collection.SHARES.key(share.id), share.to_record())
        await self._store.set(index_key, share.id)
        logger.info(f"Created share {share.id} for coverArt {item_id}")
        return share.id

    async def share_url(
        self,
        item_id: str,
        size: int,
        base_url: str,
        description: str | None = None,
    ) -> str | None:
        """Build the public cover-art URL, or None if no share could be created."""
        share_id = await self.get_or_create_share(item_id, description)
        if share_id is None:
            return None
        return f"{base_url.rstrip('/')}/share/{share_id}?size={size}"
