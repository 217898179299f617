import json
from datetime import UTC, datetime
from typing import Optional, Tuple

from ..api.models import Identity, UserRecord


class UserModule:
    def __init__(self, redis_client):
        """
        Initialize user module.

        Args:
            redis_client: Async Redis client
        """
        self.redis = redis_client

    async def upsert_user(self, identity: Identity) -> Tuple[UserRecord, bool]:
        """
        Create or refresh the backend record for an identity.

        Repeated calls with the same identity leave the record unchanged,
        so sync is safe to retry.

        Args:
            identity: Identity resolved from the verified session token

        Returns:
            Tuple of (record, created)

        Logic:
        1. Load existing record if present
        2. Create it, or update profile fields that changed
        3. Index the user id in the users set
        """
        user_key = f"user:{identity.user_id}"
        existing = await self.get_user(identity.user_id)
        now = datetime.now(UTC)

        if existing is None:
            record = UserRecord(
                user_id=identity.user_id,
                email=identity.email_address,
                first_name=identity.first_name,
                last_name=identity.last_name,
                created_at=now,
                updated_at=now,
            )
            created = True
        else:
            changes = {
                "email": identity.email_address.strip().lower(),
                "first_name": identity.first_name,
                "last_name": identity.last_name,
            }
            if all(getattr(existing, k) == v for k, v in changes.items()):
                return existing, False

            record = existing.model_copy(update={**changes, "updated_at": now})
            created = False

        await self.redis.set(user_key, record.model_dump_json())
        await self.redis.sadd("users:all", identity.user_id)

        return record, created

    async def get_user(self, user_id: str) -> Optional[UserRecord]:
        """
        Get a user record.

        Args:
            user_id: Identity provider user identifier

        Returns:
            UserRecord or None if not found
        """
        data = await self.redis.get(f"user:{user_id}")

        if data:
            return UserRecord.model_validate(json.loads(data))
        return None
