"""
Pending biometric challenge sessions.

Sessions live in a MongoDB collection with a unique index on `user_id`, so
the store holds at most one row per user. A row whose `expire_at` is not in
the future is no longer pending: `create` replaces it. A row that is still
pending makes `create` fail with `UnauthorizedError`.

The single-pending-session rule is enforced by the unique index, not by a
read followed by a write: `create` deletes only an *expired* row and then
inserts, and a concurrent insert for the same user loses with
`DuplicateKeyError`.

Expired rows are otherwise left in place until they are consumed, aborted or
replaced. `purge_expired` exists for operators and is never scheduled by the
application.
"""

from datetime import datetime
import logging
from typing import Any, Dict, Optional

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from biokey_auth.errors import InternalError, NotFoundError, UnauthorizedError
from biokey_auth.managers.logging_manager import get_logger
from biokey_auth.routes.auth.models import Session
from biokey_auth.utils.logging_utils import log_error_with_context, log_security_event

PENDING_SESSION_MESSAGE = "User already has a pending registration"


class SessionStore:
    """MongoDB backed store of pending challenge sessions."""

    def __init__(self, collection: AsyncIOMotorCollection, logger: Optional[logging.Logger] = None):
        self.collection = collection
        self.logger = logger or get_logger(prefix="[WebAuthn Sessions]")

    async def ensure_indexes(self) -> None:
        await self.collection.create_index("user_id", unique=True, name="user_id_unique")
        await self.collection.create_index("challenge", name="challenge_1")
        self.logger.info("Session indexes ensured on '%s'", self.collection.name)

    async def create(self, user_id: str, challenge: str, expire_at: datetime, now: datetime) -> Session:
        """
        Store a new pending session for `user_id`.

        Raises:
            UnauthorizedError: if the user already has a session that has not expired.
            InternalError: on any other database failure.
        """
        doc = {
            "user_id": user_id,
            "challenge": challenge,
            "expire_at": expire_at,
            "created_at": now,
        }
        try:
            replaced = await self.collection.delete_one({"user_id": user_id, "expire_at": {"$lte": now}})
            if replaced.deleted_count:
                self.logger.debug("Replaced expired session for user %s", user_id)
            result = await self.collection.insert_one(doc)
        except DuplicateKeyError:
            self.logger.warning("Rejected challenge for user %s: a pending session exists", user_id)
            log_security_event(
                event_type="biometric_session_conflict",
                user_id=user_id,
                success=False,
                details={"reason": "pending_session_exists"},
            )
            raise UnauthorizedError(PENDING_SESSION_MESSAGE)
        except PyMongoError as e:
            log_error_with_context(e, context={"user_id": user_id}, operation="create_biometric_session")
            raise InternalError("Failed to create session") from e

        doc["_id"] = result.inserted_id
        self.logger.info("Created biometric session %s for user %s", result.inserted_id, user_id)
        return Session.from_document(doc)

    async def _find_one(self, query: Dict[str, Any]) -> Optional[Session]:
        try:
            doc = await self.collection.find_one(query)
        except PyMongoError as e:
            log_error_with_context(e, context={"fields": sorted(query)}, operation="find_biometric_session")
            raise InternalError("Failed to read session") from e
        return Session.from_document(doc) if doc else None

    async def find_by_user_id(self, user_id: str) -> Optional[Session]:
        return await self._find_one({"user_id": user_id})

    async def find_by_challenge(self, challenge: str) -> Optional[Session]:
        return await self._find_one({"challenge": challenge})

    async def find_by_user_id_and_challenge(self, user_id: str, challenge: str) -> Optional[Session]:
        return await self._find_one({"user_id": user_id, "challenge": challenge})

    async def update(self, session_id: str, user_id: str, challenge: str, expire_at: Optional[datetime]) -> Session:
        """
        Change the expiry of the session matching all three identifiers.

        Raises:
            NotFoundError: if no session matches.
        """
        try:
            object_id = ObjectId(session_id)
        except (InvalidId, TypeError):
            raise NotFoundError("Session not found")

        try:
            doc = await self.collection.find_one_and_update(
                {"_id": object_id, "user_id": user_id, "challenge": challenge},
                {"$set": {"expire_at": expire_at}},
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            log_error_with_context(e, context={"session_id": session_id}, operation="update_biometric_session")
            raise InternalError("Failed to update session") from e

        if not doc:
            raise NotFoundError("Session not found")
        return Session.from_document(doc)

    async def delete(self, user_id: str, challenge: str) -> bool:
        """Remove the matching session; returns whether one was removed."""
        try:
            result = await self.collection.delete_one({"user_id": user_id, "challenge": challenge})
        except PyMongoError as e:
            log_error_with_context(e, context={"user_id": user_id}, operation="delete_biometric_session")
            raise InternalError("Failed to delete session") from e

        removed = result.deleted_count > 0
        self.logger.debug("Delete session for user %s: removed=%s", user_id, removed)
        return removed

    async def delete_for_user(self, user_id: str) -> int:
        """Remove every session of `user_id`, pending or expired."""
        try:
            result = await self.collection.delete_many({"user_id": user_id})
        except PyMongoError as e:
            log_error_with_context(e, context={"user_id": user_id}, operation="delete_user_biometric_sessions")
            raise InternalError("Failed to delete sessions") from e
        return result.deleted_count

    async def purge_expired(self, now: datetime) -> int:
        """Remove every session that is no longer pending at `now`."""
        try:
            result = await self.collection.delete_many({"expire_at": {"$lte": now}})
        except PyMongoError as e:
            log_error_with_context(e, operation="purge_expired_biometric_sessions")
            raise InternalError("Failed to purge sessions") from e

        if result.deleted_count:
            self.logger.info("Purged %d expired biometric sessions", result.deleted_count)
        return result.deleted_count
