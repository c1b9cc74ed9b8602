"""
MongoDB user store.

Implements the user-store contract the auth and user-management services
rely on: create, lookup by email or id, listing, partial update and delete.
Email uniqueness is enforced by a unique index; a duplicate insert surfaces
as `ConflictError`.
"""

import logging
from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import ASCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from biokey_auth.errors import ConflictError, InternalError, NotFoundError
from biokey_auth.managers.logging_manager import get_logger
from biokey_auth.routes.auth.models import Role, UserInDB
from biokey_auth.utils.datetime_utils import Clock, utc_now
from biokey_auth.utils.logging_utils import log_error_with_context

UPDATABLE_FIELDS = frozenset({"email", "password_hash", "biometric_key", "role"})


def _object_id(user_id: str) -> Optional[ObjectId]:
    try:
        return ObjectId(user_id)
    except (InvalidId, TypeError):
        return None


class MongoUserStore:
    def __init__(
        self,
        collection: AsyncIOMotorCollection,
        clock: Clock = utc_now,
        logger: Optional[logging.Logger] = None,
    ):
        self.collection = collection
        self.clock = clock
        self.logger = logger or get_logger(prefix="[User Store]")

    async def ensure_indexes(self) -> None:
        await self.collection.create_index("email", unique=True, name="email_1")
        self.logger.info("User indexes ensured on '%s'", self.collection.name)

    async def create(self, email: str, password_hash: str, role: Role = Role.USER) -> UserInDB:
        """
        Insert a new user.

        Raises:
            ConflictError: if the email is already registered.
        """
        now = self.clock()
        doc = {
            "email": email,
            "password_hash": password_hash,
            "biometric_key": None,
            "role": Role(role).value,
            "created_at": now,
            "updated_at": now,
        }
        try:
            result = await self.collection.insert_one(doc)
        except DuplicateKeyError:
            self.logger.info("User creation rejected, email already registered: %s", email)
            raise ConflictError("A user with this email already exists")
        except PyMongoError as e:
            log_error_with_context(e, context={"email": email}, operation="create_user")
            raise InternalError("Failed to create user, please try again later") from e

        doc["_id"] = result.inserted_id
        self.logger.info("Created user %s", result.inserted_id)
        return UserInDB.from_document(doc)

    async def _find_one(self, query: Dict[str, Any]) -> Optional[UserInDB]:
        try:
            doc = await self.collection.find_one(query)
        except PyMongoError as e:
            log_error_with_context(e, context={"fields": sorted(query)}, operation="find_user")
            raise InternalError("Failed to retrieve user, please try again later") from e
        return UserInDB.from_document(doc) if doc else None

    async def find_by_email(self, email: str) -> Optional[UserInDB]:
        return await self._find_one({"email": email})

    async def find_by_id(self, user_id: str) -> Optional[UserInDB]:
        object_id = _object_id(user_id)
        if object_id is None:
            return None
        return await self._find_one({"_id": object_id})

    async def update(self, user_id: str, fields: Dict[str, Any]) -> Optional[UserInDB]:
        """Set `fields` on the user; returns the updated user, or None if no user matched."""
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unsupported user fields: {sorted(unknown)}")

        object_id = _object_id(user_id)
        if object_id is None:
            return None

        changes = dict(fields)
        if "role" in changes:
            changes["role"] = Role(changes["role"]).value
        changes["updated_at"] = self.clock()

        try:
            doc = await self.collection.find_one_and_update(
                {"_id": object_id},
                {"$set": changes},
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            raise ConflictError("A user with this email already exists")
        except PyMongoError as e:
            log_error_with_context(e, context={"user_id": user_id}, operation="update_user")
            raise InternalError("Failed to update user, please try again later") from e

        return UserInDB.from_document(doc) if doc else None

    async def find_all(self) -> List[UserInDB]:
        """All users, oldest first."""
        try:
            docs = await self.collection.find({}).sort("created_at", ASCENDING).to_list(length=None)
        except PyMongoError as e:
            log_error_with_context(e, operation="list_users")
            raise InternalError("Failed to retrieve users, please try again later") from e
        return [UserInDB.from_document(doc) for doc in docs]

    async def delete(self, user_id: str) -> UserInDB:
        """
        Remove the user and return the removed record.

        Raises:
            NotFoundError: if no user has this id.
        """
        object_id = _object_id(user_id)
        if object_id is None:
            raise NotFoundError("User not found")

        try:
            doc = await self.collection.find_one_and_delete({"_id": object_id})
        except PyMongoError as e:
            log_error_with_context(e, context={"user_id": user_id}, operation="delete_user")
            raise InternalError("Failed to delete user, please try again later") from e

        if doc is None:
            raise NotFoundError("User not found")
        self.logger.info("Deleted user %s", user_id)
        return UserInDB.from_document(doc)
