"""
Pytest configuration for the BioKey Auth tests.

Provides an in-memory stand-in for a Motor collection, a controllable clock,
key helpers and fully wired service fixtures. Settings are pointed at test
values before the application package is imported.
"""

import copy
from datetime import datetime, timedelta, timezone
import os
from types import SimpleNamespace

os.environ.setdefault("SECRET_KEY", "unit-test-signing-key")
os.environ.setdefault("MONGODB_URL", "mongodb://localhost:27017")
os.environ.setdefault("LOG_TO_FILE", "false")

from bson import ObjectId
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError
import pytest

from biokey_auth.routes.auth.services.auth.password import BcryptPasswordHasher
from biokey_auth.routes.auth.services.auth.service import AuthService
from biokey_auth.routes.auth.services.auth.tokens import TokenIssuer
from biokey_auth.routes.auth.services.users.service import UserService
from biokey_auth.routes.auth.services.users.store import MongoUserStore
from biokey_auth.routes.auth.services.webauthn.crypto import SignatureVerifier
from biokey_auth.routes.auth.services.webauthn.sessions import SessionStore

TEST_SECRET = "unit-test-signing-key"
START_TIME = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)

_COMPARATORS = {
    "$lte": lambda value, bound: value is not None and value <= bound,
    "$lt": lambda value, bound: value is not None and value < bound,
    "$gte": lambda value, bound: value is not None and value >= bound,
    "$gt": lambda value, bound: value is not None and value > bound,
}


def _matches(doc, query):
    for field, condition in query.items():
        value = doc.get(field)
        if isinstance(condition, dict):
            if not all(_COMPARATORS[op](value, bound) for op, bound in condition.items()):
                return False
        elif value != condition:
            return False
    return True


class FakeCursor:
    """The `sort` and `to_list` subset of a Motor cursor."""

    def __init__(self, docs):
        self.docs = docs

    def sort(self, key, direction=ASCENDING):
        self.docs.sort(key=lambda doc: doc.get(key), reverse=direction == DESCENDING)
        return self

    async def to_list(self, length=None):
        return self.docs if length is None else self.docs[:length]


class FakeCollection:
    """
    In-memory double for the subset of `AsyncIOMotorCollection` the stores use.

    Unique fields behave like unique indexes: an insert or update that would
    duplicate a value raises `DuplicateKeyError`.
    """

    def __init__(self, name, unique_fields=()):
        self.name = name
        self.unique_fields = set(unique_fields)
        self.indexes = {}
        self.docs = []

    async def create_index(self, key, unique=False, name=None):
        self.indexes[name or f"{key}_1"] = {"key": key, "unique": unique}
        if unique:
            self.unique_fields.add(key)
        return name

    def _check_unique(self, candidate, ignore=None):
        for field in self.unique_fields:
            if field not in candidate:
                continue
            for doc in self.docs:
                if doc is not ignore and doc.get(field) == candidate[field]:
                    raise DuplicateKeyError(f"E11000 duplicate key error collection: {self.name} index: {field}")

    async def insert_one(self, doc):
        stored = copy.deepcopy(doc)
        stored.setdefault("_id", ObjectId())
        self._check_unique(stored)
        self.docs.append(stored)
        return SimpleNamespace(inserted_id=stored["_id"])

    async def find_one(self, query):
        for doc in self.docs:
            if _matches(doc, query):
                return copy.deepcopy(doc)
        return None

    async def find_one_and_update(self, query, update, return_document=ReturnDocument.BEFORE):
        for doc in self.docs:
            if _matches(doc, query):
                before = copy.deepcopy(doc)
                changes = update.get("$set", {})
                self._check_unique(changes, ignore=doc)
                doc.update(copy.deepcopy(changes))
                return copy.deepcopy(doc) if return_document == ReturnDocument.AFTER else before
        return None

    def find(self, query=None):
        return FakeCursor([copy.deepcopy(doc) for doc in self.docs if _matches(doc, query or {})])

    async def find_one_and_delete(self, query):
        for doc in self.docs:
            if _matches(doc, query):
                self.docs.remove(doc)
                return copy.deepcopy(doc)
        return None

    async def delete_one(self, query):
        for doc in self.docs:
            if _matches(doc, query):
                self.docs.remove(doc)
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)

    async def delete_many(self, query):
        doomed = [doc for doc in self.docs if _matches(doc, query)]
        for doc in doomed:
            self.docs.remove(doc)
        return SimpleNamespace(deleted_count=len(doomed))


class MutableClock:
    """Clock whose current instant tests move explicitly."""

    def __init__(self, start=START_TIME):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, **delta):
        self.now = self.now + timedelta(**delta)
        return self.now


def make_ec_keypair():
    """P-256 private key and the hex of its uncompressed SEC1 public point."""
    private_key = ec.generate_private_key(ec.SECP256R1())
    public_hex = private_key.public_key().public_bytes(Encoding.X962, PublicFormat.UncompressedPoint).hex()
    return private_key, public_hex


def make_rsa_keypair():
    """RSA private key and the hex of its DER SubjectPublicKeyInfo."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    public_hex = private_key.public_key().public_bytes(Encoding.DER, PublicFormat.SubjectPublicKeyInfo).hex()
    return private_key, public_hex


def sign_challenge(private_key, challenge):
    """Hex signature over the UTF-8 challenge, as a client would produce it."""
    data = challenge.encode("utf-8")
    if isinstance(private_key, rsa.RSAPrivateKey):
        return private_key.sign(data, padding.PKCS1v15(), hashes.SHA256()).hex()
    return private_key.sign(data, ec.ECDSA(hashes.SHA256())).hex()


@pytest.fixture
def clock():
    return MutableClock()


@pytest.fixture
def ec_keypair():
    return make_ec_keypair()


@pytest.fixture
def users_collection():
    return FakeCollection("users", unique_fields=("email",))


@pytest.fixture
def sessions_collection():
    return FakeCollection("auth_sessions", unique_fields=("user_id",))


@pytest.fixture
def user_store(users_collection, clock):
    return MongoUserStore(users_collection, clock=clock)


@pytest.fixture
def session_store(sessions_collection):
    return SessionStore(sessions_collection)


@pytest.fixture
def password_hasher():
    # Minimum cost keeps the suite fast
    return BcryptPasswordHasher(rounds=4)


@pytest.fixture
def token_issuer():
    return TokenIssuer(TEST_SECRET)


@pytest.fixture
def auth_service(user_store, session_store, password_hasher, token_issuer, clock):
    return AuthService(
        user_store,
        session_store,
        password_hasher,
        token_issuer,
        SignatureVerifier(),
        clock=clock,
    )


@pytest.fixture
def user_service(user_store, session_store, password_hasher):
    return UserService(user_store, session_store, password_hasher)
