"""MongoDB connection management and collection helpers."""

from __future__ import annotations

from typing import Optional

from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.database import Database

from trackify.config import Settings

USERS = "users"
APPLICATIONS = "internship_applications"
VERIFICATION_CODES = "verification_codes"
EMAIL_CONFIGS = "email_configs"
EMAIL_TEMPLATES = "email_templates"

ALL_COLLECTIONS = (USERS, APPLICATIONS, VERIFICATION_CODES, EMAIL_CONFIGS, EMAIL_TEMPLATES)


# Global MongoDB client instance
_client: Optional[MongoClient] = None
_database: Optional[Database] = None
_settings: Settings = Settings()


def configure(settings: Settings) -> None:
    """Point the connection helpers at the given settings, dropping any open client."""
    global _settings
    close_mongo_connection()
    _settings = settings


def get_mongo_client() -> MongoClient:
    """Get or create MongoDB client instance."""
    global _client
    if _client is None:
        _client = MongoClient(_settings.mongodb_uri)
    return _client


def get_database() -> Database:
    """Get the MongoDB database instance."""
    global _database
    if _database is None:
        client = get_mongo_client()
        _database = client[_settings.mongodb_database]
    return _database


def get_collection(name: str) -> Collection:
    return get_database()[name]


def close_mongo_connection():
    """Close the MongoDB connection."""
    global _client, _database
    if _client is not None:
        _client.close()
        _client = None
        _database = None


def create_indexes() -> None:
    """Install the indexes the services rely on."""
    db = get_database()
    db[USERS].create_index([("email", ASCENDING)], unique=True)
    db[VERIFICATION_CODES].create_index([("token", ASCENDING)], unique=True)
    db[VERIFICATION_CODES].create_index([("code", ASCENDING), ("token", ASCENDING), ("action", ASCENDING)])
    db[APPLICATIONS].create_index([("user", ASCENDING), ("applicationDate", DESCENDING)])
    db[EMAIL_TEMPLATES].create_index([("action", ASCENDING)], unique=True)
