"""Storage factory.

Builds the Storage bundle for the engine named in configuration. Called
once at application startup; the bundle is then passed to services.
"""

from motor.motor_asyncio import AsyncIOMotorClient

from dsu.core.config import Settings
from dsu.storage.base import Storage
from dsu.storage.mongo.authentication_token_bin import MongoAuthenticationTokenBin
from dsu.storage.mongo.authorization_code_bin import (
    MongoAuthorizationCodeBin,
    MongoAuthorizationCodeVerificationBin,
)
from dsu.storage.mongo.authorization_token_bin import MongoAuthorizationTokenBin
from dsu.storage.mongo.data_bin import MongoDataBin
from dsu.storage.mongo.database import MongoEngine
from dsu.storage.mongo.registry import MongoRegistry
from dsu.storage.mongo.third_party_bin import MongoThirdPartyBin
from dsu.storage.mongo.user_bin import MongoUserBin
from dsu.storage.sql.authentication_token_bin import SqlAuthenticationTokenBin
from dsu.storage.sql.authorization_code_bin import (
    SqlAuthorizationCodeBin,
    SqlAuthorizationCodeVerificationBin,
)
from dsu.storage.sql.authorization_token_bin import SqlAuthorizationTokenBin
from dsu.storage.sql.data_bin import SqlDataBin
from dsu.storage.sql.database import SqlEngine
from dsu.storage.sql.registry import SqlRegistry
from dsu.storage.sql.third_party_bin import SqlThirdPartyBin
from dsu.storage.sql.user_bin import SqlUserBin


def create_sql_storage(database_url: str, echo: bool = False) -> Storage:
    """Build SQL-backed storage.

    Args:
        database_url: Async SQLAlchemy URL.
        echo: Log emitted SQL.

    Returns:
        Storage whose bins share one engine and session factory.
    """
    engine = SqlEngine(database_url, echo=echo)
    sessions = engine.sessions
    return Storage(
        users=SqlUserBin(sessions),
        third_parties=SqlThirdPartyBin(sessions),
        authentication_tokens=SqlAuthenticationTokenBin(sessions),
        authorization_codes=SqlAuthorizationCodeBin(sessions),
        verifications=SqlAuthorizationCodeVerificationBin(sessions),
        authorization_tokens=SqlAuthorizationTokenBin(sessions),
        data=SqlDataBin(sessions),
        registry=SqlRegistry(sessions),
        engine=engine,
    )


def create_mongo_storage(client: AsyncIOMotorClient, database_name: str) -> Storage:
    """Build document-store-backed storage.

    WHY CLIENT PARAMETER:
    - Tests pass an in-memory mock client with the same interface

    Args:
        client: Motor client.
        database_name: Database holding the DSU collections.

    Returns:
        Storage whose bins share one database handle.
    """
    engine = MongoEngine(client, database_name)
    database = engine.database
    return Storage(
        users=MongoUserBin(database),
        third_parties=MongoThirdPartyBin(database),
        authentication_tokens=MongoAuthenticationTokenBin(database),
        authorization_codes=MongoAuthorizationCodeBin(database),
        verifications=MongoAuthorizationCodeVerificationBin(database),
        authorization_tokens=MongoAuthorizationTokenBin(database),
        data=MongoDataBin(database),
        registry=MongoRegistry(database),
        engine=engine,
    )


def create_storage(settings: Settings) -> Storage:
    """Build storage for the configured engine.

    Args:
        settings: Application settings (storage_backend and connection info).

    Returns:
        Storage bundle.

    Raises:
        ValueError: If the configured backend is unknown.
    """
    if settings.storage_backend == "sql":
        return create_sql_storage(settings.database_url, echo=settings.database_echo)
    if settings.storage_backend == "mongo":
        return create_mongo_storage(
            AsyncIOMotorClient(settings.mongo_url), settings.mongo_database
        )
    raise ValueError(f"Unknown storage backend: {settings.storage_backend}")
