"""Storage abstraction layer.

Services import the interfaces and the bundle from here:
    from dsu.storage import Storage, UserBin, ...

Engine implementations live in dsu.storage.sql and dsu.storage.mongo and
are selected by dsu.storage.factory.create_storage.
"""

from dsu.storage.base import (
    AuthenticationTokenBin,
    AuthorizationCodeBin,
    AuthorizationCodeVerificationBin,
    AuthorizationTokenBin,
    DataBin,
    Registry,
    Storage,
    StorageEngine,
    ThirdPartyBin,
    UserBin,
)

__all__ = [
    "AuthenticationTokenBin",
    "AuthorizationCodeBin",
    "AuthorizationCodeVerificationBin",
    "AuthorizationTokenBin",
    "DataBin",
    "Registry",
    "Storage",
    "StorageEngine",
    "ThirdPartyBin",
    "UserBin",
]
