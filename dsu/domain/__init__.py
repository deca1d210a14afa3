"""Domain entities for the DSU.

All entities are exported from this module for convenient imports:
    from dsu.domain import User, Schema, AuthorizationCode, ...

Entities are organized by concern:
- user.py: User
- third_party.py: ThirdParty
- tokens.py: AuthenticationToken, AuthorizationCode,
  AuthorizationCodeVerification, AuthorizationToken
- schema.py: Schema (+ build_schema, standalone field validators)
- data.py: Data, MetaData
- column_list.py: ColumnList
"""

from dsu.domain.column_list import ColumnList
from dsu.domain.data import Data, MetaData
from dsu.domain.schema import Schema, build_schema
from dsu.domain.third_party import ThirdParty
from dsu.domain.tokens import (
    AuthenticationToken,
    AuthorizationCode,
    AuthorizationCodeVerification,
    AuthorizationToken,
)
from dsu.domain.user import User

__all__ = [
    "AuthenticationToken",
    "AuthorizationCode",
    "AuthorizationCodeVerification",
    "AuthorizationToken",
    "ColumnList",
    "Data",
    "MetaData",
    "Schema",
    "ThirdParty",
    "User",
    "build_schema",
]
