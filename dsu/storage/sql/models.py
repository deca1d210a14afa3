"""SQLAlchemy ORM rows for the relational storage engine.

One table per entity kind. Natural keys are enforced with unique
constraints so the database, not the application, rejects duplicates.
Times are BIGINT milliseconds since the epoch.
"""

from typing import Any

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM rows."""


class UserRow(Base):
    """Registered account."""

    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("username", name="uq_users_username"),
        UniqueConstraint("registration_key", name="uq_users_registration_key"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(255), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(60), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    registration_key: Mapped[str | None] = mapped_column(String(128), nullable=True)
    date_registered: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    date_activated: Mapped[int | None] = mapped_column(BigInteger, nullable=True)


class ThirdPartyRow(Base):
    """Registered client application."""

    __tablename__ = "third_parties"
    __table_args__ = (UniqueConstraint("third_party_id", name="uq_third_parties_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    third_party_id: Mapped[str] = mapped_column(String(36), nullable=False)
    owner: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    shared_secret: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    redirect_uri: Mapped[str] = mapped_column(Text, nullable=False)


class AuthenticationTokenRow(Base):
    """Session token issued at login."""

    __tablename__ = "authentication_tokens"
    __table_args__ = (
        UniqueConstraint("token", name="uq_authentication_tokens_token"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    token: Mapped[str] = mapped_column(String(36), nullable=False)
    username: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    granted: Mapped[int] = mapped_column(BigInteger, nullable=False)
    expires: Mapped[int] = mapped_column(BigInteger, nullable=False)


class AuthorizationCodeRow(Base):
    """Code minted for a third party's access request."""

    __tablename__ = "authorization_codes"
    __table_args__ = (UniqueConstraint("code", name="uq_authorization_codes_code"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(36), nullable=False)
    third_party_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    creation_time: Mapped[int] = mapped_column(BigInteger, nullable=False)
    expiration_time: Mapped[int] = mapped_column(BigInteger, nullable=False)
    scopes: Mapped[list[str]] = mapped_column(JSON, nullable=False)
    state: Mapped[str | None] = mapped_column(Text, nullable=True)


class AuthorizationCodeVerificationRow(Base):
    """Resource owner's decision for a code."""

    __tablename__ = "authorization_code_verifications"
    __table_args__ = (
        UniqueConstraint(
            "authorization_code",
            name="uq_authorization_code_verifications_code",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    authorization_code: Mapped[str] = mapped_column(String(36), nullable=False)
    owner: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    granted: Mapped[bool] = mapped_column(Boolean, nullable=False)


class AuthorizationTokenRow(Base):
    """Access/refresh token pair."""

    __tablename__ = "authorization_tokens"
    __table_args__ = (
        UniqueConstraint("access_token", name="uq_authorization_tokens_access"),
        UniqueConstraint("refresh_token", name="uq_authorization_tokens_refresh"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    authorization_code: Mapped[str] = mapped_column(
        String(36), nullable=False, index=True
    )
    access_token: Mapped[str] = mapped_column(String(36), nullable=False)
    refresh_token: Mapped[str] = mapped_column(String(36), nullable=False)
    creation_time: Mapped[int] = mapped_column(BigInteger, nullable=False)
    expiration_time: Mapped[int] = mapped_column(BigInteger, nullable=False)


class DataRow(Base):
    """One validated data point.

    metadata_timestamp keeps the ISO-8601 text as submitted (with its
    offset); metadata_timestamp_ms is the UTC sort key.
    """

    __tablename__ = "data"
    __table_args__ = (
        Index(
            "ix_data_owner_schema_time",
            "owner",
            "schema_id",
            "schema_version",
            "metadata_timestamp_ms",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner: Mapped[str] = mapped_column(String(255), nullable=False)
    schema_id: Mapped[str] = mapped_column(String(255), nullable=False)
    schema_version: Mapped[int] = mapped_column(BigInteger, nullable=False)
    metadata_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    metadata_timestamp: Mapped[str | None] = mapped_column(String(64), nullable=True)
    metadata_timestamp_ms: Mapped[int | None] = mapped_column(
        BigInteger, nullable=True
    )
    data: Mapped[Any] = mapped_column(JSON, nullable=False)


class SchemaRow(Base):
    """Registry entry."""

    __tablename__ = "registry"
    __table_args__ = (
        UniqueConstraint(
            "schema_id", "schema_version", name="uq_registry_id_version"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    schema_id: Mapped[str] = mapped_column(String(255), nullable=False)
    schema_version: Mapped[int] = mapped_column(BigInteger, nullable=False)
    chunk_size: Mapped[int] = mapped_column(BigInteger, nullable=False)
    time_authoritative: Mapped[bool] = mapped_column(Boolean, nullable=False)
    time_zone_authoritative: Mapped[bool] = mapped_column(Boolean, nullable=False)
    definition: Mapped[dict] = mapped_column(JSON, nullable=False)
