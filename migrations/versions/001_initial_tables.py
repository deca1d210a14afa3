"""Create accounts, delegation, registry and data tables.

Revision ID: 001_initial_tables
Revises:
Create Date: 2026-10-18

Mirrors dsu.storage.sql.models. No foreign keys: every natural key is a
unique constraint and bins join in application code.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "001_initial_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _id() -> sa.Column:
    return sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True)


def upgrade() -> None:
    # Accounts
    op.create_table(
        "users",
        _id(),
        sa.Column("username", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(60), nullable=False),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("registration_key", sa.String(128), nullable=True),
        sa.Column("date_registered", sa.BigInteger(), nullable=True),
        sa.Column("date_activated", sa.BigInteger(), nullable=True),
        sa.UniqueConstraint("username", name="uq_users_username"),
        sa.UniqueConstraint("registration_key", name="uq_users_registration_key"),
    )
    op.create_table(
        "authentication_tokens",
        _id(),
        sa.Column("token", sa.String(36), nullable=False),
        sa.Column("username", sa.String(255), nullable=False),
        sa.Column("granted", sa.BigInteger(), nullable=False),
        sa.Column("expires", sa.BigInteger(), nullable=False),
        sa.UniqueConstraint("token", name="uq_authentication_tokens_token"),
    )
    op.create_index(
        "ix_authentication_tokens_username", "authentication_tokens", ["username"]
    )

    # Delegation
    op.create_table(
        "third_parties",
        _id(),
        sa.Column("third_party_id", sa.String(36), nullable=False),
        sa.Column("owner", sa.String(255), nullable=False),
        sa.Column("shared_secret", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("redirect_uri", sa.Text(), nullable=False),
        sa.UniqueConstraint("third_party_id", name="uq_third_parties_id"),
    )
    op.create_index("ix_third_parties_owner", "third_parties", ["owner"])

    op.create_table(
        "authorization_codes",
        _id(),
        sa.Column("code", sa.String(36), nullable=False),
        sa.Column("third_party_id", sa.String(36), nullable=False),
        sa.Column("creation_time", sa.BigInteger(), nullable=False),
        sa.Column("expiration_time", sa.BigInteger(), nullable=False),
        sa.Column("scopes", sa.JSON(), nullable=False),
        sa.Column("state", sa.Text(), nullable=True),
        sa.UniqueConstraint("code", name="uq_authorization_codes_code"),
    )
    op.create_index(
        "ix_authorization_codes_third_party_id",
        "authorization_codes",
        ["third_party_id"],
    )

    op.create_table(
        "authorization_code_verifications",
        _id(),
        sa.Column("authorization_code", sa.String(36), nullable=False),
        sa.Column("owner", sa.String(255), nullable=False),
        sa.Column("granted", sa.Boolean(), nullable=False),
        sa.UniqueConstraint(
            "authorization_code", name="uq_authorization_code_verifications_code"
        ),
    )
    op.create_index(
        "ix_authorization_code_verifications_owner",
        "authorization_code_verifications",
        ["owner"],
    )

    op.create_table(
        "authorization_tokens",
        _id(),
        sa.Column("authorization_code", sa.String(36), nullable=False),
        sa.Column("access_token", sa.String(36), nullable=False),
        sa.Column("refresh_token", sa.String(36), nullable=False),
        sa.Column("creation_time", sa.BigInteger(), nullable=False),
        sa.Column("expiration_time", sa.BigInteger(), nullable=False),
        sa.UniqueConstraint("access_token", name="uq_authorization_tokens_access"),
        sa.UniqueConstraint("refresh_token", name="uq_authorization_tokens_refresh"),
    )
    op.create_index(
        "ix_authorization_tokens_authorization_code",
        "authorization_tokens",
        ["authorization_code"],
    )

    # Registry and data
    op.create_table(
        "registry",
        _id(),
        sa.Column("schema_id", sa.String(255), nullable=False),
        sa.Column("schema_version", sa.BigInteger(), nullable=False),
        sa.Column("chunk_size", sa.BigInteger(), nullable=False),
        sa.Column("time_authoritative", sa.Boolean(), nullable=False),
        sa.Column("time_zone_authoritative", sa.Boolean(), nullable=False),
        sa.Column("definition", sa.JSON(), nullable=False),
        sa.UniqueConstraint(
            "schema_id", "schema_version", name="uq_registry_id_version"
        ),
    )

    op.create_table(
        "data",
        _id(),
        sa.Column("owner", sa.String(255), nullable=False),
        sa.Column("schema_id", sa.String(255), nullable=False),
        sa.Column("schema_version", sa.BigInteger(), nullable=False),
        sa.Column("metadata_id", sa.Text(), nullable=True),
        sa.Column("metadata_timestamp", sa.String(64), nullable=True),
        sa.Column("metadata_timestamp_ms", sa.BigInteger(), nullable=True),
        sa.Column("data", sa.JSON(), nullable=False),
    )
    op.create_index(
        "ix_data_owner_schema_time",
        "data",
        ["owner", "schema_id", "schema_version", "metadata_timestamp_ms"],
    )


def downgrade() -> None:
    op.drop_index("ix_data_owner_schema_time", table_name="data")
    op.drop_table("data")
    op.drop_table("registry")
    op.drop_index(
        "ix_authorization_tokens_authorization_code", table_name="authorization_tokens"
    )
    op.drop_table("authorization_tokens")
    op.drop_index(
        "ix_authorization_code_verifications_owner",
        table_name="authorization_code_verifications",
    )
    op.drop_table("authorization_code_verifications")
    op.drop_index(
        "ix_authorization_codes_third_party_id", table_name="authorization_codes"
    )
    op.drop_table("authorization_codes")
    op.drop_index("ix_third_parties_owner", table_name="third_parties")
    op.drop_table("third_parties")
    op.drop_index(
        "ix_authentication_tokens_username", table_name="authentication_tokens"
    )
    op.drop_table("authentication_tokens")
    op.drop_table("users")
