"""Registry seeding from a JSON file of schema documents.

The file holds a JSON array; each element has schema_id, schema_version,
chunk_size, time_authoritative, time_zone_authoritative and schema (the
JSON Schema definition). Entries already in the registry are skipped, so
seeding is safe to run on every startup.
"""

import json
from pathlib import Path

import structlog

from dsu.core.errors import ConflictError, ValidationError
from dsu.domain.schema import schema_from_json
from dsu.storage import Registry

logger = structlog.get_logger()


def default_seed_path() -> Path:
    """Path of the schema file bundled with the package."""
    return Path(__file__).resolve().parent.parent / "data" / "schemas.json"


async def seed_registry(registry: Registry, path: str | Path | None = None) -> int:
    """Load schema documents into the registry.

    Args:
        registry: Registry to populate.
        path: Seed file; defaults to the bundled schemas.

    Returns:
        Number of schemas newly stored.

    Raises:
        ValidationError: If the file is not a JSON array or an entry is invalid.
    """
    seed_path = Path(path) if path else default_seed_path()
    documents = json.loads(seed_path.read_text(encoding="utf-8"))
    if not isinstance(documents, list):
        raise ValidationError(f"The registry seed file {seed_path} must hold a JSON array.")

    stored = 0
    for document in documents:
        schema = schema_from_json(document)
        try:
            await registry.store_schema(schema)
        except ConflictError:
            logger.debug(
                "Schema already registered",
                schema_id=schema.id,
                schema_version=schema.version,
            )
            continue
        stored += 1

    logger.info("Registry seeded", path=str(seed_path), stored=stored)
    return stored
