"""Document storage for data points.

Column projection is pushed down to the server as an inclusion
projection over ``data.<path>`` fields.
"""

from collections.abc import Sequence
from typing import Any

from pymongo import DESCENDING

from dsu.core.errors import ValidationError
from dsu.domain import ColumnList, Data, MetaData
from dsu.domain.data import parse_timestamp
from dsu.storage.base import DataBin
from dsu.storage.mongo.database import MongoBin

# Fields every projected document keeps
_ENVELOPE_FIELDS = ("owner", "schema_id", "schema_version", "metadata")


def _to_document(point: Data) -> dict[str, Any]:
    document: dict[str, Any] = {
        "owner": point.owner,
        "schema_id": point.schema_id,
        "schema_version": point.schema_version,
        "metadata_timestamp_ms": (
            None if point.meta_data is None else point.meta_data.timestamp_millis
        ),
        "data": point.data,
    }
    if point.meta_data is not None:
        document["metadata"] = point.meta_data.to_json()
    return document


def _to_data(document: dict[str, Any]) -> Data:
    meta = None
    raw_meta = document.get("metadata")
    if raw_meta is not None:
        raw_timestamp = raw_meta.get("timestamp")
        meta = MetaData(
            id=raw_meta.get("id"),
            timestamp=None if raw_timestamp is None else parse_timestamp(raw_timestamp),
        )
    return Data(
        owner=document["owner"],
        schema_id=document["schema_id"],
        schema_version=document["schema_version"],
        meta_data=meta,
        data=document.get("data", {}),
    )


def _projection(columns: ColumnList | None) -> dict[str, int]:
    if not columns:
        return {"_id": 0, "metadata_timestamp_ms": 0}
    projection = {"_id": 0}
    projection.update({field: 1 for field in _ENVELOPE_FIELDS})
    projection.update({f"data.{path}": 1 for path in columns.to_list()})
    return projection


class MongoDataBin(MongoBin, DataBin):
    """Data points in the ``data`` collection."""

    collection_name = "data"

    async def store_data(self, data: Sequence[Data]) -> None:
        if data is None:
            raise ValidationError("The data list is null.")
        if any(point is None for point in data):
            raise ValidationError("A data point is null.")
        if not data:
            return
        await self._insert(
            [_to_document(point) for point in data],
            "DUPLICATE_DATA",
            "The data could not be stored.",
        )

    async def get_data(
        self,
        owner: str,
        schema_id: str,
        version: int,
        columns: ColumnList | None,
        num_to_skip: int,
        num_to_return: int,
    ) -> tuple[list[Data], int]:
        query = {"owner": owner, "schema_id": schema_id, "schema_version": version}
        total = await self._collection.count_documents(query)
        cursor = (
            self._collection.find(query, _projection(columns))
            .sort([("metadata_timestamp_ms", DESCENDING), ("_id", DESCENDING)])
            .skip(num_to_skip)
            .limit(num_to_return)
        )
        documents = await cursor.to_list(length=num_to_return)
        return [_to_data(document) for document in documents], total
