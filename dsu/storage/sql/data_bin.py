"""SQL storage for data points.

Payloads live in a JSON column, so column projection is applied after
loading, with the same rules the document store applies natively.
"""

from collections.abc import Sequence

from sqlalchemy import func, select

from dsu.core.errors import ValidationError
from dsu.domain import ColumnList, Data, MetaData
from dsu.domain.data import parse_timestamp
from dsu.storage.base import DataBin
from dsu.storage.sql.database import SqlBin
from dsu.storage.sql.models import DataRow


def _to_row(point: Data) -> DataRow:
    meta = point.meta_data
    return DataRow(
        owner=point.owner,
        schema_id=point.schema_id,
        schema_version=point.schema_version,
        metadata_id=None if meta is None else meta.id,
        metadata_timestamp=(
            None if meta is None or meta.timestamp is None
            else meta.timestamp.isoformat()
        ),
        metadata_timestamp_ms=None if meta is None else meta.timestamp_millis,
        data=point.data,
    )


def _to_data(row: DataRow, columns: ColumnList | None) -> Data:
    meta = None
    if row.metadata_id is not None or row.metadata_timestamp is not None:
        meta = MetaData(
            id=row.metadata_id,
            timestamp=(
                None if row.metadata_timestamp is None
                else parse_timestamp(row.metadata_timestamp)
            ),
        )
    payload = row.data if not columns else columns.project(row.data)
    return Data(
        owner=row.owner,
        schema_id=row.schema_id,
        schema_version=row.schema_version,
        meta_data=meta,
        data=payload,
    )


class SqlDataBin(SqlBin, DataBin):
    """Data points in the ``data`` table."""

    async def store_data(self, data: Sequence[Data]) -> None:
        if data is None:
            raise ValidationError("The data list is null.")
        if any(point is None for point in data):
            raise ValidationError("A data point is null.")
        if not data:
            return
        await self._insert(
            [_to_row(point) for point in data],
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
        criteria = (
            DataRow.owner == owner,
            DataRow.schema_id == schema_id,
            DataRow.schema_version == version,
        )
        total = await self._scalar(
            select(func.count()).select_from(DataRow).where(*criteria)
        )
        rows = await self._fetch_all(
            select(DataRow)
            .where(*criteria)
            .order_by(
                DataRow.metadata_timestamp_ms.desc().nulls_last(),
                DataRow.id.desc(),
            )
            .offset(num_to_skip)
            .limit(num_to_return)
        )
        return [_to_data(row, columns) for row in rows], total
