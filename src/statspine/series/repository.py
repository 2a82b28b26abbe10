"""Data-store access for saved series and their data points."""

from __future__ import annotations

import sqlite3

from statspine.core.connection import transaction
from statspine.core.errors import DataStoreError
from statspine.core.repository import BaseRepository
from statspine.series.models import Series, SeriesDataPoint, User


class SeriesRepository(BaseRepository):
    """Series definitions, owners and the ``series_data`` table."""

    def due_series(self, epoch_day: int) -> list[Series]:
        """Series whose schedule fires on *epoch_day*.

        A series fires when ``(epoch_day + id) % frequency == 0``: every
        ``frequency`` days, with the phase set by its id so series sharing
        a frequency are spread over different days.
        """
        rows = self.query(
            """
            SELECT id, name, query, frequency, creator_id
              FROM series
             WHERE frequency != 0
               AND ((? + id) % frequency) = 0
             ORDER BY id
            """,
            (epoch_day,),
        )
        return [
            Series(
                id=row["id"],
                name=row["name"],
                query=row["query"],
                frequency=row["frequency"],
                owner_id=row["creator_id"],
            )
            for row in rows
        ]

    def user(self, user_id: int) -> User | None:
        row = self.query_one("SELECT id, login FROM users WHERE id = ?", (user_id,))
        if row is None:
            return None
        groups = self.column(
            "SELECT group_name FROM user_groups WHERE user_id = ?", (user_id,)
        )
        return User(id=row["id"], login=row["login"], groups=frozenset(groups))

    def replace_point(self, point: SeriesDataPoint) -> None:
        """Delete any value for (series, date) and insert *point*, atomically.

        Raises:
            DataStoreError: The statement failed; nothing was changed.
        """
        try:
            with transaction(self.conn):
                self.execute(
                    "DELETE FROM series_data WHERE series_id = ? AND series_date = ?",
                    (point.series_id, point.date),
                )
                self.execute(
                    "INSERT INTO series_data (series_id, series_date, series_value)"
                    " VALUES (?, ?, ?)",
                    (point.series_id, point.date, point.value),
                )
        except sqlite3.Error as exc:
            raise DataStoreError(
                f"Cannot store data point for {point.date}", cause=exc
            ).with_context(series_id=point.series_id)

    def data_points(self, series_id: int) -> list[SeriesDataPoint]:
        rows = self.query(
            "SELECT series_id, series_date, series_value FROM series_data"
            " WHERE series_id = ? ORDER BY series_date",
            (series_id,),
        )
        return [
            SeriesDataPoint(
                series_id=row["series_id"], date=row["series_date"], value=row["series_value"]
            )
            for row in rows
        ]


__all__ = ["SeriesRepository"]
