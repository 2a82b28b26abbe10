"""Reference saved-query executor.

Saved series store their query as a URL query string, for example::

    product=Widgets&status=NEW&status=ASSIGNED&assignee=alice

Recognised parameters are ``product``, ``component``, ``status``,
``resolution`` and ``assignee``; repeated keys are OR-ed, different keys
AND-ed. A query that names a product, component or assignee that no
longer exists does not compile for anybody, and raises
:class:`~statspine.core.errors.QueryCompilationError`.

Entities carrying a ``security_group`` are only visible to members of
that group, so the same definition can match different entities for
different owners.
"""

from __future__ import annotations

import sqlite3
from urllib.parse import parse_qs

from statspine.core.errors import DataStoreError, QueryCompilationError
from statspine.core.repository import BaseRepository
from statspine.series.models import User

PARAMETERS = frozenset({"product", "component", "status", "resolution", "assignee"})


def _in(column: str, values: list) -> tuple[str, tuple]:
    return f"{column} IN ({', '.join('?' for _ in values)})", tuple(values)


class SavedSearchExecutor(BaseRepository):
    """Compiles query strings to SQL over the reference schema and runs them."""

    def compile(self, definition: str, user: User) -> tuple[str, tuple]:
        """Translate *definition* into ``(sql, params)`` for *user*."""
        try:
            params = parse_qs(definition, strict_parsing=True) if definition.strip() else {}
        except ValueError as exc:
            raise QueryCompilationError(f"Malformed query: {definition!r}", cause=exc)

        unknown = sorted(set(params) - PARAMETERS)
        if unknown:
            raise QueryCompilationError(f"Unknown query parameters: {', '.join(unknown)}")

        clauses = ["(e.security_group IS NULL OR ug.user_id IS NOT NULL)"]
        args: list = [user.id]

        product_ids: list[int] = []
        for name in params.get("product", []):
            product_id = self.scalar("SELECT id FROM products WHERE name = ?", (name,))
            if product_id is None:
                raise QueryCompilationError(f"No such product: {name}")
            product_ids.append(product_id)
        if product_ids:
            clause, values = _in("e.product_id", product_ids)
            clauses.append(clause)
            args.extend(values)

        component_ids: list[int] = []
        for name in params.get("component", []):
            sql = "SELECT id FROM components WHERE name = ?"
            lookup: tuple = (name,)
            if product_ids:
                restrict, values = _in("product_id", product_ids)
                sql += f" AND {restrict}"
                lookup += values
            found = self.column(sql, lookup)
            if not found:
                raise QueryCompilationError(f"No such component: {name}")
            component_ids.extend(found)
        if component_ids:
            clause, values = _in("e.component_id", component_ids)
            clauses.append(clause)
            args.extend(values)

        assignee_ids: list[int] = []
        for login in params.get("assignee", []):
            user_id = self.scalar("SELECT id FROM users WHERE login = ?", (login,))
            if user_id is None:
                raise QueryCompilationError(f"No such user: {login}")
            assignee_ids.append(user_id)
        if assignee_ids:
            clause, values = _in("e.assignee_id", assignee_ids)
            clauses.append(clause)
            args.extend(values)

        for key in ("status", "resolution"):
            if key in params:
                clause, values = _in(f"e.{key}", params[key])
                clauses.append(clause)
                args.extend(values)

        sql = (
            "SELECT e.id FROM entities e"
            " LEFT JOIN user_groups ug"
            " ON ug.group_name = e.security_group AND ug.user_id = ?"
            f" WHERE {' AND '.join(clauses)}"
        )
        return sql, tuple(args)

    def execute(self, definition: str, user: User) -> list[int]:
        try:
            sql, params = self.compile(definition, user)
            return self.column(sql, params)
        except sqlite3.Error as exc:
            raise DataStoreError(f"Saved query failed: {definition!r}", cause=exc)


__all__ = ["SavedSearchExecutor", "PARAMETERS"]
