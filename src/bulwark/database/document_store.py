"""
Generic document store on top of SQLite.

Each collection is a table of JSON bodies (see ``db_schema``). Queries are a
small Mongo-like dialect compiled to ``json_extract`` comparisons:

    {"id": "123"}                               equality on a dotted path
    {"expiration_timestamp": {"$lt": now}}      $lt / $lte / $gt / $gte / $ne / $in / $exists
    {"$or": [{"a": None}, {"a": {}}]}           alternatives
    {"a": None}                                 missing or null

Updates are field-level operators applied inside one serialised write
transaction, so a targeted update never rewrites fields it does not name:

    {"$set": {"prefix": "!"}}
    {"$unset": {"prefix": ""}}
    {"$addToSet": {"ranks.admins": "42"}}
    {"$pull": {"ranks.admins": "42"}}
"""

from __future__ import annotations

import copy
import json
import re
from pathlib import Path
from typing import Any, Iterable, Mapping

from bulwark.database.db_connection import ConnectionManager
from bulwark.database.db_schema import COLLECTIONS, SchemaManager
from bulwark.util.logger import get_logger

logger = get_logger("document_store")

_SIMPLE_KEY = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_COMPARISONS = {"$lt": "<", "$lte": "<=", "$gt": ">", "$gte": ">="}
_MISSING = object()


def _json(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"))


def json_path(dotted: str) -> str:
    """Convert ``a.b.c`` into a SQLite JSON path, quoting labels that need it."""
    parts = []
    for part in dotted.split("."):
        parts.append(part if _SIMPLE_KEY.match(part) else '"' + part.replace('"', '\\"') + '"')
    return "$." + ".".join(parts)


# ---------------------------------------------------------------------------
# Document helpers
# ---------------------------------------------------------------------------

def get_path(document: Mapping[str, Any], dotted: str, default: Any = None) -> Any:
    """Read a dotted path from a nested mapping."""
    current: Any = document
    for part in dotted.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return default
        current = current[part]
    return current


def set_path(document: dict[str, Any], dotted: str, value: Any) -> None:
    """Write a dotted path, creating intermediate mappings."""
    parts = dotted.split(".")
    current = document
    for part in parts[:-1]:
        child = current.get(part)
        if not isinstance(child, dict):
            child = {}
            current[part] = child
        current = child
    current[parts[-1]] = value


def unset_path(document: dict[str, Any], dotted: str) -> None:
    """Remove a dotted path if present."""
    parts = dotted.split(".")
    current: Any = document
    for part in parts[:-1]:
        current = current.get(part) if isinstance(current, dict) else None
        if current is None:
            return
    if isinstance(current, dict):
        current.pop(parts[-1], None)


def project(document: Mapping[str, Any], fields: Iterable[str] | None) -> dict[str, Any]:
    """Copy of ``document`` limited to ``fields`` (dotted paths allowed)."""
    if fields is None:
        return copy.deepcopy(dict(document))
    result: dict[str, Any] = {}
    for dotted in fields:
        value = get_path(document, dotted, _MISSING)
        if value is not _MISSING:
            set_path(result, dotted, copy.deepcopy(value))
    return result


def apply_update(document: dict[str, Any], update: Mapping[str, Mapping[str, Any]]) -> dict[str, Any]:
    """
    Apply update operators to ``document`` in place and return it.

    Raises:
        ValueError: For unknown operators or a non-list ``$addToSet``/``$pull`` target.
    """
    for operator, changes in update.items():
        if operator == "$set":
            for dotted, value in changes.items():
                set_path(document, dotted, copy.deepcopy(value))
        elif operator == "$unset":
            for dotted in changes:
                unset_path(document, dotted)
        elif operator == "$addToSet":
            for dotted, value in changes.items():
                current = get_path(document, dotted)
                if current is None:
                    current = []
                    set_path(document, dotted, current)
                if not isinstance(current, list):
                    raise ValueError(f"$addToSet target '{dotted}' is not a list")
                items = value["$each"] if isinstance(value, Mapping) and "$each" in value else [value]
                for item in items:
                    if item not in current:
                        current.append(copy.deepcopy(item))
        elif operator == "$pull":
            for dotted, value in changes.items():
                current = get_path(document, dotted)
                if current is None:
                    continue
                if not isinstance(current, list):
                    raise ValueError(f"$pull target '{dotted}' is not a list")
                current[:] = [item for item in current if item != value]
        else:
            raise ValueError(f"Unsupported update operator {operator!r}")
    return document


def _seed_from_query(query: Mapping[str, Any]) -> dict[str, Any]:
    """Build the initial document of an upsert from the query's equality terms."""
    document: dict[str, Any] = {}
    for key, value in query.items():
        if key.startswith("$"):
            continue
        if isinstance(value, Mapping) and any(str(k).startswith("$") for k in value):
            continue
        set_path(document, key, copy.deepcopy(value))
    return document


# ---------------------------------------------------------------------------
# Query compilation
# ---------------------------------------------------------------------------

def compile_query(query: Mapping[str, Any]) -> tuple[str, list[Any]]:
    """Compile a query mapping into a SQL ``WHERE`` clause and its parameters."""
    clauses: list[str] = []
    params: list[Any] = []

    for key, value in query.items():
        if key == "$or":
            alternatives = []
            for sub_query in value:
                sub_sql, sub_params = compile_query(sub_query)
                alternatives.append(f"({sub_sql})")
                params.extend(sub_params)
            clauses.append("(" + (" OR ".join(alternatives) or "0") + ")")
            continue

        column = f"json_extract(body, '{json_path(key)}')"

        if isinstance(value, Mapping) and value and all(str(k).startswith("$") for k in value):
            for operator, operand in value.items():
                if operator in _COMPARISONS:
                    clauses.append(f"{column} {_COMPARISONS[operator]} ?")
                    params.append(operand)
                elif operator == "$ne":
                    clauses.append(f"({column} IS NULL OR {column} != ?)")
                    params.append(operand)
                elif operator == "$in":
                    operands = list(operand)
                    if not operands:
                        clauses.append("0")
                        continue
                    clauses.append(f"{column} IN ({', '.join('?' for _ in operands)})")
                    params.extend(operands)
                elif operator == "$exists":
                    clauses.append(f"{column} IS {'NOT ' if operand else ''}NULL")
                else:
                    raise ValueError(f"Unsupported query operator {operator!r}")
        elif value is None:
            clauses.append(f"{column} IS NULL")
        elif isinstance(value, (Mapping, list)):
            clauses.append(f"{column} = ?")
            params.append(_json(value))
        else:
            clauses.append(f"{column} = ?")
            params.append(value)

    return (" AND ".join(clauses) or "1"), params


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

class DocumentCollection:
    """One named collection of JSON documents."""

    def __init__(self, connection: ConnectionManager, name: str) -> None:
        if name not in COLLECTIONS:
            raise ValueError(f"Unknown collection {name!r}")
        self._connection = connection
        self.name = name

    async def find_one(self, query: Mapping[str, Any], fields: Iterable[str] | None = None) -> dict[str, Any] | None:
        """Return the first matching document (projected to ``fields``) or None."""
        where, params = compile_query(query)
        async with self._connection.read() as conn:
            cursor = await conn.execute(f"SELECT body FROM {self.name} WHERE {where} LIMIT 1", params)
            row = await cursor.fetchone()
            await cursor.close()
        if row is None:
            return None
        return project(json.loads(row["body"]), fields)

    async def find(
        self,
        query: Mapping[str, Any] | None = None,
        fields: Iterable[str] | None = None,
    ) -> list[dict[str, Any]]:
        """Return every matching document, projected to ``fields``."""
        where, params = compile_query(query or {})
        async with self._connection.read() as conn:
            cursor = await conn.execute(f"SELECT body FROM {self.name} WHERE {where} ORDER BY doc_id", params)
            rows = await cursor.fetchall()
            await cursor.close()
        field_list = list(fields) if fields is not None else None
        return [project(json.loads(row["body"]), field_list) for row in rows]

    async def count(self, query: Mapping[str, Any] | None = None) -> int:
        where, params = compile_query(query or {})
        async with self._connection.read() as conn:
            cursor = await conn.execute(f"SELECT COUNT(*) FROM {self.name} WHERE {where}", params)
            row = await cursor.fetchone()
            await cursor.close()
        return int(row[0])

    async def insert_one(self, document: Mapping[str, Any]) -> int:
        """
        Insert a document.

        Returns:
            The ``doc_id`` of the new row.

        Raises:
            sqlite3.IntegrityError: If it collides with a unique key of the collection.
        """
        async with self._connection.transaction() as conn:
            cursor = await conn.execute(f"INSERT INTO {self.name} (body) VALUES (?)", (_json(document),))
            doc_id = cursor.lastrowid
            await cursor.close()
        return doc_id

    async def update_one(
        self,
        query: Mapping[str, Any],
        update: Mapping[str, Mapping[str, Any]],
        upsert: bool = False,
    ) -> bool:
        """
        Apply update operators to the first matching document.

        Args:
            query: Selector of the document.
            update: Operators to apply (``$set``, ``$unset``, ``$addToSet``, ``$pull``).
            upsert: Insert a document seeded from the query when nothing matches.

        Returns:
            True when a document was updated or inserted.
        """
        where, params = compile_query(query)
        async with self._connection.transaction() as conn:
            cursor = await conn.execute(f"SELECT doc_id, body FROM {self.name} WHERE {where} LIMIT 1", params)
            row = await cursor.fetchone()
            await cursor.close()

            if row is None:
                if not upsert:
                    return False
                document = apply_update(_seed_from_query(query), update)
                await conn.execute(f"INSERT INTO {self.name} (body) VALUES (?)", (_json(document),))
                return True

            document = apply_update(json.loads(row["body"]), update)
            await conn.execute(
                f"UPDATE {self.name} SET body = ? WHERE doc_id = ?",
                (_json(document), row["doc_id"]),
            )
            return True

    async def update_many(self, query: Mapping[str, Any], update: Mapping[str, Mapping[str, Any]]) -> int:
        """Apply update operators to every matching document and return how many changed."""
        where, params = compile_query(query)
        async with self._connection.transaction() as conn:
            cursor = await conn.execute(f"SELECT doc_id, body FROM {self.name} WHERE {where}", params)
            rows = await cursor.fetchall()
            await cursor.close()
            for row in rows:
                document = apply_update(json.loads(row["body"]), update)
                await conn.execute(
                    f"UPDATE {self.name} SET body = ? WHERE doc_id = ?",
                    (_json(document), row["doc_id"]),
                )
        return len(rows)

    async def delete_one(self, query: Mapping[str, Any]) -> int:
        """Delete the first matching document. Returns 1 if one was deleted, else 0."""
        where, params = compile_query(query)
        async with self._connection.transaction() as conn:
            cursor = await conn.execute(
                f"DELETE FROM {self.name} WHERE doc_id IN (SELECT doc_id FROM {self.name} WHERE {where} LIMIT 1)",
                params,
            )
            deleted = cursor.rowcount
            await cursor.close()
        return max(deleted, 0)

    async def delete_many(self, query: Mapping[str, Any]) -> int:
        """Delete every matching document and return how many were removed."""
        where, params = compile_query(query)
        async with self._connection.transaction() as conn:
            cursor = await conn.execute(f"DELETE FROM {self.name} WHERE {where}", params)
            deleted = cursor.rowcount
            await cursor.close()
        return max(deleted, 0)


class DocumentStore:
    """
    Entry point of the persistence layer.

    Owns the connection manager and hands out :class:`DocumentCollection`
    objects by name.
    """

    def __init__(self, connection: ConnectionManager | None = None) -> None:
        self.connection = connection or ConnectionManager()
        self._collections: dict[str, DocumentCollection] = {}

    async def initialize(self, path: Path) -> None:
        """Open the database file and create the schema."""
        await self.connection.open(path)
        await SchemaManager.initialize_schema(self.connection.connection)
        logger.info("[DOCUMENT STORE] Ready (%d collections)", len(COLLECTIONS))

    async def close(self) -> None:
        await self.connection.close()

    def collection(self, name: str) -> DocumentCollection:
        collection = self._collections.get(name)
        if collection is None:
            collection = DocumentCollection(self.connection, name)
            self._collections[name] = collection
        return collection

    @property
    def guilds(self) -> DocumentCollection:
        return self.collection("guilds")

    @property
    def command_caches(self) -> DocumentCollection:
        return self.collection("command_caches")

    @property
    def users(self) -> DocumentCollection:
        return self.collection("users")
