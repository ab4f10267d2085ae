"""
Database schema initialization.

Every collection of the document store is one table holding a JSON body per
row. Lookups on the identifying keys of each collection are served by
expression indexes over ``json_extract``.
"""

import aiosqlite
from bulwark.util.logger import get_logger

logger = get_logger("database_schema")

SCHEMA_VERSION = 1

COLLECTIONS = (
    "guilds",
    "command_caches",
    "users",
    "filters",
    "logs",
    "cases",
    "pactions",
    "webhooks",
    "bug_reports",
)

# (index name, collection, json paths, unique)
_INDEXES = (
    ("idx_guilds_id", "guilds", ("$.id",), True),
    ("idx_users_id", "users", ("$.id",), True),
    ("idx_command_caches_key", "command_caches", ("$.channel", "$.user"), True),
    ("idx_command_caches_expiration", "command_caches", ("$.expiration_timestamp",), False),
    ("idx_filters_guild", "filters", ("$.guild",), True),
    ("idx_logs_guild", "logs", ("$.guild",), False),
    ("idx_cases_guild", "cases", ("$.guild",), False),
    ("idx_pactions_guild", "pactions", ("$.info.guild",), False),
    ("idx_webhooks_guild", "webhooks", ("$.guild",), False),
)


class SchemaManager:
    """Creates the document tables and their indexes."""

    @staticmethod
    async def initialize_schema(db: aiosqlite.Connection) -> None:
        """
        Create all tables and indexes that do not exist yet.

        Args:
            db: Open database connection
        """
        await SchemaManager._create_tables(db)
        await SchemaManager._create_indexes(db)
        await SchemaManager._update_schema_version(db)
        await db.commit()
        logger.info("[SCHEMA] Database schema initialized")

    @staticmethod
    async def _create_tables(db: aiosqlite.Connection) -> None:
        for collection in COLLECTIONS:
            await db.execute(f"""
                CREATE TABLE IF NOT EXISTS {collection} (
                    doc_id INTEGER PRIMARY KEY AUTOINCREMENT,
                    body TEXT NOT NULL CHECK (json_valid(body))
                )
            """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY,
                applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

    @staticmethod
    async def _create_indexes(db: aiosqlite.Connection) -> None:
        for name, collection, paths, unique in _INDEXES:
            columns = ", ".join(f"json_extract(body, '{path}')" for path in paths)
            await db.execute(
                f"CREATE {'UNIQUE ' if unique else ''}INDEX IF NOT EXISTS {name} ON {collection}({columns})"
            )

    @staticmethod
    async def _update_schema_version(db: aiosqlite.Connection) -> None:
        await db.execute(
            "INSERT OR IGNORE INTO schema_version (version) VALUES (?)",
            (SCHEMA_VERSION,),
        )
