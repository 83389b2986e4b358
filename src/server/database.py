# manages the server's sqlite connection, schema and reset
import asyncio
import os.path
from contextlib import asynccontextmanager
from pathlib import Path
from sqlite3 import Row

import aiosqlite

from server.config import settings
from utils.logger import get_logger

_logger = get_logger(__name__)

DB_PATH = settings.db_path
DB_INIT_SCRIPTS = [
    Path(__file__).with_name("tables.sql"),
]
DROP_ORDER = ["orders", "customers", "users"]

_initialized = False
_init_lock = asyncio.Lock()


async def _init_db(conn: aiosqlite.Connection) -> None:
    for script in DB_INIT_SCRIPTS:
        if not os.path.exists(script) or os.path.getsize(script) == 0:
            continue
        _logger.info(f"Initializing server database with script {script.name}...")
        await conn.executescript(script.read_text())
    await conn.commit()


async def _table_exists(conn: aiosqlite.Connection, table_name: str) -> bool:
    cur = await conn.execute(
        """
        SELECT name
        FROM sqlite_master
        WHERE type = 'table'
          AND name = ?;
        """,
        (table_name,),
    )
    row = await cur.fetchone()
    await cur.close()
    return row is not None


@asynccontextmanager
async def connect() -> aiosqlite.Connection:
    """Async context manager yielding a server connection with FK enabled.

    Creates the schema on first use.
    """
    global _initialized
    db_dir = os.path.dirname(DB_PATH)
    if db_dir:
        os.makedirs(db_dir, exist_ok=True)
    conn = await aiosqlite.connect(DB_PATH)
    conn.row_factory = Row
    await conn.execute("PRAGMA foreign_keys = ON;")

    if not _initialized:
        async with _init_lock:
            if not _initialized:
                if not await _table_exists(conn, "orders"):
                    await _init_db(conn)
                _initialized = True
    try:
        yield conn
    finally:
        await conn.close()


async def recreate(conn: aiosqlite.Connection) -> None:
    """Drop every table and build the schema again (empty)."""
    _logger.warning("Dropping and recreating the server database.")
    for table in DROP_ORDER:
        await conn.execute(f"DROP TABLE IF EXISTS {table};")
    await _init_db(conn)
