# manages connection to the client's local mirror db, internal to db package
import asyncio
import os.path
from contextlib import asynccontextmanager
from pathlib import Path
from sqlite3 import Row

import aiosqlite

from utils.config import settings
from utils.logger import get_logger

_logger = get_logger(__name__)

DB_PATH = settings.db_path
DB_INIT_SCRIPTS = [
    Path(__file__).with_name("client-tables.sql"),
]

_initialized = False
_init_lock = asyncio.Lock()


async def _init_db(conn: aiosqlite.Connection) -> None:
    for script in DB_INIT_SCRIPTS:
        if not os.path.exists(script) or os.path.getsize(script) == 0:
            continue
        _logger.info(f"Initializing local database with script {script.name}...")
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
    """Async context manager yielding a connection to the local mirror.

    Creates the mirror tables on first use. The connection is closed on exit,
    so every operation owns its own handle.
    """
    global _initialized
    db_dir = os.path.dirname(DB_PATH)
    if db_dir:
        os.makedirs(db_dir, exist_ok=True)
    conn = await aiosqlite.connect(DB_PATH)
    conn.row_factory = Row

    if not _initialized:
        async with _init_lock:
            if not _initialized:
                if not await _table_exists(conn, "delta_tokens"):
                    await _init_db(conn)
                _initialized = True
    try:
        yield conn
    finally:
        await conn.close()
