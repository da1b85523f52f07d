# owns the local sqlite file: where it lives, first-run schema and seed, connections
import asyncio
import os.path
from contextlib import asynccontextmanager
from sqlite3 import Row

import aiosqlite

from utils.config import Settings
from utils.logger import get_logger

_logger = get_logger(__name__)

_HERE = os.path.dirname(os.path.abspath(__file__))

DB_PATH = Settings.db_path
SCHEMA_SCRIPT = os.path.join(_HERE, "schema.sql")
SEED_SCRIPT = os.path.join(_HERE, "seed-data.sql")

# errors that mean the local store is unusable
STORAGE_ERRORS = (aiosqlite.Error, OSError)

_initialized = False
_init_lock = asyncio.Lock()


def use_database(path: str) -> None:
    """Point every later connection at `path`; a new file is initialised on first use."""
    global DB_PATH, _initialized
    if path == DB_PATH:
        return
    _logger.info(f"Local database moved to {path}.")
    DB_PATH = path
    _initialized = False


async def _has_schema(conn: aiosqlite.Connection) -> bool:
    async with conn.execute(
        "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = 'products';"
    ) as cur:
        return await cur.fetchone() is not None


async def _run_script(conn: aiosqlite.Connection, script: str) -> None:
    _logger.info(f"Running {os.path.basename(script)} against {DB_PATH}...")
    with open(script, "r", encoding="utf-8") as f:
        await conn.executescript(f.read())


async def _ensure_initialized(conn: aiosqlite.Connection) -> None:
    global _initialized
    async with _init_lock:
        if _initialized:
            return
        if not await _has_schema(conn):
            await _run_script(conn, SCHEMA_SCRIPT)
            await _run_script(conn, SEED_SCRIPT)
            await conn.commit()
        _initialized = True


@asynccontextmanager
async def connect() -> aiosqlite.Connection:
    """Yield a connection to DB_PATH with foreign keys on, creating and seeding the file if new."""
    directory = os.path.dirname(DB_PATH)
    if directory:
        os.makedirs(directory, exist_ok=True)

    conn = await aiosqlite.connect(DB_PATH)
    try:
        conn.row_factory = Row
        await conn.execute("PRAGMA foreign_keys = ON;")
        if not _initialized:
            await _ensure_initialized(conn)
        yield conn
    finally:
        await conn.close()
