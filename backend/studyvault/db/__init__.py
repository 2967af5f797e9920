from pathlib import Path

from studyvault.db.sqlite import init_sqlite


async def init_all_databases(data_dir: Path, sqlite_filename: str | None = None) -> None:
    data_dir.mkdir(parents=True, exist_ok=True)
    await init_sqlite(data_dir, sqlite_filename)
