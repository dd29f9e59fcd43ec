"""Apply one (or every) SQL file from backend/migrations.

Usage: python scripts/apply_migration.py [migration_filename]
"""

import asyncio
import logging
import sys
from pathlib import Path

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
	sys.path.insert(0, str(BACKEND_ROOT))

from app.infra import postgres  # noqa: E402

MIGRATIONS_DIR = BACKEND_ROOT / "migrations"

logger = logging.getLogger("connect.migrations")


async def apply_migrations(filenames: list[str]) -> None:
	pool = await postgres.get_pool()
	try:
		async with pool.acquire() as conn:
			for filename in filenames:
				path = MIGRATIONS_DIR / filename
				if not path.exists():
					raise FileNotFoundError(f"Migration file not found: {path}")
				logger.info("applying migration %s", filename)
				async with conn.transaction():
					await conn.execute(path.read_text(encoding="utf-8"))
	finally:
		await postgres.close_pool()


def main(argv: list[str]) -> None:
	logging.basicConfig(level=logging.INFO)
	if argv:
		filenames = argv
	else:
		filenames = sorted(path.name for path in MIGRATIONS_DIR.glob("*.sql"))
	asyncio.run(apply_migrations(filenames))


if __name__ == "__main__":
	main(sys.argv[1:])
