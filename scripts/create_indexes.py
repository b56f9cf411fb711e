import asyncio
import logging
import sys

from fixmyroad import db
from fixmyroad.config import load_settings
from fixmyroad.errors import StartupError
from fixmyroad.store import ReportStore


async def main():
    settings = load_settings()
    client, database = await db.connect(settings)
    try:
        await ReportStore(database[settings.collection_name]).ensure_indexes()
    finally:
        db.close(client)
    print(f"Indexes created on {settings.db_name}.{settings.collection_name}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    try:
        asyncio.run(main())
    except StartupError as e:
        print(f"❌ {e}", file=sys.stderr)
        sys.exit(1)
