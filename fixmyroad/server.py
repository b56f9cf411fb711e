import asyncio
import errno
import logging
import socket
import sys
from typing import Optional

import uvicorn
from pymongo.errors import PyMongoError

from fixmyroad import db
from fixmyroad.config import Settings, load_settings
from fixmyroad.errors import StartupError
from fixmyroad.main import create_app
from fixmyroad.store import ReportStore
from fixmyroad.uploads import UploadStorage

logger = logging.getLogger(__name__)

MAX_PORT = 65535
RETRYABLE_BIND_ERRORS = {
    errno.EADDRINUSE: "in use",
    errno.EACCES: "not permitted",
}


def bind_with_fallback(host: str, port: int, max_attempts: Optional[int] = None) -> socket.socket:
    """
    Bind a listening socket on host:port. When the port is taken or not
    permitted, move on to the next one. max_attempts=None keeps going until
    the port range runs out.
    """
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    attempts = 0
    while True:
        if port > MAX_PORT:
            raise StartupError(f"No bindable port left (tried up to {MAX_PORT})")
        if max_attempts is not None and attempts >= max_attempts:
            raise StartupError(f"Gave up binding after {attempts} attempts (last port {port - 1})")
        attempts += 1

        sock = socket.socket(family, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((host, port))
            sock.listen(2048)
        except OSError as e:
            sock.close()
            reason = RETRYABLE_BIND_ERRORS.get(e.errno)
            if reason is None:
                raise StartupError(f"Could not bind {host}:{port}: {e}") from e
            logger.warning("Port %d %s, trying %d...", port, reason, port + 1)
            port += 1
            continue

        sock.set_inheritable(True)
        return sock


async def serve(settings: Settings) -> None:
    UploadStorage(settings.uploads_dir, settings.max_upload_bytes).ensure_dir()

    if not settings.mongodb_uri:
        raise StartupError("Missing MONGODB_URI in environment or .env")

    client, database = await db.connect(settings)
    try:
        store = ReportStore(database[settings.collection_name])
        try:
            await store.ensure_indexes()
        except PyMongoError as e:
            raise StartupError(f"Could not create indexes: {e}") from e

        app = create_app(settings, store=store)
        sock = bind_with_fallback(settings.host, settings.port)
        logger.info("Server running on http://localhost:%d", sock.getsockname()[1])

        config = uvicorn.Config(app, log_level=settings.log_level.lower())
        try:
            await uvicorn.Server(config).serve(sockets=[sock])
        finally:
            sock.close()
    finally:
        db.close(client)


def main() -> None:
    settings = load_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    try:
        asyncio.run(serve(settings))
    except StartupError as e:
        logger.error("Startup failed: %s", e)
        sys.exit(1)
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
