from pathlib import Path
import logging
import os
import threading
import time
import traceback

from alembic import command
from alembic.config import Config
from alembic.script import ScriptDirectory

from app.db import BuildAdminConnectionUrl

logger = logging.getLogger("app.migrations")

BACKEND_DIR = Path(__file__).resolve().parents[2]


def _read_int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def MigrationsEnabledOnStartup() -> bool:
    return os.getenv("RUN_MIGRATIONS_ON_STARTUP", "").strip().lower() in {"1", "true", "yes", "on"}


def BuildAlembicConfig() -> Config:
    config_path = BACKEND_DIR / "alembic.ini"
    if not config_path.exists():
        raise RuntimeError("Missing alembic.ini for migrations")

    alembic_cfg = Config(str(config_path))
    # configparser treats % as interpolation; url-encoded passwords contain it
    alembic_cfg.set_main_option("sqlalchemy.url", BuildAdminConnectionUrl().replace("%", "%%"))
    alembic_cfg.set_main_option("script_location", str(BACKEND_DIR / "alembic"))
    return alembic_cfg


def HeadRevision(alembic_cfg: Config) -> str | None:
    return ScriptDirectory.from_config(alembic_cfg).get_current_head()


def RunMigrations(revision: str = "head") -> None:
    """Upgrade the push schema on a worker thread, logging progress until done or timed out."""
    alembic_cfg = BuildAlembicConfig()
    timeout_seconds = _read_int_env("MIGRATIONS_TIMEOUT_SECONDS", 600)
    progress_seconds = max(1, _read_int_env("MIGRATIONS_PROGRESS_LOG_SECONDS", 20))

    logger.info(
        "upgrading schema to %s (head=%s, timeout=%ss)",
        revision,
        HeadRevision(alembic_cfg),
        timeout_seconds,
    )

    failures: list[str] = []

    def _upgrade() -> None:
        try:
            command.upgrade(alembic_cfg, revision)
        except Exception:  # noqa: BLE001
            failures.append(traceback.format_exc())

    worker = threading.Thread(target=_upgrade, name="alembic-upgrade", daemon=True)
    started = time.monotonic()
    worker.start()

    while True:
        worker.join(timeout=progress_seconds)
        elapsed = int(time.monotonic() - started)
        if not worker.is_alive():
            break
        if timeout_seconds > 0 and elapsed >= timeout_seconds:
            logger.error("schema upgrade timed out after %ss", elapsed)
            raise TimeoutError(f"migrations timed out after {elapsed}s")
        logger.info("schema upgrade still running (%ss elapsed)", elapsed)

    if failures:
        logger.error("schema upgrade failed:\n%s", failures[0])
        raise RuntimeError("migrations failed")

    logger.info("schema upgrade complete in %ss", int(time.monotonic() - started))
