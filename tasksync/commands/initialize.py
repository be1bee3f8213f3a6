"""
Initialize command - Create or validate the SQLite task database.
"""
import logging
import os
import sqlite3

from tasksync.__main__ import Command
from tasksync.config import BackendKind, load_config, setup_logging
from tasksync.db_adapter import resolve_sqlite_path
from tasksync.storage.schema import TASK_COLUMNS
from tasksync.storage.sqlite_storage import SQLiteStorage

logger = logging.getLogger(__name__)

REQUIRED_TABLES = {"tasks", "task_to_tag", "deleted_tasks"}


class InitializeCommand(Command):
    """Create the task database schema, or validate an existing one."""

    @classmethod
    def get_name(cls) -> str:
        return "init"

    @classmethod
    def add_arguments(cls, parser):
        parser.add_argument(
            "--database-path",
            default=None,
            help="Database file or file:// URI (default: the sqlite backend in the config file)"
        )
        parser.add_argument(
            "--config",
            dest="config_path",
            default=None,
            help="Config file used when --database-path is not given"
        )
        parser.add_argument(
            "--validate-only",
            action="store_true",
            help="Only validate the existing schema, don't create anything"
        )

    def init(self):
        super().init()
        setup_logging()
        if self.args.database_path:
            self.db_path = os.path.abspath(resolve_sqlite_path(self.args.database_path))
        else:
            backend = load_config(self.args.config_path).backend
            if backend.kind != BackendKind.SQLITE:
                logger.error("The configured backend is not sqlite, pass --database-path")
                self.db_path = None
                return
            self.db_path = resolve_sqlite_path(backend.uri, require_scheme=True)
        logger.info(f"Database path: {self.db_path}")

    def run(self) -> int:
        if self.db_path is None:
            return 1
        if self.args.validate_only:
            if not os.path.exists(self.db_path):
                logger.error(f"Database does not exist: {self.db_path}")
                return 1
        else:
            SQLiteStorage(self.db_path)
            logger.info("Schema ensured")
        return self._validate_schema()

    def _validate_schema(self) -> int:
        conn = sqlite3.connect(self.db_path)
        try:
            cursor = conn.cursor()
            cursor.execute("SELECT name FROM sqlite_master WHERE type='table'")
            tables = {row[0] for row in cursor.fetchall()}
            missing_tables = REQUIRED_TABLES - tables
            if missing_tables:
                logger.error(f"Missing tables: {', '.join(sorted(missing_tables))}")
                return 1

            cursor.execute("PRAGMA table_info(tasks)")
            columns = {row[1] for row in cursor.fetchall()}
            missing_columns = set(TASK_COLUMNS) - columns
            if missing_columns:
                logger.error(f"Missing columns in tasks table: {', '.join(sorted(missing_columns))}")
                return 1
        finally:
            conn.close()

        print(f"Database OK: {self.db_path}")
        return 0
