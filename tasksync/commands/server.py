"""
Server command - Serve a SQLite task list over HTTP.
"""
import logging

import uvicorn

from tasksync.__main__ import Command
from tasksync.config import BackendKind, build_storage, get_settings, load_config, setup_logging
from tasksync.exceptions import ValidationError

logger = logging.getLogger(__name__)


class ServerCommand(Command):
    """Serve the configured SQLite backend over HTTP."""

    @classmethod
    def add_arguments(cls, parser):
        settings = get_settings()
        parser.add_argument(
            "--config",
            dest="config_path",
            default=None,
            help="Config file (default: TASKSYNC_CONFIG_PATH or $XDG_CONFIG_HOME/tasksync/config.toml)"
        )
        parser.add_argument(
            "--host",
            default=settings.server_host,
            help=f"Host to bind to (default: {settings.server_host})"
        )
        parser.add_argument(
            "--port",
            type=int,
            default=settings.server_port,
            help=f"Port to bind to (default: {settings.server_port})"
        )
        parser.add_argument(
            "--log-level",
            default=settings.log_level.lower(),
            choices=["debug", "info", "warning", "error", "critical"],
            help="Log level (default: WARNING or TASKSYNC_LOG_LEVEL)"
        )

    def init(self):
        super().init()
        setup_logging(self.args.log_level)

        from tasksync.api.app import create_app

        config = load_config(self.args.config_path)
        if config.backend.kind != BackendKind.SQLITE:
            raise ValidationError(
                "The server can only expose a sqlite backend",
                field="kind",
                value=config.backend.kind.value,
            )
        self.app = create_app(build_storage(config.backend))
        logger.info(f"Server initialized on {self.args.host}:{self.args.port}")

    def run(self) -> int:
        config = uvicorn.Config(
            self.app,
            host=self.args.host,
            port=self.args.port,
            log_level=self.args.log_level,
            access_log=True,
            timeout_keep_alive=30,
            timeout_graceful_shutdown=10,
        )
        server = uvicorn.Server(config)

        try:
            logger.info(f"Starting server on {self.args.host}:{self.args.port}")
            server.run()
            return 0
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt, shutting down...")
            return 130

    def cleanup(self):
        super().cleanup()
        logger.info("Server stopped")
