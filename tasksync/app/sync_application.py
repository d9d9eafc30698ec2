"""
Main application class for the task sync client.
"""
import logging
import signal
import sys
import threading
from typing import Optional

from ..config.app_config import AppConfig
from ..database.sync_database import SyncDatabase
from ..store.task_store import TaskStore
from ..sync.sync_service import SyncService
from .task_service import TaskService

logger = logging.getLogger(__name__)


def setup_logging(log_file: Optional[str] = None, level: int = logging.INFO) -> logging.Logger:
    """Configure root logging to stdout and, optionally, a log file."""
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True
    )
    return logging.getLogger("tasksync")


class SyncApplication:
    """
    Application class that wires the local store to the sync engine.

    This class manages the lifecycle of the client including:
    - Opening the local database
    - Building the task store, sync service and task service
    - Running the background sync loop
    - Graceful shutdown handling
    """

    def __init__(self, config: AppConfig):
        """
        Initialize the application.

        Args:
            config: Application configuration
        """
        self.config = config
        self.database: Optional[SyncDatabase] = None
        self.task_store: Optional[TaskStore] = None
        self.sync_service: Optional[SyncService] = None
        self.task_service: Optional[TaskService] = None
        self._shutdown_event = threading.Event()

    def setup_database(self) -> None:
        """Open the local database."""
        logger.info(f"Opening local database: {self.config.database.path}")
        self.database = SyncDatabase(self.config.database.path)
        self.task_store = TaskStore(self.database)

    def setup_sync(self) -> None:
        """Build the sync service and task service."""
        logger.info(f"Remote authority: {self.config.sync.api_base_url}")
        self.sync_service = SyncService(self.database, self.task_store, self.config.sync)
        self.task_service = TaskService(self.task_store, self.sync_service)

    def setup(self) -> 'SyncApplication':
        self.setup_database()
        self.setup_sync()
        return self

    def setup_signal_handlers(self) -> None:
        """Setup signal handlers for graceful shutdown."""
        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

    def _signal_handler(self, sig: int, frame) -> None:
        logger.info("Shutdown signal received. Exiting gracefully...")
        self._shutdown_event.set()

    def run(self) -> None:
        """
        Run the background sync loop until a shutdown signal arrives.
        """
        try:
            if self.sync_service is None:
                self.setup()
            self.setup_signal_handlers()

            if self.config.sync.enable_background_sync:
                self.sync_service.start_background_sync()
                logger.info("Background sync is running. Press Ctrl+C to stop.")
            else:
                logger.info("Background sync disabled; running a single pass")
                self.sync_service.run_sync_pass()
                self._shutdown_event.set()

            self._shutdown_event.wait()
        finally:
            self.shutdown()

    def shutdown(self) -> None:
        """Stop the sync loop and close the database."""
        logger.info("Shutting down application...")
        if self.sync_service is not None:
            self.sync_service.close()
        if self.database is not None:
            self.database.close()
        logger.info("Application shutdown completed")
