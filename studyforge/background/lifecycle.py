# studyforge/background/lifecycle.py
"""
Application lifecycle management.

Composition root: builds the adapter, capture queue, generation service and
item store from one configuration, and coordinates startup and shutdown.
"""

import logging

from studyforge.background.signals import SignalHandler, remove_signal_handlers, setup_signal_handlers
from studyforge.boundary.service import GenerationService
from studyforge.capture.queue import PageCaptureQueue
from studyforge.config.loader import resolve_db_path
from studyforge.config.schema import StudyForgeConfig
from studyforge.generation.orchestrator import GenerationOrchestrator
from studyforge.inference.adapter import InferenceAdapter
from studyforge.models.sqlite_store import SQLiteItemStore
from studyforge.models.store import ItemStore

logger = logging.getLogger(__name__)


class AppLifecycle:
    """
    Application lifecycle coordinator.

    Manages:
        - Shared inference adapter (one client per target service)
        - Page capture queue
        - Generation service with one orchestrator per worker
        - Item store initialization and close
        - Signal handler registration
    """

    def __init__(
        self,
        config: StudyForgeConfig | None = None,
        store: ItemStore | None = None,
        adapter: InferenceAdapter | None = None,
    ) -> None:
        """
        Initialize the lifecycle manager.

        Args:
            config: Root configuration (defaults if None)
            store: Item store (SQLite at the configured path if None)
            adapter: Inference adapter (built from config if None)
        """
        self.config = config or StudyForgeConfig()
        gen = self.config.generation
        self._adapter = adapter or InferenceAdapter(
            extraction=self.config.extraction,
            temperature=gen.temperature,
            retry_attempts=gen.retry_attempts,
            retry_wait_min=gen.retry_wait_min,
        )
        self._store = store or SQLiteItemStore(resolve_db_path(self.config))
        self._queue: PageCaptureQueue | None = None
        self._service = GenerationService(self.create_orchestrator)
        self._signals_installed = False
        logger.info(f"Created AppLifecycle (provider={self.config.service.provider})")

    @property
    def adapter(self) -> InferenceAdapter:
        return self._adapter

    @property
    def store(self) -> ItemStore:
        return self._store

    @property
    def service(self) -> GenerationService:
        return self._service

    @property
    def queue(self) -> PageCaptureQueue:
        """Capture queue, created on first use (it needs a running loop)."""
        if self._queue is None:
            self._queue = PageCaptureQueue(self._adapter, self.config.capture)
        return self._queue

    def create_orchestrator(self) -> GenerationOrchestrator:
        return GenerationOrchestrator(self._adapter, self.config.generation)

    async def startup(self, on_signal: SignalHandler | None = None) -> None:
        """
        Start the application.

        Steps:
            1. Initialize the item store schema
            2. Register signal handlers (default handler shuts everything down)

        Args:
            on_signal: Async handler for SIGINT/SIGTERM, or None for shutdown
        """
        logger.info("Starting application lifecycle...")
        initialize = getattr(self._store, "initialize", None)
        if initialize is not None:
            await initialize()

        setup_signal_handlers(on_signal or self._shutdown_on_signal)
        self._signals_installed = True
        logger.info("Application lifecycle started")

    async def _shutdown_on_signal(self, sig_name: str) -> None:
        logger.info(f"Received {sig_name}, shutting down gracefully...")
        await self.shutdown()

    async def shutdown(self) -> None:
        """
        Shut down gracefully.

        Steps:
            1. Terminate active generations
            2. Close the capture queue (cancels backoffs and in-flight analysis)
            3. Close the store (WAL checkpoint)
        """
        logger.info("Shutting down application lifecycle...")
        await self._service.shutdown()
        if self._queue is not None:
            await self._queue.close()
        await self._store.close()
        if self._signals_installed:
            remove_signal_handlers()
            self._signals_installed = False
        logger.info("Application lifecycle shutdown complete")
