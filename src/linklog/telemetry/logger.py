"""TelemetryLogger: the pipeline orchestrator.

Flow of one ``log()`` call (synchronous, never raises):

    level gate -> EntryFactory -> ConsoleSink   (if enabled)
                               -> DurableStore  (if enabled)
                               -> RingBuffer    (if remote is enabled)

A flush drains the ring buffer and hands the batch to RemoteDelivery.
Flushes run on the event loop bound by ``start()``: periodically every
``flush_interval`` seconds, and as soon as a ``log()`` call fills the
buffer. An asyncio.Lock keeps at most one flush in flight. A batch that
fails delivery is put back in the ring buffer in one step.

Uncaught exceptions (``sys.excepthook``, ``threading.excepthook``) and
unhandled asynchronous exceptions (the loop's exception handler) are
logged at ERROR. The hooks chain to the previous handlers and are
restored by ``destroy()``. One logger per process is expected; a second
instance chains its hooks on top of the first and a warning is written to
the system logger.

Example:
    async with TelemetryLogger(LoggerConfig(enable_remote=True,
                                            remote_endpoint="https://logs.example.com/ingest")) as logger:
        logger.info("Short URL created", "URLForm", {"shortcode": "abc123"})
"""

from __future__ import annotations

__all__ = ["TelemetryLogger"]

import asyncio
import json
import sys
import threading
import traceback
from collections.abc import Awaitable, Callable, Mapping
from types import TracebackType
from typing import Any, TextIO

import httpx
from pydantic import ValidationError

from linklog.config import LoggerConfig, get_session_path, get_storage_path
from linklog.constants import EMERGENCY_LOG_FILENAME, GLOBAL_ERROR_COMPONENT
from linklog.exceptions import ConfigurationError
from linklog.telemetry.entry_factory import EntryFactory, should_log
from linklog.telemetry.formatters import LogFormatter
from linklog.telemetry.metrics import MetricEventBus
from linklog.telemetry.models.entry import LogEntry, LogFilter, LogLevel
from linklog.telemetry.performance import PerformanceTimer
from linklog.telemetry.ring_buffer import RingBuffer
from linklog.telemetry.session import SessionIdentity
from linklog.telemetry.sinks.console import ConsoleSink
from linklog.telemetry.sinks.remote import RemoteDelivery
from linklog.telemetry.sinks.storage import DurableStore, FileStorageBackend, StorageBackend
from linklog.telemetry.system.system_logger import get_system_logger
from linklog.utils.logging.logging_context import get_current_url

_system_logger = get_system_logger()

_active_instance: TelemetryLogger | None = None

LoopExceptionHandler = Callable[[asyncio.AbstractEventLoop, dict[str, Any]], object]


def _coerce_metadata(metadata: Mapping[str, Any]) -> dict[str, Any]:
    """Reduce metadata to JSON values, stringifying anything else."""
    result: dict[str, Any] = json.loads(json.dumps(dict(metadata), default=str))
    return result


class TelemetryLogger:
    """Composes the pipeline components and owns the flush schedule."""

    def __init__(
        self,
        config: LoggerConfig | None = None,
        *,
        storage_backend: StorageBackend | None = None,
        session: SessionIdentity | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        console_stream: TextIO | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Build every component and install the uncaught-exception hooks.

        Args:
            config: Pipeline configuration (default: LoggerConfig()).
            storage_backend: Durable store backend (default: JSON file at
                the configured storage path).
            session: Session identity (default: recorded at the configured
                session path).
            transport: httpx transport for remote delivery (tests use
                httpx.MockTransport).
            console_stream: Console sink destination (default: stdout/stderr).
            sleep: Awaitable sleep used for delivery backoff.
        """
        global _active_instance

        self._config = config or LoggerConfig()
        self._storage_backend = storage_backend
        self._transport = transport
        self._sleep = sleep

        self._session = session or SessionIdentity(
            get_session_path(self._config),
            user_agent=self._config.user_agent,
            url_provider=lambda: get_current_url() or self._config.app_url,
        )
        self._factory = EntryFactory(
            session_id=lambda: self._session.session_id,
            user_id=lambda: self._config.user_id,
            app_url=lambda: self._config.app_url,
            user_agent=lambda: self._config.user_agent,
        )
        self._store = self._build_store()
        self._buffer = RingBuffer(self._config.buffer_size)
        self._remote = self._build_remote()
        self._console = ConsoleSink(stream=console_stream)
        self.performance = PerformanceTimer(self.log)

        self._loop: asyncio.AbstractEventLoop | None = None
        self._flush_lock = asyncio.Lock()
        self._flush_task: asyncio.Task[None] | None = None
        self._flush_scheduled = False
        self._pending: set[asyncio.Task[int]] = set()
        self._started = False
        self._destroyed = False

        if _active_instance is not None:
            _system_logger.warning(
                {
                    "event": "multiple_logger_instances",
                    "message": "Another TelemetryLogger is active; uncaught-exception hooks will be chained",
                }
            )
        _active_instance = self

        self._excepthook = self._handle_uncaught_exception
        self._threading_excepthook = self._handle_thread_exception
        self._loop_exception_handler: LoopExceptionHandler = self._handle_loop_exception
        self._previous_excepthook = sys.excepthook
        self._previous_threading_excepthook = threading.excepthook
        self._previous_loop_handler: LoopExceptionHandler | None = None
        sys.excepthook = self._excepthook
        threading.excepthook = self._threading_excepthook

    # =========================================================================
    # Component construction
    # =========================================================================

    def _build_store(self) -> DurableStore:
        if self._storage_backend is not None:
            return DurableStore(self._storage_backend, self._config.max_storage_entries)

        storage_path = get_storage_path(self._config)
        return DurableStore(
            FileStorageBackend(storage_path, self._config.storage_quota_bytes),
            self._config.max_storage_entries,
            emergency_log_path=storage_path.parent / EMERGENCY_LOG_FILENAME,
        )

    def _build_remote(self) -> RemoteDelivery:
        return RemoteDelivery(
            self._config.remote_endpoint,
            retry_attempts=self._config.retry_attempts,
            retry_base_delay=self._config.retry_base_delay,
            timeout=self._config.request_timeout,
            user_agent=self._config.user_agent,
            transport=self._transport,
            sleep=self._sleep,
        )

    @property
    def session(self) -> SessionIdentity:
        """The session identity."""
        return self._session

    @property
    def store(self) -> DurableStore:
        """The durable store (replaced when capacity or location changes)."""
        return self._store

    @property
    def buffer(self) -> RingBuffer:
        """The ring buffer staging entries for remote delivery."""
        return self._buffer

    @property
    def remote(self) -> RemoteDelivery:
        """The remote transport (replaced when endpoint or retry settings change)."""
        return self._remote

    # =========================================================================
    # Logging
    # =========================================================================

    def log(
        self,
        level: LogLevel | str,
        message: str,
        component: str | None = None,
        metadata: Mapping[str, Any] | None = None,
        *,
        exc: BaseException | None = None,
        stack: str | None = None,
    ) -> None:
        """Create an entry and fan it out to the enabled sinks.

        Never raises. Levels below the configured threshold are ignored.

        Args:
            level: Entry level (a LogLevel or its name).
            message: Message text.
            component: Emitting component.
            metadata: JSON-serializable context; other values are stringified.
            exc: Exception whose traceback becomes the stack (ERROR/FATAL).
            stack: Preformatted stack (ERROR/FATAL); wins over ``exc``.
        """
        try:
            parsed = LogLevel.parse(level)
        except (ValueError, AttributeError):
            _system_logger.warning({"event": "invalid_log_level", "message": f"Unknown log level: {level!r}"})
            return

        if not should_log(parsed, self._config.level):
            return

        try:
            entry = self._create_entry(parsed, message, component, metadata, exc=exc, stack=stack)
        except Exception as e:
            _system_logger.error(
                {"event": "entry_creation_failed", "message": "Failed to create log entry", "error": str(e)}
            )
            return

        self._dispatch(entry)

    def _create_entry(
        self,
        level: LogLevel,
        message: str,
        component: str | None,
        metadata: Mapping[str, Any] | None,
        *,
        exc: BaseException | None,
        stack: str | None,
    ) -> LogEntry:
        try:
            return self._factory.create(level, message, component, metadata, exc=exc, stack=stack)
        except ValidationError:
            if metadata is None:
                raise
            return self._factory.create(
                level, message, component, _coerce_metadata(metadata), exc=exc, stack=stack
            )

    def _dispatch(self, entry: LogEntry) -> None:
        config = self._config

        if config.enable_console:
            try:
                self._console.emit(entry)
            except Exception as e:
                _system_logger.error(
                    {"event": "console_sink_failed", "message": "Console sink failed", "error": str(e)}
                )

        if config.enable_storage:
            try:
                self._store.store(entry)
            except Exception as e:
                _system_logger.error(
                    {"event": "storage_sink_failed", "message": "Durable store failed", "error": str(e)}
                )

        if config.enable_remote:
            self._buffer.add(entry)
            if self._buffer.is_full():
                self._schedule_flush()

    def debug(self, message: str, component: str | None = None, metadata: Mapping[str, Any] | None = None) -> None:
        self.log(LogLevel.DEBUG, message, component, metadata)

    def info(self, message: str, component: str | None = None, metadata: Mapping[str, Any] | None = None) -> None:
        self.log(LogLevel.INFO, message, component, metadata)

    def warn(self, message: str, component: str | None = None, metadata: Mapping[str, Any] | None = None) -> None:
        self.log(LogLevel.WARN, message, component, metadata)

    warning = warn

    def error(
        self,
        message: str,
        component: str | None = None,
        metadata: Mapping[str, Any] | None = None,
        *,
        exc: BaseException | None = None,
    ) -> None:
        self.log(LogLevel.ERROR, message, component, metadata, exc=exc)

    def fatal(
        self,
        message: str,
        component: str | None = None,
        metadata: Mapping[str, Any] | None = None,
        *,
        exc: BaseException | None = None,
    ) -> None:
        self.log(LogLevel.FATAL, message, component, metadata, exc=exc)

    # =========================================================================
    # Queries
    # =========================================================================

    def get_logs(self, log_filter: LogFilter | None = None, **criteria: Any) -> list[LogEntry]:
        """Return durable entries, newest first.

        Args:
            log_filter: Predicate over entries.
            **criteria: LogFilter fields, merged over ``log_filter``.

        Returns:
            Matching entries, newest first.
        """
        if criteria:
            base = log_filter.model_dump(exclude_none=True) if log_filter is not None else {}
            log_filter = LogFilter.model_validate({**base, **criteria})
        return self._store.retrieve(log_filter)

    def clear_logs(self) -> None:
        """Empty the durable store and the ring buffer."""
        self._store.clear()
        self._buffer.clear()

    def export_logs(self, fmt: str = "json") -> str:
        """Serialize all durable entries (newest first) as "json" or "csv".

        Raises:
            ValueError: If the format is unknown.
        """
        return LogFormatter.format(self.get_logs(), fmt)

    def track_standard_metrics(self, source: MetricEventBus) -> int:
        """Subscribe the performance timer to a metric source."""
        return self.performance.track_standard_metrics(source)

    # =========================================================================
    # Configuration
    # =========================================================================

    def get_config(self) -> LoggerConfig:
        """A copy of the current configuration."""
        return self._config.model_copy()

    def set_config(self, changes: Mapping[str, Any] | None = None, /, **kwargs: Any) -> LoggerConfig:
        """Apply a partial configuration update.

        Rebuilds the durable store when its capacity or location changes,
        resizes the ring buffer, rebuilds the remote transport when the
        endpoint or retry settings change, and restarts the flush schedule
        when the interval changes.

        Args:
            changes: Field updates.
            **kwargs: More field updates (win over ``changes``).

        Returns:
            A copy of the new configuration.

        Raises:
            ConfigurationError: If a field is unknown or the result is invalid.
                The previous configuration stays in effect.
        """
        updates = {**(changes or {}), **kwargs}
        unknown = sorted(set(updates) - set(LoggerConfig.model_fields))
        if unknown:
            raise ConfigurationError(f"Unknown configuration field(s): {', '.join(unknown)}")

        old = self._config
        try:
            new = LoggerConfig.model_validate({**old.model_dump(), **updates})
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

        def changed(*fields: str) -> bool:
            return any(getattr(old, name) != getattr(new, name) for name in fields)

        self._config = new

        if changed("max_storage_entries", "storage_path", "storage_quota_bytes"):
            self._store = self._build_store()
        if changed("buffer_size"):
            self._buffer.set_max_size(new.buffer_size)
        if changed("remote_endpoint", "retry_attempts", "retry_base_delay", "request_timeout", "user_agent"):
            self._remote = self._build_remote()
        if changed("flush_interval") and self._started:
            self._restart_schedule()

        return new.model_copy()

    # =========================================================================
    # Flushing
    # =========================================================================

    async def start(self) -> None:
        """Bind to the running loop and start the flush schedule.

        Installs the loop's exception handler. Calling again is a no-op.
        """
        if self._started or self._destroyed:
            return

        self._loop = asyncio.get_running_loop()
        self._previous_loop_handler = self._loop.get_exception_handler()
        self._loop.set_exception_handler(self._loop_exception_handler)
        self._started = True
        self._start_schedule()

    async def flush(self) -> int:
        """Send the buffered entries as one batch.

        Waits for any flush already in flight. On delivery failure the batch
        is put back in the ring buffer.

        Returns:
            Number of entries delivered.
        """
        async with self._flush_lock:
            self._flush_scheduled = False
            remote = self._remote
            if not self._config.enable_remote or not remote.is_configured or self._buffer.is_empty():
                return 0

            batch = self._buffer.flush()
            try:
                await remote.send_batch(batch)
            except asyncio.CancelledError:
                self._buffer.requeue(batch)
                raise
            except Exception as e:
                self._buffer.requeue(batch)
                _system_logger.warning(
                    {
                        "event": "remote_flush_failed",
                        "message": f"Failed to send {len(batch)} entries, requeued",
                        "error": str(e),
                    }
                )
                return 0
            return len(batch)

    def _schedule_flush(self) -> None:
        """Run a flush on the bound loop soon; safe from any thread."""
        loop = self._loop
        if loop is None or loop.is_closed() or self._flush_scheduled or self._destroyed:
            return

        self._flush_scheduled = True
        try:
            running: asyncio.AbstractEventLoop | None = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        try:
            if running is loop:
                self._spawn_flush()
            else:
                loop.call_soon_threadsafe(self._spawn_flush)
        except RuntimeError:
            # Loop closed between the check and the call
            self._flush_scheduled = False

    def _spawn_flush(self) -> None:
        assert self._loop is not None
        task = self._loop.create_task(self.flush(), name="linklog_flush")
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def _start_schedule(self) -> None:
        interval = self._config.flush_interval
        if self._loop is None or interval <= 0:
            return
        self._flush_task = self._loop.create_task(
            self._flush_loop(interval),
            name="linklog_flush_schedule",
        )

    def _restart_schedule(self) -> None:
        if self._flush_task is not None:
            self._flush_task.cancel()
            self._flush_task = None
        self._start_schedule()

    async def _stop_schedule(self) -> None:
        if self._flush_task:
            self._flush_task.cancel()
            try:
                await self._flush_task
            except asyncio.CancelledError:
                pass
            self._flush_task = None

    async def _flush_loop(self, interval: float) -> None:
        try:
            while True:
                await asyncio.sleep(interval)
                await self.flush()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            _system_logger.error(
                {
                    "event": "flush_schedule_crashed",
                    "message": "Periodic flush stopped",
                    "error": str(e),
                    "traceback": traceback.format_exc(),
                }
            )

    # =========================================================================
    # Uncaught exceptions
    # =========================================================================

    def _handle_uncaught_exception(
        self,
        exc_type: type[BaseException],
        exc_value: BaseException,
        exc_tb: TracebackType | None,
    ) -> None:
        # A destroyed instance still chained under a newer one only passes through
        if not self._destroyed and not issubclass(exc_type, KeyboardInterrupt):
            self.log(
                LogLevel.ERROR,
                "Uncaught exception",
                GLOBAL_ERROR_COMPONENT,
                {"type": exc_type.__name__, "message": str(exc_value)},
                stack="".join(traceback.format_exception(exc_type, exc_value, exc_tb)),
            )
        self._previous_excepthook(exc_type, exc_value, exc_tb)

    def _handle_thread_exception(self, args: threading.ExceptHookArgs) -> None:
        if not self._destroyed and args.exc_type is not SystemExit and args.exc_value is not None:
            self.log(
                LogLevel.ERROR,
                "Uncaught exception in thread",
                GLOBAL_ERROR_COMPONENT,
                {
                    "type": args.exc_type.__name__,
                    "message": str(args.exc_value),
                    "thread": args.thread.name if args.thread is not None else None,
                },
                stack="".join(traceback.format_exception(args.exc_type, args.exc_value, args.exc_traceback)),
            )
        self._previous_threading_excepthook(args)

    def _handle_loop_exception(self, loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
        error = context.get("exception")
        if not self._destroyed:
            self.log(
                LogLevel.ERROR,
                "Unhandled asynchronous exception",
                GLOBAL_ERROR_COMPONENT,
                {
                    "message": context.get("message"),
                    "type": type(error).__name__ if error is not None else None,
                    "reason": str(error) if error is not None else None,
                },
                exc=error,
            )
        if self._previous_loop_handler is not None:
            self._previous_loop_handler(loop, context)
        else:
            loop.default_exception_handler(context)

    def _restore_exception_hooks(self) -> None:
        if sys.excepthook is self._excepthook:
            sys.excepthook = self._previous_excepthook
        if threading.excepthook is self._threading_excepthook:
            threading.excepthook = self._previous_threading_excepthook
        if self._loop is not None and not self._loop.is_closed():
            if self._loop.get_exception_handler() is self._loop_exception_handler:
                self._loop.set_exception_handler(self._previous_loop_handler)

    # =========================================================================
    # Teardown
    # =========================================================================

    async def destroy(self) -> None:
        """Stop the schedule, remove the hooks and flush once, best-effort.

        Calling again is a no-op.
        """
        global _active_instance

        if self._destroyed:
            return
        self._destroyed = True

        await self._stop_schedule()
        self._restore_exception_hooks()
        self.performance.stop_standard_metrics()

        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        await self.flush()

        self._session.close()
        if _active_instance is self:
            _active_instance = None

    @property
    def is_destroyed(self) -> bool:
        """True once ``destroy()`` has run."""
        return self._destroyed

    async def __aenter__(self) -> TelemetryLogger:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.destroy()
