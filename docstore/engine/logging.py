"""
DocStore Logging — Structured JSON-lines file logging with a background queue.

Implements:
- FileLogger: Per-object-type, per-category log files (daily files)
- AsyncLogQueue: In-memory queue flushed by a background thread
- Entry builders for document operations, security denials, storage events
- init_logging / log / shutdown_logging global helpers

Layout: {log_dir}/{object_type}/{category}/{YYYY-MM-DD}.jsonl

Module loggers (logging.getLogger("docstore.*")) keep handling human-readable
diagnostics; this module records the audit trail of document operations.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from collections import defaultdict
from datetime import date, datetime, timezone
from pathlib import Path
from queue import Empty, Full, Queue
from typing import TYPE_CHECKING, Any, Dict, List, Optional

if TYPE_CHECKING:
    from docstore.engine.config import LoggingConfig

logger = logging.getLogger("docstore.engine.logging")

OBJECT_TYPE_CATEGORIES = {
    "documents": ["execution", "security"],
    "storage": ["execution"],
    "system": ["execution", "security"],
}


class LogEntry:
    """A structured log entry destined for a specific file."""

    __slots__ = ("object_type", "category", "data")

    def __init__(self, object_type: str, category: str, data: Dict[str, Any]):
        self.object_type = object_type
        self.category = category
        self.data = data

    def to_json(self) -> str:
        return json.dumps(self.data, default=str, separators=(",", ":"))


class FileLogger:
    """
    Writes structured JSON log entries to per-object-type, per-category files.

    Thread-safe — uses a lock per file path.
    """

    def __init__(self, log_dir: str = "logs"):
        self._log_dir = Path(log_dir)
        self._file_locks: Dict[str, threading.Lock] = defaultdict(threading.Lock)
        self._ensure_directories()

    def _ensure_directories(self) -> None:
        for obj_type, categories in OBJECT_TYPE_CATEGORIES.items():
            for cat in categories:
                (self._log_dir / obj_type / cat).mkdir(parents=True, exist_ok=True)

    def write(self, entry: LogEntry) -> None:
        """Write a single log entry to the appropriate file."""
        file_path = self._resolve_path(entry.object_type, entry.category)
        with self._file_locks[str(file_path)]:
            with open(file_path, "a", encoding="utf-8") as f:
                f.write(entry.to_json())
                f.write("\n")

    def write_batch(self, entries: List[LogEntry]) -> None:
        """Write a batch of log entries, grouping by file path."""
        grouped: Dict[str, List[LogEntry]] = defaultdict(list)
        for entry in entries:
            grouped[str(self._resolve_path(entry.object_type, entry.category))].append(entry)

        for file_path, batch in grouped.items():
            with self._file_locks[file_path]:
                with open(file_path, "a", encoding="utf-8") as f:
                    for entry in batch:
                        f.write(entry.to_json())
                        f.write("\n")

    def _resolve_path(self, object_type: str, category: str) -> Path:
        today = date.today().isoformat()
        return self._log_dir / object_type / category / f"{today}.jsonl"

    @property
    def log_dir(self) -> Path:
        return self._log_dir

    def read_today(self, object_type: str, category: str) -> List[Dict[str, Any]]:
        """Read back today's entries for one object_type/category."""
        path = self._resolve_path(object_type, category)
        if not path.exists():
            return []
        entries: List[Dict[str, Any]] = []
        with open(path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    entries.append(json.loads(line))
                except json.JSONDecodeError:
                    continue
        return entries


class AsyncLogQueue:
    """
    In-memory queue with a background flush thread.

    Entries are pushed non-blocking. The thread flushes to FileLogger every
    flush_interval_ms or when flush_batch_size entries accumulate.
    """

    def __init__(
        self,
        file_logger: FileLogger,
        flush_interval_ms: int = 100,
        flush_batch_size: int = 50,
        max_queue_size: int = 10000,
    ):
        self._logger = file_logger
        self._flush_interval = flush_interval_ms / 1000.0
        self._flush_batch_size = flush_batch_size
        self._queue: Queue[LogEntry] = Queue(maxsize=max_queue_size)
        self._running = False
        self._flush_thread: Optional[threading.Thread] = None
        self._dropped_count = 0

    def start(self) -> None:
        """Start the background flush thread."""
        if self._running:
            return
        self._running = True
        self._flush_thread = threading.Thread(
            target=self._flush_loop,
            name="docstore-log-flush",
            daemon=True,
        )
        self._flush_thread.start()
        logger.info("Async log queue started")

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the flush thread and drain remaining entries."""
        self._running = False
        if self._flush_thread and self._flush_thread.is_alive():
            self._flush_thread.join(timeout=timeout)
        self._drain()
        logger.info(f"Async log queue stopped (dropped: {self._dropped_count})")

    def push(self, entry: LogEntry) -> bool:
        """Queue an entry. Returns False if it was dropped (queue full)."""
        try:
            self._queue.put_nowait(entry)
            return True
        except Full:
            self._dropped_count += 1
            return False

    def _flush_loop(self) -> None:
        while self._running:
            batch = self._collect_batch()
            if batch:
                try:
                    self._logger.write_batch(batch)
                except OSError as e:
                    logger.error(f"Log flush error: {e}")
            else:
                time.sleep(self._flush_interval)

    def _collect_batch(self) -> List[LogEntry]:
        batch: List[LogEntry] = []
        deadline = time.monotonic() + self._flush_interval

        while len(batch) < self._flush_batch_size:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            try:
                batch.append(self._queue.get(timeout=min(remaining, 0.01)))
            except Empty:
                if batch:
                    break
                continue

        return batch

    def _drain(self) -> None:
        batch: List[LogEntry] = []
        while not self._queue.empty():
            try:
                batch.append(self._queue.get_nowait())
            except Empty:
                break
        if batch:
            try:
                self._logger.write_batch(batch)
            except OSError as e:
                logger.error(f"Log drain error: {e}")

    @property
    def pending_count(self) -> int:
        return self._queue.qsize()

    @property
    def dropped_count(self) -> int:
        return self._dropped_count


# ---------------------------------------------------------------------------
# Log Entry Builders
# ---------------------------------------------------------------------------

def _base_entry(
    event: str,
    level: str,
    object_ref: str,
    execution_id: Optional[str] = None,
    user_id: Optional[Any] = None,
    **extra: Any,
) -> Dict[str, Any]:
    entry: Dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "level": level,
        "event": event,
        "object_ref": object_ref,
    }
    if execution_id:
        entry["execution_id"] = execution_id
    if user_id is not None:
        entry["user_id"] = user_id
    entry.update(extra)
    return entry


def log_document_operation(
    operation: str,
    public_id: Any,
    user_id: Any,
    success: bool,
    execution_id: Optional[str] = None,
    location: Optional[str] = None,
    fields_changed: Optional[List[str]] = None,
    error: Optional[str] = None,
) -> LogEntry:
    """Build a document create/update/delete/purge log entry."""
    data = _base_entry(
        event=f"document_{operation}",
        level="INFO" if success else "ERROR",
        object_ref=f"documents.{public_id}",
        execution_id=execution_id,
        user_id=user_id,
        operation=operation,
        success=success,
    )
    if location:
        data["location"] = location
    if fields_changed:
        data["fields_changed"] = fields_changed
    if error:
        data["error"] = error
    return LogEntry("documents", "execution", data)


def log_security_event(
    event: str,
    public_id: Any,
    operation: str,
    outcome: str,
    user_id: Any,
    user_roles: List[str],
    is_admin: bool = False,
    execution_id: Optional[str] = None,
) -> LogEntry:
    """Build a security log entry for a denied document operation."""
    data = _base_entry(
        event=event,
        level="WARNING",
        object_ref=f"documents.{public_id}",
        execution_id=execution_id,
        user_id=user_id,
        operation=operation,
        outcome=outcome,
        user_roles=user_roles,
        is_admin=is_admin,
    )
    return LogEntry("documents", "security", data)


def log_storage_event(
    event: str,
    container: str,
    blob_name: Optional[str] = None,
    success: bool = True,
    content_hash: Optional[str] = None,
    error: Optional[str] = None,
) -> LogEntry:
    """Build a storage backend event (upload, delete, container created)."""
    data = _base_entry(
        event=event,
        level="INFO" if success else "ERROR",
        object_ref=f"storage.{container}",
        container=container,
        success=success,
    )
    if blob_name:
        data["blob_name"] = blob_name
    if content_hash:
        data["content_hash"] = content_hash
    if error:
        data["error"] = error
    return LogEntry("storage", "execution", data)


def log_system_event(
    event: str,
    level: str = "INFO",
    details: Optional[Dict[str, Any]] = None,
) -> LogEntry:
    """Build a system event log entry (startup, shutdown, health)."""
    data = _base_entry(event=event, level=level, object_ref="system")
    if details:
        data["details"] = details
    return LogEntry("system", "execution", data)


# ---------------------------------------------------------------------------
# Global Log Queue
# ---------------------------------------------------------------------------

_global_queue: Optional[AsyncLogQueue] = None


def init_logging(
    log_dir: str = "logs",
    flush_interval_ms: int = 100,
    flush_batch_size: int = 50,
    max_queue_size: int = 10000,
) -> AsyncLogQueue:
    """Initialize the global async log queue."""
    global _global_queue
    file_logger = FileLogger(log_dir=log_dir)
    _global_queue = AsyncLogQueue(
        file_logger=file_logger,
        flush_interval_ms=flush_interval_ms,
        flush_batch_size=flush_batch_size,
        max_queue_size=max_queue_size,
    )
    _global_queue.start()
    return _global_queue


def get_log_queue() -> Optional[AsyncLogQueue]:
    return _global_queue


def log(entry: LogEntry) -> bool:
    """Push a log entry to the global queue. Non-blocking; no-op when not initialized."""
    if _global_queue is None:
        logger.debug("Log queue not initialized — entry dropped")
        return False
    return _global_queue.push(entry)


def shutdown_logging() -> None:
    """Flush and stop the global log queue."""
    global _global_queue
    if _global_queue:
        _global_queue.stop()
        _global_queue = None


def configure_logging(config: "LoggingConfig") -> Optional[AsyncLogQueue]:
    """
    Apply the ``logging`` section of docstore.yaml: set the level of the
    ``docstore`` logger tree and, when structured logging is on, start the
    global queue writing under ``config.directory``.
    """
    logging.getLogger("docstore").setLevel(config.level)
    if not config.structured:
        return None
    return init_logging(
        log_dir=config.directory,
        flush_interval_ms=config.async_queue.flush_interval_ms,
        flush_batch_size=config.async_queue.flush_batch_size,
        max_queue_size=config.async_queue.max_queue_size,
    )
