"""
Parse logs use cases.

Decodes many log files into one sequence of classified USB lines, either
with an order-preserving worker pool or as a bounded-memory stream.
"""

import queue
import threading
import time
import warnings
import zlib
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, Iterator

from usbtrail.application.ports import LogSourcePort
from usbtrail.core.config import default_worker_count
from usbtrail.core.exceptions import OperationCancelled
from usbtrail.core.models import ActionKind, ClassifiedLine
from usbtrail.core.security import (
    PROGRESS_INTERVAL_SECONDS,
    STREAM_BUFFER_SIZE,
    LineTooLongError,
)
from usbtrail.infrastructure.sources import LogFileSource
from usbtrail.parsers.kernel import KernelUSBClassifier

__all__ = [
    "DECODE_ERRORS",
    "as_source",
    "iter_classified",
    "ParseLogsUseCase",
    "StreamingParser",
    "ParseLogsStreamingUseCase",
]


# Failures that cost a single file, never the whole run
DECODE_ERRORS = (OSError, EOFError, zlib.error, UnicodeError, LineTooLongError)

ProgressCallback = Callable[[int, int], None]


def as_source(item: LogSourcePort | str | Path) -> LogSourcePort:
    """Wrap a plain path in a LogFileSource; pass sources through."""
    if isinstance(item, (str, Path)):
        return LogFileSource(item)
    return item


def iter_classified(
    source: LogSourcePort,
    classifier: KernelUSBClassifier,
) -> Iterator[ClassifiedLine]:
    """
    Decode one source into classified USB lines, preserving line order.

    Lines outside the USB subsystems and lines of unknown kind are dropped.

    Raises:
        Any of DECODE_ERRORS when the source cannot be read
    """
    for raw in source.read_lines():
        classified = classifier.classify(raw)
        if classified is not None and classified.kind is not ActionKind.UNKNOWN:
            yield classified


@dataclass
class FileResult:
    """Outcome of decoding one file, tagged with its position in the input."""
    index: int
    source_name: str
    lines: list[ClassifiedLine] = field(default_factory=list)
    error: Exception | None = None


class ParseLogsUseCase:
    """
    Use case: decode a list of log sources in parallel.

    The output is the concatenation of every file's classified lines in the
    order the sources were supplied, whatever order the workers finish in.
    A file that cannot be read is reported with a warning and contributes
    no lines.

    Example:
        use_case = ParseLogsUseCase(["/var/log/syslog", "/var/log/syslog.1.gz"])
        lines = use_case.execute()
        print(use_case.stats)
    """

    def __init__(
        self,
        sources: Iterable[LogSourcePort | str | Path],
        workers: int = 0,
        classifier: KernelUSBClassifier | None = None,
        cancel_event: threading.Event | None = None,
    ):
        """
        Initialize the use case.

        Args:
            sources: Log sources or file paths
            workers: Worker threads (0 = one per CPU, capped at the file count)
            classifier: Line classifier (default: KernelUSBClassifier())
            cancel_event: Set to stop the run early
        """
        self.sources = [as_source(s) for s in sources]
        self.workers = workers
        self.classifier = classifier or KernelUSBClassifier()
        self.cancel_event = cancel_event or threading.Event()
        self._stats = {"files": 0, "events": 0, "failed_files": 0, "workers": 0}
        self._duration = 0.0

    def execute(self) -> list[ClassifiedLine]:
        """
        Execute the parse.

        Returns:
            Classified lines in input file order

        Raises:
            OperationCancelled: If cancel_event was set during the run
        """
        if not self.sources:
            return []

        start = time.perf_counter()
        num_workers = min(self.workers or default_worker_count(), len(self.sources))

        # A single worker or file gains nothing from the pool
        if num_workers == 1:
            results = [
                self._parse_one(index, source)
                for index, source in enumerate(self.sources)
            ]
        else:
            results = self._parse_parallel(num_workers)

        results.sort(key=lambda result: result.index)

        lines: list[ClassifiedLine] = []
        failed = 0
        for result in results:
            if result.error is not None:
                failed += 1
                warnings.warn(
                    f"Failed to parse {result.source_name}: {result.error}",
                    UserWarning,
                    stacklevel=2,
                )
            lines.extend(result.lines)

        self._duration = time.perf_counter() - start
        self._stats = {
            "files": len(self.sources),
            "events": len(lines),
            "failed_files": failed,
            "workers": num_workers,
        }
        return lines

    def _parse_parallel(self, num_workers: int) -> list[FileResult]:
        results: list[FileResult] = []
        with ThreadPoolExecutor(
            max_workers=num_workers,
            thread_name_prefix="usbtrail-parse",
        ) as executor:
            futures = [
                executor.submit(self._parse_one, index, source)
                for index, source in enumerate(self.sources)
            ]
            try:
                for future in as_completed(futures):
                    results.append(future.result())
            except BaseException:
                # Ctrl-C included: queued files never start, running ones
                # stop at their next line
                self.cancel_event.set()
                executor.shutdown(wait=True, cancel_futures=True)
                raise
        return results

    def _parse_one(self, index: int, source: LogSourcePort) -> FileResult:
        """Decode one source; decode failures are captured, not raised."""
        if self.cancel_event.is_set():
            raise OperationCancelled()

        lines: list[ClassifiedLine] = []
        try:
            for line in iter_classified(source, self.classifier):
                if self.cancel_event.is_set():
                    raise OperationCancelled()
                lines.append(line)
        except DECODE_ERRORS as e:
            return FileResult(index=index, source_name=source.name, error=e)

        return FileResult(index=index, source_name=source.name, lines=lines)

    @property
    def stats(self) -> dict[str, int | float]:
        """Statistics of the last execute() call."""
        return {**self._stats, "duration_seconds": self._duration}


# End-of-stream marker placed on the event queue after the last worker exits
_END_OF_STREAM = object()


class StreamingParser:
    """
    Bounded-memory parser that streams classified lines as they are read.

    Worker threads pull sources from a job queue and push every classified
    line onto a bounded event queue; a full queue blocks the worker until
    the consumer catches up. Per-file failures travel on a separate small
    error queue and are dropped when it is full. No ordering across files
    is guaranteed.

    Example:
        parser = StreamingParser(files, workers=4)
        for line in parser.iter_events(progress_callback=report):
            handle(line)
        events, files = parser.stats()
    """

    def __init__(
        self,
        sources: Iterable[LogSourcePort | str | Path],
        workers: int = 0,
        classifier: KernelUSBClassifier | None = None,
        buffer_size: int = STREAM_BUFFER_SIZE,
        cancel_event: threading.Event | None = None,
    ):
        """
        Initialize streaming parser.

        Args:
            sources: Log sources or file paths
            workers: Worker threads (0 = one per CPU, capped at the file count)
            classifier: Line classifier (default: KernelUSBClassifier())
            buffer_size: Capacity of the event queue
            cancel_event: Set to stop the run early
        """
        self.sources = [as_source(s) for s in sources]
        self.workers = max(1, min(workers or default_worker_count(), len(self.sources)))
        self.classifier = classifier or KernelUSBClassifier()
        self.cancel_event = cancel_event or threading.Event()

        self.events: queue.Queue = queue.Queue(maxsize=buffer_size)
        self.errors: queue.Queue = queue.Queue(maxsize=self.workers)
        self.done = threading.Event()

        # Set when the consumer stops iterating before the end of the stream
        self._abandoned = threading.Event()
        self._lock = threading.Lock()
        self._events_count = 0
        self._files_count = 0
        self._threads: list[threading.Thread] = []
        self._started = False

    def start(self) -> None:
        """Start the worker threads."""
        if self._started:
            return
        self._started = True

        jobs: queue.Queue = queue.Queue()
        for source in self.sources:
            jobs.put(source)

        for worker_id in range(1, self.workers + 1):
            thread = threading.Thread(
                target=self._worker,
                args=(worker_id, jobs),
                name=f"usbtrail-stream-{worker_id}",
                daemon=True,
            )
            self._threads.append(thread)
            thread.start()

        threading.Thread(
            target=self._close_when_finished,
            name="usbtrail-stream-closer",
            daemon=True,
        ).start()

    def stats(self) -> tuple[int, int]:
        """Return (events emitted, files processed) so far."""
        with self._lock:
            return self._events_count, self._files_count

    def __iter__(self) -> Iterator[ClassifiedLine]:
        return self.iter_events()

    def iter_events(
        self,
        progress_callback: ProgressCallback | None = None,
        progress_interval: float = PROGRESS_INTERVAL_SECONDS,
    ) -> Iterator[ClassifiedLine]:
        """
        Drain the event queue until every worker has finished.

        Args:
            progress_callback: Called as callback(files, events) every
                progress_interval seconds and once at the end
            progress_interval: Seconds between progress reports

        Yields:
            Classified lines in arrival order

        Raises:
            OperationCancelled: If cancel_event was set during the run
        """
        self.start()
        last_report = time.monotonic()

        try:
            while True:
                if self.cancel_event.is_set():
                    raise OperationCancelled()

                self._warn_errors()

                try:
                    item = self.events.get(timeout=0.1)
                except queue.Empty:
                    item = None

                if item is _END_OF_STREAM:
                    break

                if progress_callback and time.monotonic() - last_report >= progress_interval:
                    events, files = self.stats()
                    progress_callback(files, events)
                    last_report = time.monotonic()

                if item is not None:
                    yield item

            self.done.wait()
            self._warn_errors()

            if progress_callback:
                events, files = self.stats()
                progress_callback(files, events)
        finally:
            if not self.done.is_set():
                self._abandoned.set()

    def _stopped(self) -> bool:
        return self.cancel_event.is_set() or self._abandoned.is_set()

    def _worker(self, worker_id: int, jobs: queue.Queue) -> None:
        while not self._stopped():
            try:
                source = jobs.get_nowait()
            except queue.Empty:
                return

            try:
                for line in iter_classified(source, self.classifier):
                    self._put(line)
                    with self._lock:
                        self._events_count += 1
            except OperationCancelled:
                return
            except DECODE_ERRORS as e:
                self._report_error(
                    f"worker {worker_id} failed to parse {source.name}: {e}"
                )

            with self._lock:
                self._files_count += 1

    def _put(self, item: object) -> None:
        """Blocking put that gives up once the run is stopped."""
        while True:
            if self._stopped():
                raise OperationCancelled()
            try:
                self.events.put(item, timeout=0.1)
                return
            except queue.Full:
                continue

    def _report_error(self, message: str) -> None:
        try:
            self.errors.put_nowait(message)
        except queue.Full:
            # Diagnostics only
            pass

    def _warn_errors(self) -> None:
        while True:
            try:
                message = self.errors.get_nowait()
            except queue.Empty:
                return
            warnings.warn(message, UserWarning, stacklevel=3)

    def _close_when_finished(self) -> None:
        for thread in self._threads:
            thread.join()
        try:
            self._put(_END_OF_STREAM)
        except OperationCancelled:
            pass
        self.done.set()


class ParseLogsStreamingUseCase:
    """
    Streaming variant of the parse logs use case.

    Optimized for very large log sets: memory stays bounded by the event
    queue, at the cost of cross-file ordering.
    """

    def __init__(
        self,
        sources: Iterable[LogSourcePort | str | Path],
        workers: int = 0,
        classifier: KernelUSBClassifier | None = None,
        cancel_event: threading.Event | None = None,
        buffer_size: int = STREAM_BUFFER_SIZE,
    ):
        self.sources = list(sources)
        self.workers = workers
        self.classifier = classifier
        self.cancel_event = cancel_event
        self.buffer_size = buffer_size
        self.last_stats: tuple[int, int] = (0, 0)

    def execute(
        self,
        progress_callback: ProgressCallback | None = None,
    ) -> Iterator[ClassifiedLine]:
        """
        Execute streaming parse.

        Args:
            progress_callback: Optional callback(files_processed, events_emitted)

        Yields:
            Classified lines as they are decoded
        """
        if not self.sources:
            return

        parser = StreamingParser(
            self.sources,
            workers=self.workers,
            classifier=self.classifier,
            buffer_size=self.buffer_size,
            cancel_event=self.cancel_event,
        )
        yield from parser.iter_events(progress_callback=progress_callback)
        self.last_stats = parser.stats()
