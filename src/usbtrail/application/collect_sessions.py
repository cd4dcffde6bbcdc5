"""
Collect sessions use case.

Runs the whole chain for one set of log sources:

    decode + classify -> correlate -> dedup/filter/enrich/sort/limit
"""

import threading
import time
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable

from usbtrail.application.parse_logs import (
    ParseLogsStreamingUseCase,
    ParseLogsUseCase,
    ProgressCallback,
)
from usbtrail.application.ports import (
    IdentifierResolverPort,
    LogSourcePort,
    WhitelistPort,
)
from usbtrail.core.config import CollectOptions
from usbtrail.core.exceptions import NoEventsError
from usbtrail.core.models import ClassifiedLine, DeviceSession
from usbtrail.infrastructure.correlation import SessionCorrelator
from usbtrail.infrastructure.filtering import SessionPipeline
from usbtrail.parsers.kernel import KernelUSBClassifier

__all__ = ["CollectSessionsUseCase"]


class CollectSessionsUseCase:
    """
    Use case: turn log sources into a filtered list of device sessions.

    Example:
        options = CollectOptions(mass_storage_only=True, sort_order="desc")
        use_case = CollectSessionsUseCase(options, resolver=resolver)
        sessions = use_case.execute(discover_log_files("/var/log"))
    """

    def __init__(
        self,
        options: CollectOptions | None = None,
        resolver: IdentifierResolverPort | None = None,
        whitelist: WhitelistPort | None = None,
        cancel_event: threading.Event | None = None,
        progress_callback: ProgressCallback | None = None,
        classifier: KernelUSBClassifier | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize the use case.

        Args:
            options: Run options (default: CollectOptions())
            resolver: Vendor/product name lookup; names are left as logged without it
            whitelist: Trusted serials, required when options.check_whitelist is set
            cancel_event: Set to stop the run early
            progress_callback: callback(files_processed, events_emitted), streaming only
            classifier: Line classifier (default: KernelUSBClassifier())
            clock: Provisional disconnect time of sessions still open
        """
        self.options = options or CollectOptions()
        self.resolver = resolver
        self.whitelist = whitelist
        self.cancel_event = cancel_event or threading.Event()
        self.progress_callback = progress_callback
        self.classifier = classifier
        self.clock = clock
        self.stats: dict[str, int | float] = {}

    def execute(self, sources: Iterable[LogSourcePort | str | Path]) -> list[DeviceSession]:
        """
        Execute the use case.

        Args:
            sources: Log sources or file paths, oldest first

        Returns:
            Sessions after the pipeline

        Raises:
            ConfigurationError: If whitelist checking is requested without a whitelist
            NoEventsError: If options.require_events is set and no USB line was found
            OperationCancelled: If cancel_event was set during the run
        """
        sources = list(sources)
        start = time.perf_counter()

        # Built first so a bad option combination fails before any parsing
        pipeline = SessionPipeline.from_options(
            self.options,
            whitelist=self.whitelist,
            resolver=self.resolver,
        )

        correlator = SessionCorrelator(clock=self.clock)
        line_count = 0
        for line in self._parse(sources):
            correlator.feed(line)
            line_count += 1

        if line_count == 0 and self.options.require_events:
            raise NoEventsError(
                "No USB events found in the supplied logs",
                file_count=len(sources),
            )

        sessions = pipeline.process(correlator.sessions)

        self.stats = {
            "files": len(sources),
            "events": line_count,
            "sessions_found": len(correlator.sessions),
            "sessions_returned": len(sessions),
            "duration_seconds": time.perf_counter() - start,
        }
        return sessions

    def _parse(self, sources: list) -> Iterable[ClassifiedLine]:
        if self.options.streaming:
            use_case = ParseLogsStreamingUseCase(
                sources,
                workers=self.options.workers,
                classifier=self.classifier,
                cancel_event=self.cancel_event,
            )
            return use_case.execute(progress_callback=self.progress_callback)

        use_case = ParseLogsUseCase(
            sources,
            workers=self.options.workers,
            classifier=self.classifier,
            cancel_event=self.cancel_event,
        )
        return use_case.execute()
