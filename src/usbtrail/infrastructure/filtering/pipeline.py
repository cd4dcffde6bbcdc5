"""
Session pipeline implementation.

Orchestrates the dedup, filter, enrichment, sort and limit steps.
"""

from typing import TYPE_CHECKING

from usbtrail.core.config import CollectOptions
from usbtrail.core.exceptions import ConfigurationError
from usbtrail.core.models import DeviceSession
from usbtrail.infrastructure.filtering.steps import (
    SessionStep,
    Deduplicate,
    MassStorageFilter,
    WhitelistMarker,
    UntrustedFilter,
    IdentifierEnricher,
    SortSessions,
    LimitSessions,
)

if TYPE_CHECKING:
    from usbtrail.application.ports import IdentifierResolverPort, WhitelistPort

__all__ = ["SessionPipeline"]


class SessionPipeline:
    """
    Chain of steps turning correlated sessions into the final report list.

    Example:
        pipeline = SessionPipeline.from_options(
            CollectOptions(mass_storage_only=True, limit=20),
            resolver=resolver,
        )
        sessions = pipeline.process(correlated)
    """

    def __init__(self, steps: list[SessionStep] | None = None):
        """
        Initialize the pipeline.

        Args:
            steps: Steps to apply in order
        """
        self.steps = steps or []
        self._counts: dict[str, int] = {}

    def add_step(self, step: SessionStep) -> "SessionPipeline":
        """
        Add a step to the pipeline.

        Returns self for chaining.
        """
        self.steps.append(step)
        return self

    @classmethod
    def from_options(
        cls,
        options: CollectOptions,
        whitelist: "WhitelistPort | None" = None,
        resolver: "IdentifierResolverPort | None" = None,
    ) -> "SessionPipeline":
        """
        Build the standard pipeline for a run.

        Args:
            options: Run options selecting the optional steps
            whitelist: Required when options.check_whitelist is set
            resolver: Identifier resolver; enrichment is skipped without one

        Raises:
            ConfigurationError: If whitelist checking lacks a whitelist
        """
        if options.check_whitelist and whitelist is None:
            raise ConfigurationError(
                "Whitelist checking requested but no whitelist was loaded",
                config_key="check_whitelist",
            )

        pipeline = cls([Deduplicate()])
        if options.mass_storage_only:
            pipeline.add_step(MassStorageFilter())
        if options.check_whitelist:
            pipeline.add_step(WhitelistMarker(whitelist))
        if options.untrusted_only:
            pipeline.add_step(UntrustedFilter())
        if resolver is not None:
            pipeline.add_step(IdentifierEnricher(resolver))
        pipeline.add_step(SortSessions(options.sort_order))
        if options.limit:
            pipeline.add_step(LimitSessions(options.limit))
        return pipeline

    def process(self, sessions: list[DeviceSession]) -> list[DeviceSession]:
        """
        Run every step in order.

        Args:
            sessions: Correlated sessions

        Returns:
            Final session list
        """
        result = list(sessions)
        self._counts = {"input": len(result)}
        for step in self.steps:
            result = step.apply(result)
            self._counts[step.name] = len(result)
        return result

    @property
    def stats(self) -> dict[str, int]:
        """Session count after each step of the last process() call."""
        return dict(self._counts)
