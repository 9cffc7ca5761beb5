"""Source synchronization state and the orchestrator that acts on it."""

from brain.sync.metadata import (
    FilesystemLocator,
    GitLocator,
    MetadataStore,
    SourceKind,
    SourceMetadata,
)
from brain.sync.orchestrator import IngestionOrchestrator
from brain.sync.scheduler import Scheduler, SchedulerPolicy

__all__ = [
    "FilesystemLocator",
    "GitLocator",
    "IngestionOrchestrator",
    "MetadataStore",
    "Scheduler",
    "SchedulerPolicy",
    "SourceKind",
    "SourceMetadata",
]
