"""
Programmatic SEO content pipeline.

The pure building blocks are re-exported here. The orchestrator and the
database-backed ContentStore are imported from their modules directly so
that importing the package does not create a database engine.
"""

from .errors import (
    PipelineError,
    TransientUpstreamError,
    MalformedResponseError,
    ImageAcquisitionError,
    PersistenceError,
)

from .schemas import (
    WorkItem,
    LinkCandidate,
    GeneratedArticle,
    PublishedPage,
    ExistingContent,
    RunResult,
    LLMConfig,
    ImageConfig,
    PipelineSettings,
)

from .parser import parse
from .linking import inject
from .scheduler import WorkQueue, build_queue, next_batch
from .catalog import LinkCatalog, CatalogProduct

__all__ = [
    # Errors
    "PipelineError",
    "TransientUpstreamError",
    "MalformedResponseError",
    "ImageAcquisitionError",
    "PersistenceError",
    # Records and settings
    "WorkItem",
    "LinkCandidate",
    "GeneratedArticle",
    "PublishedPage",
    "ExistingContent",
    "RunResult",
    "LLMConfig",
    "ImageConfig",
    "PipelineSettings",
    # Pipeline stages
    "parse",
    "inject",
    "WorkQueue",
    "build_queue",
    "next_batch",
    "LinkCatalog",
    "CatalogProduct",
]
