"""
Error taxonomy for the content pipeline.

TransientUpstreamError and PersistenceError are raised at the seams (model client,
sink) and recovered per item by the orchestrator. ImageAcquisitionError never
leaves the image adapter, and MalformedResponseError marks an unrecoverable
model response.
"""


class PipelineError(Exception):
    """Base class for all pipeline errors."""


class TransientUpstreamError(PipelineError):
    """Model or image API network/HTTP failure. Fatal to the item, never to the batch."""


class MalformedResponseError(PipelineError):
    """A parser recovery stage could not produce an article."""


class ImageAcquisitionError(PipelineError):
    """Image source or image persistence failure."""


class PersistenceError(PipelineError):
    """The sink rejected a write (e.g. slug unique constraint)."""
