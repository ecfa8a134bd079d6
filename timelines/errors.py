from __future__ import annotations


class PipelineError(Exception):
    """Base class for failures that abort a run without producing output."""


class ReadError(PipelineError):
    """A byte source could not be consumed to completion."""


class IncompleteSourceError(PipelineError):
    """One or more expected series were not found among the archive entries."""


class AlignmentError(PipelineError):
    """The series share no common date window, or their dates disagree."""


class LengthMismatchError(PipelineError):
    """Aligned series differ in length. Never expected after a successful align()."""


class PublishError(PipelineError):
    """The publishing collaborator rejected or failed to accept the artifact."""
