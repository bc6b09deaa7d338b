"""Exception types for the HN Brief pipeline.

Per-item failures are caught by the pipeline and converted into processing
records. Only storage initialization failures and unexpected errors escape
a run.
"""


class HNBriefError(Exception):
    """Base class for pipeline errors."""


class StorageError(HNBriefError):
    """Local persistence failed (disk full, permissions, corrupt state)."""


class TrackerError(StorageError):
    """The progress tracker's record log could not be read or appended.

    Fatal for a run: without the log there is no dedup gate.
    """


class UpstreamModelError(HNBriefError):
    """The model service reported an error instead of an analysis.

    Raised by AnalyzerAgent.run_analysis so the caller records the failure
    without substituting a sentinel analysis.
    """

    def __init__(self, message: str, reply: str = ""):
        super().__init__(message)
        self.reply = reply
