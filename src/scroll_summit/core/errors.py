"""Exception types shared by the aggregation core."""


class SummitError(RuntimeError):
    """Base exception raised for aggregation core failures."""


class TransientStoreError(SummitError):
    """Raised when a read or write against a state store fails transiently.

    Background loops log it and carry on with the next tick; the ingestion
    path reports a retryable failure to its caller.
    """


class DataIntegrityError(SummitError):
    """Raised when compaction cannot reconcile raw samples into summaries.

    Fatal to the current compaction run only. Raw rows are never deleted
    when this is raised.
    """
