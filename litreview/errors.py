"""Exception hierarchy.

Errors raised between PDF extraction and structured analysis end the
pipeline for that paper and are recorded on the paper as an ``error``
status.  ``RegistryError`` is the exception: enrichment swallows it.
"""


class LitReviewError(Exception):
    """Base class for all litreview errors."""


class ExtractionError(LitReviewError):
    """The uploaded file is not a readable PDF."""


class ConfigurationError(LitReviewError):
    """Settings name something this installation does not support."""


class AuthenticationError(LitReviewError):
    """The selected model provider's credential is missing or was rejected."""


class ProviderError(LitReviewError):
    """The model provider answered, but signalled a failure."""


class EmptyResponseError(LitReviewError):
    """The model provider returned no text."""


class ScreeningParseError(LitReviewError):
    """The relevance check answer could not be parsed."""


class ExtractionParseError(LitReviewError):
    """The structured analysis answer is not valid JSON."""


class IncompleteExtractionError(LitReviewError):
    """The structured analysis answer lacks required top-level keys."""

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(f"Analysis is missing required keys: {', '.join(missing)}")


class RegistryError(LitReviewError):
    """Crossref lookup failed (network, HTTP status or malformed body)."""


class EmptyCorpusError(LitReviewError):
    """An aggregate operation was asked to run without completed papers."""


class CollectionError(LitReviewError):
    """Base class for collection state errors."""


class PaperNotFoundError(CollectionError, KeyError):
    """No paper with the given id exists in the collection."""

    def __init__(self, record_id: str):
        self.record_id = record_id
        super().__init__(f"Paper not found: {record_id}")

    def __str__(self) -> str:
        return self.args[0]


class InvalidTransitionError(CollectionError):
    """A status change that the paper lifecycle does not allow."""


class DuplicateConfirmationRequired(CollectionError):
    """An edit would give a paper the DOI of another paper."""

    def __init__(self, doi: str, conflicting_ids: list[str]):
        self.doi = doi
        self.conflicting_ids = conflicting_ids
        super().__init__(
            f"DOI {doi} is already used by {len(conflicting_ids)} other paper(s)"
        )
