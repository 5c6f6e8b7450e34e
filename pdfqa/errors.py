"""Error taxonomy for the indexing and query pipelines.

Every error raised by a pipeline is a ``PdfQAError``; the underlying cause,
when there is one, is chained (``raise ... from exc``).
"""


class PdfQAError(Exception):
    """Base class for all pipeline errors."""


class FileNotFound(PdfQAError, FileNotFoundError):
    """The document to index does not exist or cannot be read."""


class ExtractionError(PdfQAError):
    """The document bytes could not be parsed into text."""


class InvalidParameters(PdfQAError, ValueError):
    """Chunker options are inconsistent."""


class InvalidQuery(PdfQAError, ValueError):
    """The question is empty or otherwise unusable."""


class IndexingError(PdfQAError):
    """The vector store rejected a batch of documents."""


class RetrievalError(PdfQAError):
    """Similarity search against the vector store failed."""


class GenerationError(PdfQAError):
    """The answer generator call failed or returned nothing."""
