"""pdfqa: question answering over a single indexed PDF."""

__version__ = "0.1.0"
