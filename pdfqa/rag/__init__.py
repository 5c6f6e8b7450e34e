"""RAG (Retrieval-Augmented Generation) pipeline components.

This package contains modules for:
- PDF text extraction
- Text chunking with overlap
- Document records
- FAISS vector storage
- Retrieval and grounded answer generation
- The indexing and query pipelines
"""
