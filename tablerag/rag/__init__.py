"""RAG (Retrieval-Augmented Generation) pipeline components.

This package contains modules for:
- Capability contracts for embedding, completion and vector storage
- Qdrant and FAISS vector stores
- Document indexing
- Top-1 semantic retrieval
- Context injection into chat completions
"""
