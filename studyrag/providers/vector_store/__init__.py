"""Vector store provider implementations.

ChromaDBProvider is the only adapter: one cosine-space collection shared by
every owner, isolated per owner by ``owner_id`` metadata filters.
"""

from studyrag.providers.vector_store.chromadb_provider import ChromaDBProvider

__all__ = ["ChromaDBProvider"]
