"""studyrag -- owner-scoped retrieval-augmented answering over course material.

Uploaded text is split into overlapping word windows, embedded, and stored
in a shared ChromaDB collection tagged with its owner.  Questions are
answered from the asking owner's chunks only.  See :mod:`studyrag.main`
for how the pieces are wired together.
"""

__version__ = "0.1.0"
