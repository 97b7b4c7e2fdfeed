"""Concrete adapters for the interfaces in :mod:`studyrag.interfaces`."""
