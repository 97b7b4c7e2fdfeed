"""Command-line tools for studyrag.

``python -m studyrag.cli`` (or the ``studyrag`` console script) exposes
``ingest``, ``ask``, ``documents``, ``delete`` and ``status`` subcommands.
All of them build their providers through :func:`studyrag.main.build_services`.
"""
