"""Process store implementations.

The SQLAlchemy-backed store lives in :mod:`litestar_processes.db` and requires
the ``[db]`` extra.
"""

from __future__ import annotations

from litestar_processes.store.memory import InMemoryProcessStore

__all__ = ["InMemoryProcessStore"]
