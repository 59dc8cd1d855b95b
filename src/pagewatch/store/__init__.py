"""Persistence backends for failure dumps."""

from pagewatch.store.dump_store import InMemoryDumpStore, RedisDumpStore, build_dump_store

__all__ = ["InMemoryDumpStore", "RedisDumpStore", "build_dump_store"]
