"""Persistence adapters implementing the PersistenceStore port.

InMemoryStore keeps per-kind dictionaries; DiskStore is backed by diskcache.
Bounded Context: Persistence
"""
