"""Domain Layer: value objects, entities, errors, events and ports.

Nothing in here depends on the core or infrastructure layers.
"""
