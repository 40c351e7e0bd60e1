"""Defines common Value Objects used across different domain contexts.

These objects represent simple values or concepts like entity identifiers,
task identifiers and progress fractions, ensuring consistency and type safety.
"""

from typing import Callable, NewType, Tuple

# === Persistence Context ===
EntityID = NewType("EntityID", str)            # Stable identifier of a stored entity
EntityKind = NewType("EntityKind", str)        # Collection name: 'person', 'subscription', 'transaction'
EntityKey = Tuple[EntityKind, EntityID]        # Identity used by the debounce timer map

# === Task Management Context ===
TaskID = NewType("TaskID", str)                # Unique ID of a managed task
Progress = NewType("Progress", float)          # Fraction of work done, 0.0 .. 1.0

ProgressCallback = Callable[[float], None]

# === Network Context ===
StatusCode = NewType("StatusCode", int)        # HTTP status code
