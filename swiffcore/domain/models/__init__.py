"""Domain models: value objects, entities and error types."""
