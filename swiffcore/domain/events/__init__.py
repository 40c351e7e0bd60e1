"""Domain Events for auto-save, task management and network resilience."""
