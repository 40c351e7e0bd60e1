"""swiffcore: auto-save, task cancellation and network resilience services.

Layers follow the usual ports-and-adapters split: ``domain`` holds values,
errors, events and interfaces; ``core`` holds the application services;
``infrastructure`` holds the adapters (persistence, connectivity, config,
logging, console display) and the network resilience engine.
"""

__version__ = "0.1.0"
