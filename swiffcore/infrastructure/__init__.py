"""Infrastructure Layer: concrete adapters for the domain ports.

Persistence stores, connectivity probing, configuration, logging,
console display and the network resilience engine live here.
"""
