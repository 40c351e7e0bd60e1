"""Connectivity probing adapters."""
