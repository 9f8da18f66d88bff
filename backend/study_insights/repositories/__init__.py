"""Persistence adapters for the analytics engine."""
