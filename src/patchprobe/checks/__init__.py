"""Compliance probes. Every BaseCheck subclass in this package is discovered by the engine."""
