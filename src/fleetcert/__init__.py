"""fleetcert -- device certificate lifecycle orchestrator."""

__version__ = "1.0.0"
