"""quotadash - terminal dashboard for provider usage and quota telemetry."""

__version__ = "0.1.0"
