"""Backend for a mobile dashboard screen: weather, clock and moon tiles plus user widgets."""

__version__ = "0.1.0"
