"""Culture Connect: taste-affinity colleague matching and a housing chat assistant."""

__version__ = "0.1.0"
