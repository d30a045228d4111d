"""dufi - find duplicate files by boundary fingerprints."""

__version__ = "0.1.0"
