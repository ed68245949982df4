"""Core settings package."""
