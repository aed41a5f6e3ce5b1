"""Core inference modules."""
