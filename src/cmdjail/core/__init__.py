"""Core types, errors and configuration shared by every cmdjail module."""
