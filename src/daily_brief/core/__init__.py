"""Core configuration, shared types and errors."""
