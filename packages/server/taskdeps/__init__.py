"""Task dependency graph service."""
