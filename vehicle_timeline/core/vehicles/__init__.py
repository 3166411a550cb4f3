"""Fleet vehicle module."""
