"""Insurance claims module."""
