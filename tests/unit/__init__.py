"""Unit tests for the timeline subsystem.

Unit tests should:
- Not require a database
- Use the in-memory sources and directory from tests/factories.py
- Be fast to execute
"""
