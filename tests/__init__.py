"""Vehicle timeline test suite.

Test Structure:
    tests/
    ├── conftest.py          # Shared fixtures for all tests
    ├── factories.py         # Record builders and in-memory sources
    ├── unit/                # Unit tests (no database)
    └── integration/         # Integration tests (SQLite database, ASGI app)

Run all tests:
    pytest

Run specific test categories:
    pytest tests/unit
    pytest -m integration
"""
