"""Integration tests for the vehicle timeline service.

Integration tests:
- Run against a throwaway SQLite database (aiosqlite)
- Test API endpoints and the SQLAlchemy repositories
- Test component interactions

Markers:
- @pytest.mark.integration - All integration tests
"""
