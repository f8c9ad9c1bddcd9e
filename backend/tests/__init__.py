"""
pytest suite for the orders API.

Test categories:
- Unit tests: lifecycle rules, store, broadcaster, auth helpers
- Integration tests: SQL order store on in-memory SQLite
- API tests: full FastAPI app over httpx ASGITransport
"""
