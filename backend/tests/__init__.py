"""
Pytest test suite for the Order Ledger backend.

Test categories:
- Unit tests: order service, payment authorizers, trace events, settings
- Integration tests: ORM constraints and the ledger store on SQLite
- API tests: FastAPI routes over httpx ASGITransport
"""
