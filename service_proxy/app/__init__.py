"""
Quote proxy service package.

The proxy fronts the browser client's stock queries and forwards them to the
KIS Open API:
- Token handling: a single-slot access token cache per service instance
- Forwarding: declarative endpoint descriptors run by one forwarder

Structure:
- app.main: FastAPI app and route wiring.
- app.adapters: HTTP client for the brokerage.
- app.auth: Access token cache.
- app.quotes: Endpoint descriptors and the forwarder.
- app.schemas: Request bodies.
"""
