"""
Shared utilities for the KIS quote proxy.

This package aggregates common building blocks consumed by the services:

- config: Service configuration via pydantic-settings
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- errors: Error taxonomy and the error envelope
- base_service: FastAPI app scaffolding (health, metrics, error handlers)

Do not import from service_* packages into shared/.
"""
