"""
Core package — cross-cutting concerns.

Modules:
    config      — environment variables & settings
    logging     — structured JSON / pretty logging
    errors      — exception hierarchy & handlers
    middleware  — request logging, correlation IDs
    store       — key-value persistence (memory / Redis)
    health      — health check aggregation
"""
