"""
NutriLens meal photo analysis backend.

Sends a meal photo to several vision models, converts each answer into a
canonical nutrition report, and keeps a per-day food log.

Structure:
- domain/: Nutrition report model, normalizer, backend catalogue, food log
- application/: Retry policy, analyzers, orchestrator, services
- infrastructure/: Venice client, settings, logging, in-memory persistence
- metrics/: In-memory counters and histograms
- api/: FastAPI routers
- tests/: Test suite (unit)
"""

__version__ = "1.0.0"
