"""
cf_attributes.api

HTTP surface for the enrichment engine.

Responsibilities:
- App factory, dependencies and routers (health, enrichment, cache stats).
"""

# Package marker.
