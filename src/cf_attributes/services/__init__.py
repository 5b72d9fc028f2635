"""
cf_attributes.services

Service-layer package.

Responsibilities:
- Own the engine lifecycle (client + cache) and per-batch processing policy.
"""

# Package marker.
