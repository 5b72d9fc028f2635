"""
cf_attributes.platform

Cloud Foundry platform boundary.

Responsibilities:
- Platform object schema and cache codec.
- Authenticated API client (UAA tokens + v3 object reads).
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Enrichment code should depend on `PlatformClient.fetch`, not on HTTP details.
