"""
cf_attributes.enrichment

Resource enrichment package.

Responsibilities:
- Cache-aside object resolution (app/space/org).
- Writing `cloudfoundry.*` attributes onto telemetry resources.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Nothing here knows about HTTP; the resolver only needs an object with an async `fetch`.
