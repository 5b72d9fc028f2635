"""
cf_attributes.cache

In-memory metadata cache package.

Responsibilities:
- TTL-bounded, sharded storage of serialized platform objects.
"""

# Package marker.
