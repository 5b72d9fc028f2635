"""
cf_attributes.api.routers

API routers package.
"""

# Package marker.
