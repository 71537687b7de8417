"""
Prohori: Disaster Awareness Platform
====================================

Prohori aggregates disaster reports from the platform's collections and
external feeds, filters them for public display, and answers per-location
hazard questions for the map views.

Subpackages:
    - disaster_feed: feed aggregation, visibility filtering, geospatial
      risk assessment, refresh scheduling and the REST surface.
    - exceptions: shared exception hierarchy.
"""

__version__ = "0.4.0"

__author__ = "Prohori Team"
__license__ = "MIT"
