"""FixMyRoad: geotagged road defect reports over HTTP."""

__version__ = "0.1.0"
