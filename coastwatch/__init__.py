"""CoastWatch - hazard report lifecycle and geospatial query engine."""

__version__ = "0.1.0"
