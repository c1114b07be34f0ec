"""reqtree: collection tree storage and request resolution for a local API client."""

__version__ = "0.1.0"
