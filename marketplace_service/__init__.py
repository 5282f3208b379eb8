"""Package marker for the marketplace web service."""
