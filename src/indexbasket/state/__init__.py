"""State persistence backends."""
