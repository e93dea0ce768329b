"""Configuration, units and error types for Scroll Summit."""
