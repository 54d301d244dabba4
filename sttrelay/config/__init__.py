"""Configuration constants, one module per concern."""
