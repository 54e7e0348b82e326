"""Configuration, time arithmetic and error types shared across the engine."""
