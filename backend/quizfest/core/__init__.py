"""Configuration, security, persistence and logging primitives."""
