"""Configuration layer — TOML models, discovery, settings, and logging."""
