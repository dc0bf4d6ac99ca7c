"""Domain layer — pure types and rules with no filesystem or subprocess access."""
