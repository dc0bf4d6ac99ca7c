"""Infrastructure layer — filesystem, subprocess, and secret-store adapters."""
