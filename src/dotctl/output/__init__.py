"""Output layer — adapts ServiceResult to Rich, quiet, or JSON output."""
