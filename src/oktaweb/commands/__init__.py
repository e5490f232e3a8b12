"""Built-in CLI command groups for oktaweb."""
