"""devsetup CLI commands."""
