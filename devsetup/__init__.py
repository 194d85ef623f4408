"""devsetup - declarative developer machine provisioning."""

__version__ = "1.0.0"
