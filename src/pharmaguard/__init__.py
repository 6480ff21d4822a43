"""PharmaGuard - dynamic permission resolution for multi-tenant pharmacy workspaces."""

__version__ = "0.1.0"
