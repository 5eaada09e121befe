"""repoaudit — find git repositories and report how far each is from its remote."""

__version__ = "0.3.0"
