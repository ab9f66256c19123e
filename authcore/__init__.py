"""authcore — authentication, session tokens and role/permission grants."""

__version__ = "1.0.0"
