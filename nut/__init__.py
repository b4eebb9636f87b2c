"""nut: manage workspaces of many git repositories checked out together."""

__version__ = "0.1.0"
