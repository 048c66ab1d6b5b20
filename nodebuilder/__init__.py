"""Node Builder -- template composition engine for Node.js backend projects."""

__version__ = "0.1.0"
