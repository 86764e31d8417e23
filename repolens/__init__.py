"""repolens: GitHub repository and organization analysis tools."""

__version__ = "0.1.0"
