"""Module assembly and include resolution for vert.x style module projects."""

__version__ = "0.1.0"
