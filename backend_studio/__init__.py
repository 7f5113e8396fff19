"""backend-studio: two-stage scaffolder for Express and Flask REST APIs."""

__version__ = "0.1.0"
