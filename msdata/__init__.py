"""msdata - users microservice with separate command and query data paths."""

__version__ = "1.0.0"
