"""tacluster: kinetic clustering of time-activity curves in dynamic images."""

__version__ = "0.1.0"
