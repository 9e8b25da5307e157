"""Chat Video Editor: edit videos by describing the change in plain language."""

__version__ = "0.1.0"
