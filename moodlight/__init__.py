"""Live vocal emotion to smart-light color."""

__version__ = "0.1.0"
