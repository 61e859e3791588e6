"""loglag: measures how long new pods take to show up in Loki."""

__version__ = "0.1.0"
