"""Content wizard: turn source documents into a content plan and fill template pages."""

__version__ = "0.1.0"
