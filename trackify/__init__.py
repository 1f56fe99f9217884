"""Trackify: an internship and job application tracker API."""

__version__ = "0.1.0"
