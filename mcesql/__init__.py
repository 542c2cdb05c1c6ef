"""Editor-side analysis for Marketing Cloud Engagement SQL."""

__version__ = "0.1.0"
