"""Core document-review pipeline: orchestration, artifact storage, segmentation, citation analysis and report aggregation."""

__version__ = "0.1.0"
