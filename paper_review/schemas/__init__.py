"""Pydantic schemas for stored artifacts, pipeline state and the final report."""
