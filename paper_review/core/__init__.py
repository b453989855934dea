"""Configuration, database, errors and the Analysis Oracle client."""
