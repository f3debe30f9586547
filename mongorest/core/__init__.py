"""Configuration, database access and the error hierarchy."""
