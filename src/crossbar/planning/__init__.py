"""Configuration validation, defaulting and fan-out into region plans."""
