"""Dependency-ordered provisioning of region plans."""
