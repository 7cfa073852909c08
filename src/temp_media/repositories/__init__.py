"""Persistence layer for temp media and owner collections."""
