"""Temporary media uploads with TTL, validated transfer and cleanup.

The package wires a SQLAlchemy record store and a filesystem blob store into
three services: the lifecycle manager (:mod:`temp_media.media.temp_media_service`),
the transfer engine (:mod:`temp_media.media.transfer_service`) and the cleanup
engine (:mod:`temp_media.media.media_cleanup`). HTTP routes are thin adapters
on top of them.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
