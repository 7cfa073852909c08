"""Temp media lifecycle, transfer and cleanup services."""
