"""Presentation API over the IPS stored procedures."""
