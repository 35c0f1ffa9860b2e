"""Projection between scene and image coordinates."""
