"""Homography fitting and correspondence matching."""
