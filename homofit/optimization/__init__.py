"""Derivative-free optimisation."""
