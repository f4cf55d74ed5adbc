"""Calculation libraries for the trade journal engine."""
