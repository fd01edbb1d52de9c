"""Sahem Invest profit distribution service."""
