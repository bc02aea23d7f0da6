"""Licensing intake engine — validation and step gating for the intake wizards."""
