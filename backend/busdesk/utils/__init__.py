"""
Utility helpers for the bus operator console: configuration loading and
date/time formatting shared by forms and wire payloads.
"""
