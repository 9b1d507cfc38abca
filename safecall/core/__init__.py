"""Ambient services: settings, logging and crash reporting."""
