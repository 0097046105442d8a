"""Scheduling services: calendar, staff, availability and booking logic."""
