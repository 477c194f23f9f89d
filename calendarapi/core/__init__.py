"""Core infrastructure for calendarapi: configuration, logging, HTTP and time helpers."""
