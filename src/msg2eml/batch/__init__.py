"""Concurrent conversion of many MSG files."""
