"""Errors, logging, settings and on-disk layout shared by every reflow module."""
