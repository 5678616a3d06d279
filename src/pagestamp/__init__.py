"""Keeps created/updated timestamp properties in the first block of outliner pages."""
