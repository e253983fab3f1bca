"""Transparent forwarding web proxy with redirect and HTML reference rewriting."""
