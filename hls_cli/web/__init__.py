"""
Web Scraping Layer.

This package contains modules for finding playlist URLs inside web pages.
"""

from .scanner import find_stream_urls, scan_for_streams

__all__ = ["find_stream_urls", "scan_for_streams"]
