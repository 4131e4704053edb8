"""
Same-host Web Crawler

Concurrent, depth-bounded crawler that follows links restricted to the seed URL's host.
"""

__version__ = "1.0.0"
__description__ = "A concurrent same-host web crawler with depth-bounded traversal"
