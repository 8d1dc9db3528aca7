"""
BizScout package initializer.
Crawls one business website and returns a merged, enriched business record.
"""
__version__ = "0.1.0"
