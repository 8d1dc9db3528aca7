# File: bizscout/report/__init__.py
"""bizscout.report: writing crawl results to disk for the CLI."""

from bizscout.report.json_report import render_json

__all__ = ["render_json"]
