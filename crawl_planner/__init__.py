"""
CrawlPlanner package initializer.
Defines package version and exposes the engine facade.
CLI entry point: crawl_planner.cli:cli (console script ``crawl-planner``).
"""
__version__ = "0.1.0"

from crawl_planner.engine import Engine, build_plan

__all__ = ["__version__", "Engine", "build_plan"]
