"""Summary helpers for the reconstruction manifest."""

from artifacts.summaries.builders import build_deps_summary, compute_fan_stats

__all__ = ["build_deps_summary", "compute_fan_stats"]
