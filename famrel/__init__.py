"""Family-based reliability analysis of software product lines."""

from famrel.analyzer import Analyzer
from famrel.settings import AnalysisSettings, analysis_settings

__all__ = ["AnalysisSettings", "Analyzer", "analysis_settings"]
