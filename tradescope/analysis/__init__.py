"""Chart analysis through the third-party vision model."""

from tradescope.analysis.client import ANALYSIS_PROMPT, analyze_chart, extract_analysis_text, validate_image

__all__ = ["ANALYSIS_PROMPT", "analyze_chart", "extract_analysis_text", "validate_image"]
