"""
AI Analyzer

Detects synthetically generated media by combining a cheap metadata
heuristic with a learned classifier.
"""

from ai_analyzer.detectors import AIAnalyzer, AnalysisResult, MediaCapability, ModelNotFoundError

__version__ = "1.0.0"
__all__ = ["AIAnalyzer", "AnalysisResult", "MediaCapability", "ModelNotFoundError"]
