"""
Media-specific AI detection strategies and the dispatcher that routes to them.
"""

from .base import AnalysisResult, Analysis, AnyAnalysis, MediaCapability
from .core import AIAnalyzer
from .image import FusionPipeline, PhotoAIAnalyzer
from .metadata import score_metadata, get_metadata_signals, extract_image_properties
from .model import ModelInferenceAdapter, ModelNotFoundError, TorchClassifier
from .vector_ops import softmax
from .video import VideoAIAnalyzer

__all__ = [
    'AIAnalyzer', 'Analysis', 'AnalysisResult', 'AnyAnalysis', 'MediaCapability',
    'FusionPipeline', 'PhotoAIAnalyzer', 'VideoAIAnalyzer',
    'ModelInferenceAdapter', 'ModelNotFoundError', 'TorchClassifier',
    'score_metadata', 'get_metadata_signals', 'extract_image_properties', 'softmax',
]
