"""
Metadata-first fusion pipeline.

1. Score the metadata record with the cheap heuristic.
2. Strong heuristic evidence returns straight away (model never runs).
3. Otherwise the model scores the media and both signals are blended:

       final = model_score * 0.7 + (heuristic_score / 100) * 0.3
"""
import asyncio
import logging
from abc import abstractmethod
from typing import Any, Mapping

from PIL import Image

from ai_analyzer.detectors.base import Analysis, AnalysisResult, MediaCapability
from ai_analyzer.detectors.metadata import score_metadata
from ai_analyzer.detectors.model import ModelInferenceAdapter
from ai_analyzer.detectors.utils import image_to_pixel_buffer
from ai_analyzer.scoring_config import ScoringConfig

logger = logging.getLogger(__name__)


def _log_decision(result: AnalysisResult, source: str, heuristic: int) -> AnalysisResult:
    """Helper to log the final decision before returning."""
    verdict = "AI" if result.is_ai else "Original"
    logger.info(f"[DECISION] Verdict: {verdict} ({result.confidence:.2f}) | Source: {source} | Heuristic: {heuristic}")
    return result


class FusionPipeline(Analysis):
    """Heuristic pre-filter, early exit, then weighted fusion with the model."""

    def __init__(self, model: ModelInferenceAdapter, config: ScoringConfig = None):
        self.model = model
        self.config = config or ScoringConfig()

    @abstractmethod
    async def model_score(self, media: Any) -> float:
        """P(synthetic) from the learned model, 0.0 when no signal is available."""
        pass

    async def analyze(self, media: Any, metadata: Mapping[str, Any]) -> AnalysisResult:
        heuristic = score_metadata(metadata)

        # Early Exit - skip inference entirely
        if heuristic >= self.config.early_exit:
            return _log_decision(
                AnalysisResult(is_ai=True, confidence=heuristic / 100),
                "Metadata (Early Exit)",
                heuristic,
            )

        ml_score = await self.model_score(media)
        final = ml_score * self.config.model_weight + (heuristic / 100) * self.config.metadata_weight

        return _log_decision(
            AnalysisResult(is_ai=final > self.config.decision, confidence=final),
            f"Fusion (model={ml_score:.2f})",
            heuristic,
        )


class PhotoAIAnalyzer(FusionPipeline):
    media_type = Image.Image

    @property
    def capability(self) -> MediaCapability:
        return MediaCapability.IMAGE

    async def model_score(self, media: Image.Image) -> float:
        loop = asyncio.get_running_loop()
        pixels = await loop.run_in_executor(None, image_to_pixel_buffer, media, self.model.input_size)
        if pixels is None:
            # Conversion failure means no ML signal, not a failed request
            return 0.0
        return await self.model.score(pixels)
