import asyncio
import logging
from typing import Any, Callable, Iterable, Mapping, Optional

from PIL import Image

from ai_analyzer.detectors.base import Analysis, AnalysisResult, AnyAnalysis, MediaCapability
from ai_analyzer.detectors.image import PhotoAIAnalyzer
from ai_analyzer.detectors.model import ModelInferenceAdapter
from ai_analyzer.detectors.video import VideoAIAnalyzer
from ai_analyzer.scoring_config import ScoringConfig

logger = logging.getLogger(__name__)

Completion = Callable[[Optional[AnalysisResult]], None]


class AIAnalyzer:
    """
    Entry point for AI-origin analysis.

    Holds an ordered, immutable list of strategies and routes each request
    to the first one whose capability matches.  When two strategies share a
    capability, the one registered first wins.

    A request that no strategy can handle, or whose media does not match
    the selected strategy's type, yields None rather than an error.
    """

    def __init__(self, analyses: Iterable[Analysis]):
        self._analyses = tuple(AnyAnalysis(a) for a in analyses)
        logger.info(f"Analyzer initialized with {len(self._analyses)} strategies: {list(self._analyses)}")

    @classmethod
    def default(cls, model_path: str = None, config: ScoringConfig = None) -> "AIAnalyzer":
        """
        Standard pipeline over the shared model adapter.
        Raises ModelNotFoundError if the model artifact is missing.
        """
        model = ModelInferenceAdapter.shared(model_path)
        return cls([
            PhotoAIAnalyzer(model, config),
            VideoAIAnalyzer(model, config),
        ])

    @property
    def analyses(self) -> tuple:
        return self._analyses

    def find(self, capability: MediaCapability) -> Optional[AnyAnalysis]:
        return next((a for a in self._analyses if a.capability == capability), None)

    async def analyze(
        self,
        capability: MediaCapability,
        media: Any,
        metadata: Mapping[str, Any],
    ) -> Optional[AnalysisResult]:
        analysis = self.find(capability)
        if analysis is None:
            logger.info(f"[DISPATCH] No strategy registered for {capability.value}")
            return None
        return await analysis.analyze(media, metadata)

    async def analyze_image(self, image: Image.Image, metadata: Mapping[str, Any]) -> Optional[AnalysisResult]:
        return await self.analyze(MediaCapability.IMAGE, image, metadata)

    async def analyze_video(self, video_path: str, metadata: Mapping[str, Any]) -> Optional[AnalysisResult]:
        return await self.analyze(MediaCapability.VIDEO, video_path, metadata)

    def submit(
        self,
        capability: MediaCapability,
        media: Any,
        metadata: Mapping[str, Any],
        completion: Completion,
    ) -> asyncio.Task:
        """
        Schedule an analysis on the running loop and deliver the result to
        ``completion`` exactly once (None when cancelled or failed).
        """
        task = asyncio.ensure_future(self.analyze(capability, media, metadata))
        task.add_done_callback(lambda t: _deliver(t, completion))
        return task


def _deliver(task: asyncio.Task, completion: Completion) -> None:
    if task.cancelled():
        completion(None)
        return
    exc = task.exception()
    if exc is not None:
        logger.error(f"[DISPATCH] Analysis failed: {exc}", exc_info=exc)
        completion(None)
        return
    completion(task.result())
