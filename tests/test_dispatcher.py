import asyncio

import pytest
from PIL import Image

from ai_analyzer.detectors import AIAnalyzer, ModelNotFoundError
from ai_analyzer.detectors.base import Analysis, AnalysisResult, AnyAnalysis, MediaCapability
from ai_analyzer.detectors.image import PhotoAIAnalyzer
from ai_analyzer.detectors.video import VideoAIAnalyzer
from tests.helpers import make_image, AI_LIKE_METADATA


class TaggedAnalysis(Analysis):
    """Returns a fixed confidence so tests can tell strategies apart."""
    media_type = Image.Image

    def __init__(self, capability, confidence, delay=0.0):
        self._capability = capability
        self.confidence = confidence
        self.delay = delay
        self.calls = 0

    @property
    def capability(self):
        return self._capability

    async def analyze(self, media, metadata):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        return AnalysisResult(is_ai=self.confidence > 0.5, confidence=self.confidence)


@pytest.mark.asyncio
async def test_no_matching_strategy_returns_none():
    analyzer = AIAnalyzer([TaggedAnalysis(MediaCapability.VIDEO, 0.9)])
    assert await analyzer.analyze_image(make_image(), {}) is None

@pytest.mark.asyncio
async def test_empty_registry_returns_none():
    assert await AIAnalyzer([]).analyze_image(make_image(), {}) is None

@pytest.mark.asyncio
async def test_first_registered_strategy_wins():
    first = TaggedAnalysis(MediaCapability.IMAGE, 0.9)
    second = TaggedAnalysis(MediaCapability.IMAGE, 0.1)
    analyzer = AIAnalyzer([first, second])

    for _ in range(3):
        result = await analyzer.analyze_image(make_image(), {})
        assert result.confidence == 0.9
    assert first.calls == 3
    assert second.calls == 0

@pytest.mark.asyncio
async def test_routes_by_capability():
    image = TaggedAnalysis(MediaCapability.IMAGE, 0.2)
    video = TaggedAnalysis(MediaCapability.VIDEO, 0.8)
    analyzer = AIAnalyzer([video, image])

    result = await analyzer.analyze_image(make_image(), {})
    assert result.confidence == 0.2
    assert video.calls == 0

@pytest.mark.asyncio
async def test_media_type_mismatch_returns_none():
    strategy = TaggedAnalysis(MediaCapability.IMAGE, 0.9)
    analyzer = AIAnalyzer([strategy])
    assert await analyzer.analyze(MediaCapability.IMAGE, "/tmp/not-an-image.png", {}) is None
    assert strategy.calls == 0

@pytest.mark.asyncio
async def test_any_analysis_forwards_matching_media():
    wrapped = AnyAnalysis(TaggedAnalysis(MediaCapability.IMAGE, 0.6))
    assert wrapped.capability is MediaCapability.IMAGE
    assert (await wrapped.analyze(make_image(), {})).confidence == 0.6

def test_registry_is_fixed_at_construction():
    strategies = [TaggedAnalysis(MediaCapability.IMAGE, 0.9)]
    analyzer = AIAnalyzer(strategies)
    strategies.append(TaggedAnalysis(MediaCapability.VIDEO, 0.1))
    assert isinstance(analyzer.analyses, tuple)
    assert len(analyzer.analyses) == 1

@pytest.mark.asyncio
async def test_submit_delivers_result_once():
    analyzer = AIAnalyzer([TaggedAnalysis(MediaCapability.IMAGE, 0.9)])
    delivered = []

    task = analyzer.submit(MediaCapability.IMAGE, make_image(), {}, delivered.append)
    await task
    await asyncio.sleep(0)

    assert delivered == [AnalysisResult(is_ai=True, confidence=0.9)]

@pytest.mark.asyncio
async def test_submit_without_strategy_delivers_none():
    delivered = []
    task = AIAnalyzer([]).submit(MediaCapability.VIDEO, "clip.mp4", {}, delivered.append)
    await task
    await asyncio.sleep(0)
    assert delivered == [None]

@pytest.mark.asyncio
async def test_cancelled_submit_still_completes_once():
    analyzer = AIAnalyzer([TaggedAnalysis(MediaCapability.IMAGE, 0.9, delay=10)])
    delivered = []

    task = analyzer.submit(MediaCapability.IMAGE, make_image(), {}, delivered.append)
    await asyncio.sleep(0)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    await asyncio.sleep(0)

    assert delivered == [None]

@pytest.mark.asyncio
async def test_concurrent_requests_are_independent(adapter):
    analyzer = AIAnalyzer([PhotoAIAnalyzer(adapter)])
    results = await asyncio.gather(
        analyzer.analyze_image(make_image(), AI_LIKE_METADATA),
        analyzer.analyze_image(make_image(), {}),
        analyzer.analyze_image(make_image(), AI_LIKE_METADATA),
    )
    assert results[0] == results[2]
    assert results[0].confidence == pytest.approx(0.7)
    assert results[1] != results[0]

def test_default_registry(tmp_path):
    (tmp_path / "config.json").write_text("{}")
    analyzer = AIAnalyzer.default(model_path=str(tmp_path))
    names = [a.name for a in analyzer.analyses]
    assert names == [PhotoAIAnalyzer.__name__, VideoAIAnalyzer.__name__]

def test_default_registry_requires_model(tmp_path):
    with pytest.raises(ModelNotFoundError):
        AIAnalyzer.default(model_path=str(tmp_path / "missing"))

@pytest.mark.parametrize("mime_type,expected", [
    ("image/png", MediaCapability.IMAGE),
    ("image/jpeg", MediaCapability.IMAGE),
    ("video/mp4", MediaCapability.VIDEO),
    ("audio/mpeg", None),
    ("application/octet-stream", None),
    (None, None),
])
def test_capability_from_mime_type(mime_type, expected):
    assert MediaCapability.from_mime_type(mime_type) is expected

@pytest.mark.parametrize("filename,expected", [
    ("photo.JPG", MediaCapability.IMAGE),
    ("render.webp", MediaCapability.IMAGE),
    ("clip.mov", MediaCapability.VIDEO),
    ("song.mp3", None),
    ("", None),
])
def test_capability_from_filename(filename, expected):
    assert MediaCapability.from_filename(filename) is expected
