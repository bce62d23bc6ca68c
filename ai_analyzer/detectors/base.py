"""
Core types shared by every analysis strategy.

An ``Analysis`` handles exactly one kind of media and declares it through
``capability``.  Strategies bind to different concrete media types
(a Pillow image, a video path, ...), so the registry stores them behind
``AnyAnalysis``, which checks the incoming payload before delegating.
"""
import logging
import mimetypes
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Mapping, Optional

logger = logging.getLogger(__name__)

IMG_EXTS = {".jpg", ".jpeg", ".png", ".webp", ".heic", ".gif", ".bmp", ".tif", ".tiff"}
VID_EXTS = {".mp4", ".mov", ".avi", ".mkv", ".webm"}


class MediaCapability(Enum):
    """Media types an analysis strategy can declare."""
    IMAGE = "image"
    VIDEO = "video"

    @classmethod
    def from_mime_type(cls, mime_type: Optional[str]) -> Optional["MediaCapability"]:
        """
        Map a MIME type (e.g. ``image/png``) to a capability.
        Unsupported families (audio, text, unknown) map to None.
        """
        if not mime_type:
            return None
        family = mime_type.split("/", 1)[0].strip().lower()
        if family == "image":
            return cls.IMAGE
        if family == "video":
            return cls.VIDEO
        return None

    @classmethod
    def from_filename(cls, filename: Optional[str]) -> Optional["MediaCapability"]:
        if not filename:
            return None
        ext = os.path.splitext(filename)[1].lower()
        if ext in IMG_EXTS:
            return cls.IMAGE
        if ext in VID_EXTS:
            return cls.VIDEO
        mime_type, _ = mimetypes.guess_type(filename)
        return cls.from_mime_type(mime_type)


@dataclass(frozen=True)
class AnalysisResult:
    """Verdict for one analysed asset. ``confidence`` is in [0, 1]."""
    is_ai: bool
    confidence: float

    def to_dict(self) -> dict:
        return asdict(self)


class Analysis(ABC):
    """
    Base class for a media-specific analysis strategy.

    Subclasses must:
    1. Set ``media_type`` to the concrete type ``analyze`` accepts
    2. Return their ``capability`` tag
    3. Keep no per-request state on ``self``
    """

    media_type: type = object

    @property
    @abstractmethod
    def capability(self) -> MediaCapability:
        pass

    @abstractmethod
    async def analyze(self, media: Any, metadata: Mapping[str, Any]) -> AnalysisResult:
        """
        Analyze one asset.

        Args:
            media: Media of type ``media_type``
            metadata: Descriptive metadata record for the asset

        Returns:
            AnalysisResult with verdict and confidence
        """
        pass


class AnyAnalysis:
    """
    Type-erasing wrapper so strategies over different media types can live
    in one ordered collection.  A payload that does not match the wrapped
    strategy's ``media_type`` yields None instead of reaching the strategy.
    """

    def __init__(self, analysis: Analysis):
        self._analysis = analysis
        self.capability = analysis.capability
        self.name = analysis.__class__.__name__

    @property
    def media_type(self) -> type:
        return self._analysis.media_type

    @property
    def config(self):
        """Scoring config of the wrapped strategy, None if it has none."""
        return getattr(self._analysis, "config", None)

    async def analyze(self, media: Any, metadata: Mapping[str, Any]) -> Optional[AnalysisResult]:
        if not isinstance(media, self._analysis.media_type):
            logger.warning(
                f"[DISPATCH] {self.name} expects {self._analysis.media_type.__name__}, "
                f"got {type(media).__name__}"
            )
            return None
        return await self._analysis.analyze(media, metadata)

    def __repr__(self) -> str:
        return f"AnyAnalysis({self.name}, {self.capability.value})"
