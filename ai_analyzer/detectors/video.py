import asyncio
import logging
import time
from typing import List

import cv2
import numpy as np
from PIL import Image

from ai_analyzer.detectors.base import MediaCapability
from ai_analyzer.detectors.image import FusionPipeline
from ai_analyzer.detectors.metadata import WIDTH_KEY, HEIGHT_KEY
from ai_analyzer.detectors.utils import image_to_pixel_buffer

logger = logging.getLogger(__name__)

# Tri-Frame: 20%, 50%, 80% (avoids intro/outro black frames)
SAMPLE_POINTS = (0.20, 0.50, 0.80)


def _extract_video_frames_sync(video_path: str, max_dimension: int = 720) -> List[Image.Image]:
    """
    Synchronous frame extraction (runs in thread pool).
    Resizes immediately to save memory.
    """
    frames = []
    cap = cv2.VideoCapture(video_path)
    try:
        if not cap.isOpened():
            return []

        total_frames = int(cap.get(cv2.CAP_PROP_FRAME_COUNT))
        if total_frames <= 0:
            return []

        t_start = time.perf_counter()
        for point in SAMPLE_POINTS:
            cap.set(cv2.CAP_PROP_POS_FRAMES, int(total_frames * point))
            ret, frame = cap.read()
            if not ret:
                continue
            h, w = frame.shape[:2]
            if max(h, w) > max_dimension:
                scale = max_dimension / max(h, w)
                frame = cv2.resize(frame, (int(w * scale), int(h * scale)), interpolation=cv2.INTER_AREA)
            frames.append(Image.fromarray(cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)))

        extract_ms = (time.perf_counter() - t_start) * 1000
        logger.info(f"[VIDEO] Extracted {len(frames)} frames in {extract_ms:.0f}ms")
    except Exception as e:
        logger.error(f"Error extracting video frames: {e}")
    finally:
        cap.release()
    return frames


async def extract_video_frames(video_path: str) -> List[Image.Image]:
    """Async wrapper for frame extraction (runs in thread pool to avoid blocking)."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, _extract_video_frames_sync, video_path)


def get_video_properties(video_path: str) -> dict:
    """Container-level properties. Videos carry no EXIF/GPS blocks here."""
    cap = cv2.VideoCapture(video_path)
    try:
        if not cap.isOpened():
            return {}
        return {
            WIDTH_KEY: int(cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            HEIGHT_KEY: int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
            "FrameCount": int(cap.get(cv2.CAP_PROP_FRAME_COUNT)),
            "FPS": float(cap.get(cv2.CAP_PROP_FPS)),
        }
    finally:
        cap.release()


class VideoAIAnalyzer(FusionPipeline):
    """Fusion pipeline over a video file path; the model sees sampled frames."""

    media_type = str

    @property
    def capability(self) -> MediaCapability:
        return MediaCapability.VIDEO

    async def model_score(self, media: str) -> float:
        frames = await extract_video_frames(media)
        if not frames:
            logger.warning("[VIDEO] No frames extracted, no model signal")
            return 0.0

        loop = asyncio.get_running_loop()
        frame_scores = []
        for frame in frames:
            pixels = await loop.run_in_executor(None, image_to_pixel_buffer, frame, self.model.input_size)
            if pixels is None:
                continue
            frame_scores.append(await self.model.score(pixels))

        if not frame_scores:
            return 0.0
        median_prob = float(np.median(frame_scores))
        logger.info(f"[VIDEO] Frame scores: {[round(s, 2) for s in frame_scores]} -> median {median_prob:.2f}")
        return median_prob
