"""
Learned-model stage of the pipeline.

``ModelInferenceAdapter`` owns one classifier, loaded lazily on first use
and shared read-only afterwards.  Anything that goes wrong while scoring
(bad buffer, failed load, runtime error, odd output tensor) reads as
"no evidence of synthetic origin" and scores 0.0.

The only fatal condition is a missing model artifact, detected when the
adapter is constructed.
"""
import asyncio
import logging
import os
import threading
import time
from functools import partial
from typing import Any, Callable, Dict, Optional

import numpy as np

from ai_analyzer.detectors.vector_ops import softmax, to_float_list
from ai_analyzer.scoring_config import ScoringConfig, get_model_config

logger = logging.getLogger(__name__)


class ModelNotFoundError(RuntimeError):
    """Raised when the required model artifact is missing."""
    pass


def check_model_artifact(model_path: str) -> None:
    if not os.path.isdir(model_path):
        raise ModelNotFoundError(f"Model directory not found: {model_path}")
    if not os.path.isfile(os.path.join(model_path, "config.json")):
        raise ModelNotFoundError(f"Model config.json missing in {model_path}")


class TorchClassifier:
    """
    Image classifier loaded from a local HuggingFace model directory.
    ``predict`` takes a (H, W, 3) float buffer in [0, 1] and returns named outputs.
    """

    def __init__(self, model_path: str, device: str = "auto", output_name: str = "logits"):
        import torch
        from transformers import AutoImageProcessor, AutoModelForImageClassification

        if device == "auto":
            device = "cuda" if torch.cuda.is_available() else "cpu"
        self.device = device
        self.output_name = output_name

        processor = AutoImageProcessor.from_pretrained(model_path)
        self.mean = np.asarray(getattr(processor, "image_mean", None) or [0.5, 0.5, 0.5], dtype=np.float32)
        self.std = np.asarray(getattr(processor, "image_std", None) or [0.5, 0.5, 0.5], dtype=np.float32)

        self.model = AutoModelForImageClassification.from_pretrained(model_path).to(self.device).eval()
        logger.info(f"[MODEL] Loaded {model_path} on {self.device}. Labels: {self.model.config.id2label}")

    def predict(self, pixels: np.ndarray) -> Dict[str, Any]:
        import torch

        x = (pixels - self.mean) / self.std
        tensor = torch.from_numpy(np.ascontiguousarray(x.transpose(2, 0, 1))).unsqueeze(0)
        tensor = tensor.to(self.device, dtype=torch.float32)
        with torch.no_grad():
            outputs = self.model(pixel_values=tensor)
        return {self.output_name: outputs.logits[0].float().cpu().numpy()}


class ModelInferenceAdapter:
    _shared: Optional["ModelInferenceAdapter"] = None
    _shared_lock = threading.Lock()

    def __init__(
        self,
        model_path: str = None,
        loader: Callable[[], Any] = None,
        output_name: str = None,
        device: str = None,
        input_size: int = None,
    ):
        config = get_model_config()
        self.model_path = model_path or config["model_path"]
        self.output_name = output_name or config["output_name"]
        self.input_size = input_size or ScoringConfig.MODEL["INPUT_SIZE"]
        self.synthetic_index = ScoringConfig.MODEL["SYNTHETIC_INDEX"]

        if loader is None:
            # Refuse to run ML-backed analysis against a missing model
            check_model_artifact(self.model_path)
            loader = partial(TorchClassifier, self.model_path, device or config["device"], self.output_name)

        self._loader = loader
        self._classifier = None
        self._lock = threading.Lock()

    @classmethod
    def shared(cls, model_path: str = None) -> "ModelInferenceAdapter":
        """Process-wide adapter; the first caller's arguments win."""
        if cls._shared is None:
            with cls._shared_lock:
                if cls._shared is None:
                    cls._shared = cls(model_path=model_path)
        return cls._shared

    @property
    def is_loaded(self) -> bool:
        return self._classifier is not None

    def _get_classifier(self):
        if self._classifier is None:
            with self._lock:
                if self._classifier is None:
                    t_start = time.perf_counter()
                    self._classifier = self._loader()
                    load_ms = (time.perf_counter() - t_start) * 1000
                    logger.info(f"[TIMING] Model load: {load_ms:.2f}ms")
        return self._classifier

    def _validate(self, pixels) -> np.ndarray:
        if pixels is None:
            raise ValueError("No pixel buffer")
        arr = np.asarray(pixels, dtype=np.float32)
        expected = (self.input_size, self.input_size, 3)
        if arr.shape != expected:
            raise ValueError(f"Pixel buffer shape {arr.shape}, expected {expected}")
        if not np.all(np.isfinite(arr)):
            raise ValueError("Pixel buffer contains non-finite values")
        return arr

    def score_sync(self, pixels) -> float:
        """Blocking inference. Returns P(synthetic) or 0.0 on any failure."""
        try:
            arr = self._validate(pixels)
            classifier = self._get_classifier()

            t_start = time.perf_counter()
            outputs = classifier.predict(arr)
            inf_ms = (time.perf_counter() - t_start) * 1000
            logger.info(f"[TIMING] Inference: {inf_ms:.2f}ms")

            if not outputs or outputs.get(self.output_name) is None:
                logger.warning(f"[MODEL] Output '{self.output_name}' missing")
                return 0.0

            logits = to_float_list(outputs[self.output_name])
            if not np.all(np.isfinite(logits)):
                logger.warning(f"[MODEL] Non-finite logits {logits}, no model signal")
                return 0.0

            probs = softmax(logits)
            if len(probs) <= self.synthetic_index:
                logger.warning(f"[MODEL] Expected at least 2 outputs, got {len(probs)}")
                return 0.0
            return probs[self.synthetic_index]
        except Exception as e:
            logger.error(f"[MODEL] Scoring failed: {e}", exc_info=True)
            return 0.0

    async def score(self, pixels) -> float:
        """Run inference off the event loop."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.score_sync, pixels)
