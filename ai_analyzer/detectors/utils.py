import logging
from typing import Optional, Union

import numpy as np
from PIL import Image

from ai_analyzer.scoring_config import ScoringConfig

logger = logging.getLogger(__name__)


def image_to_pixel_buffer(source: Union[str, Image.Image], size: int = None) -> Optional[np.ndarray]:
    """
    Decode and resize an image to the model's fixed input grid.
    Returns a (size, size, 3) float32 RGB array in [0, 1], or None on failure.
    """
    size = size or ScoringConfig.MODEL["INPUT_SIZE"]
    try:
        if isinstance(source, str):
            with Image.open(source) as img:
                img = img.convert("RGB")
        else:
            img = source
            if img.mode != "RGB":
                img = img.convert("RGB")

        # Stretch to the grid, aspect ratio is not preserved
        resized = img.resize((size, size), Image.Resampling.BILINEAR)
        return np.asarray(resized, dtype=np.float32) / 255.0
    except Exception as e:
        logger.error(f"Pixel conversion failed: {e}")
        return None
