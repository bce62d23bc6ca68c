import logging
from typing import Any, Mapping, Optional

from PIL import Image
from PIL.ExifTags import TAGS, GPSTAGS

from ai_analyzer.scoring_config import ScoringConfig

logger = logging.getLogger(__name__)

# Property-dictionary keys consulted by the heuristic
EXIF_KEY = "{Exif}"
TIFF_KEY = "{TIFF}"
GPS_KEY = "{GPS}"
PNG_KEY = "{PNG}"
WIDTH_KEY = "PixelWidth"
HEIGHT_KEY = "PixelHeight"

_EXIF_IFD = 0x8769
_GPS_IFD = 0x8825


def _is_int(val) -> bool:
    # bool is an int subclass but never a pixel dimension
    return isinstance(val, int) and not isinstance(val, bool)


def _has(metadata: Mapping[str, Any], key: str) -> bool:
    return metadata.get(key) is not None


def get_metadata_signals(metadata: Optional[Mapping[str, Any]]) -> tuple:
    """
    Cheap heuristic pass over an image property record.
    Each rule is independent; missing or wrong-typed fields simply don't fire.
    Returns (score, signals) with score in [0, 70].
    """
    if not isinstance(metadata, Mapping):
        metadata = {}

    points = ScoringConfig.METADATA
    score = 0
    signals = []

    # Synthesized images rarely carry capture metadata
    if not _has(metadata, EXIF_KEY):
        score += points["NO_EXIF"]
        signals.append("No EXIF capture block")

    if _has(metadata, PNG_KEY):
        score += points["PNG_BLOCK"]
        signals.append("PNG encoding block present")

    if not _has(metadata, GPS_KEY):
        score += points["NO_GPS"]
        signals.append("No GPS block")

    w = metadata.get(WIDTH_KEY)
    h = metadata.get(HEIGHT_KEY)
    if _is_int(w) and _is_int(h):
        grid = ScoringConfig.GRID_SIZE
        if w % grid == 0 and h % grid == 0:
            score += points["GRID_ALIGNED"]
            signals.append(f"Dimensions aligned to {grid}px grid ({w}x{h})")

    return score, signals


def score_metadata(metadata: Optional[Mapping[str, Any]]) -> int:
    """Heuristic AI-likelihood score for a metadata record (0-70)."""
    score, _ = get_metadata_signals(metadata)
    return score


def _decode_tags(raw: Mapping, names: Mapping) -> dict:
    return {names.get(tag, tag): value for tag, value in raw.items()}


def extract_image_properties(img: Image.Image) -> dict:
    """
    Build a property record for a decoded image, keyed like a platform
    image-properties dictionary.  Blocks are only present when non-empty.
    """
    props = {
        WIDTH_KEY: img.width,
        HEIGHT_KEY: img.height,
        "Format": img.format,
    }

    try:
        exif = img.getexif()
        base = {tag: value for tag, value in exif.items() if tag not in (_EXIF_IFD, _GPS_IFD)}
        if base:
            props[TIFF_KEY] = _decode_tags(base, TAGS)

        sub = exif.get_ifd(_EXIF_IFD)
        if sub:
            props[EXIF_KEY] = _decode_tags(sub, TAGS)

        gps = exif.get_ifd(_GPS_IFD)
        if gps:
            props[GPS_KEY] = _decode_tags(gps, GPSTAGS)
    except Exception as e:
        logger.warning(f"[METADATA] EXIF decode failed: {e}")

    if (img.format or "").upper() == "PNG":
        # Text chunks (tEXt/iTXt/zTXt) carry generator parameters in many AI workflows
        text = getattr(img, "text", None)
        png_block = {}
        if isinstance(text, dict):
            png_block.update(text)
        for k in ("dpi", "gamma", "interlace"):
            if k in img.info:
                png_block[k] = img.info[k]
        props[PNG_KEY] = png_block

    return props


def merge_trusted_metadata(props: dict, trusted: Optional[Mapping[str, Any]]) -> dict:
    """Overlay client-supplied sidecar metadata onto extracted properties."""
    if not trusted:
        return props
    merged = dict(props)
    for key, value in trusted.items():
        if value is None:
            merged.pop(key, None)
        else:
            merged[key] = value
    logger.info(f"[SIDECAR] Merged {len(trusted)} trusted metadata fields")
    return merged
