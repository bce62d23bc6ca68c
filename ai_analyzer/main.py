import os
import io
import json
import time
import asyncio
import logging
import tempfile
from typing import Optional
from contextlib import asynccontextmanager
from dotenv import load_dotenv
from fastapi import FastAPI, UploadFile, File, Form, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from PIL import Image

# Load environment variables at the very beginning
load_dotenv()

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

from ai_analyzer.detectors import AIAnalyzer, MediaCapability
from ai_analyzer.detectors.metadata import (
    get_metadata_signals, extract_image_properties, merge_trusted_metadata,
    EXIF_KEY, GPS_KEY, PNG_KEY, WIDTH_KEY, HEIGHT_KEY,
)
from ai_analyzer.detectors.video import get_video_properties
from ai_analyzer.schemas import DetectionResponse
from ai_analyzer.scoring_config import ScoringConfig


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: build the analyzer once. A missing model aborts startup."""
    if getattr(app.state, "analyzer", None) is None:
        app.state.analyzer = AIAnalyzer.default()
    logger.info("[STARTUP] Analyzer ready")
    yield
    logger.info("[SHUTDOWN] Analyzer stopped")

app = FastAPI(title="AI Media Analyzer API", lifespan=lifespan)

# ---- CORS ----
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

def _parse_sidecar(trusted_metadata: Optional[str]) -> Optional[dict]:
    if not trusted_metadata:
        return None
    try:
        parsed = json.loads(trusted_metadata)
    except ValueError as e:
        logger.warning(f"[SIDECAR] Ignoring malformed trusted_metadata: {e}")
        return None
    if not isinstance(parsed, dict):
        logger.warning("[SIDECAR] Ignoring non-object trusted_metadata")
        return None
    return parsed

def _early_exit_threshold(analysis) -> int:
    config = getattr(analysis, "config", None)
    if config is None:
        return ScoringConfig.THRESHOLDS["EARLY_EXIT"]
    return config.early_exit

def _build_response(result, capability: MediaCapability, props: dict, early_exit: int) -> dict:
    heuristic_score, signals = get_metadata_signals(props)
    bypassed = heuristic_score >= early_exit

    if bypassed:
        summary = "Likely AI (Metadata)"
    elif result.is_ai:
        summary = "Likely AI"
    else:
        summary = "Likely Original"

    return {
        "summary": summary,
        "is_ai": result.is_ai,
        "confidence_score": round(result.confidence, 4),
        "media_type": capability.value,
        "model_bypassed": bypassed,
        "metadata": {
            "heuristic_score": heuristic_score,
            "signals": signals,
            "extracted": {
                "width": props.get(WIDTH_KEY),
                "height": props.get(HEIGHT_KEY),
                "format": props.get("Format"),
                "has_exif": props.get(EXIF_KEY) is not None,
                "has_gps": props.get(GPS_KEY) is not None,
                "has_png": props.get(PNG_KEY) is not None,
            },
        },
    }

# ---- Healthcheck ----
@app.get("/health")
async def health():
    return {"status": "healthy"}

# ---- Detect endpoint ----
@app.post("/detect", response_model=DetectionResponse)
async def detect(
    request: Request,
    file: UploadFile = File(...),
    trusted_metadata: Optional[str] = Form(None),
):
    """
    Detect AI-generated content in images/videos.
    """
    analyzer: AIAnalyzer = request.app.state.analyzer
    capability = MediaCapability.from_mime_type(file.content_type) or MediaCapability.from_filename(file.filename)
    if capability is None or analyzer.find(capability) is None:
        raise HTTPException(status_code=415, detail="No applicable analyzer for this media type")

    sidecar = _parse_sidecar(trusted_metadata)
    start = time.perf_counter()
    data = await file.read()

    if capability == MediaCapability.IMAGE:
        try:
            img = Image.open(io.BytesIO(data))
            img.load()
        except Exception as e:
            logger.warning(f"Invalid image upload {file.filename}: {e}")
            raise HTTPException(status_code=400, detail="Invalid image file")
        with img:
            props = merge_trusted_metadata(extract_image_properties(img), sidecar)
            result = await analyzer.analyze_image(img, props)
    else:
        suffix = os.path.splitext(file.filename or "")[1] or ".mp4"
        tmp_path = None
        try:
            with tempfile.NamedTemporaryFile(delete=False, suffix=suffix) as tmp:
                tmp_path = tmp.name
                tmp.write(data)
            loop = asyncio.get_running_loop()
            props = await loop.run_in_executor(None, get_video_properties, tmp_path)
            props = merge_trusted_metadata(props, sidecar)
            result = await analyzer.analyze_video(tmp_path, props)
        finally:
            if tmp_path and os.path.exists(tmp_path):
                os.remove(tmp_path)

    if result is None:
        raise HTTPException(status_code=415, detail="No applicable analyzer for this media type")

    elapsed_ms = (time.perf_counter() - start) * 1000
    logger.info(f"[TIMING] /detect {capability.value} in {elapsed_ms:.2f}ms")
    return _build_response(result, capability, props, _early_exit_threshold(analyzer.find(capability)))
