from pydantic import BaseModel
from typing import Optional, List, Dict, Any

class MetadataSummary(BaseModel):
    heuristic_score: int
    signals: List[str]
    extracted: Optional[Dict[str, Any]] = None

class DetectionResponse(BaseModel):
    summary: str  # "Likely AI (Metadata)", "Likely AI", "Likely Original"
    is_ai: bool
    confidence_score: float
    media_type: str  # "image", "video"
    model_bypassed: bool = False
    metadata: Optional[MetadataSummary] = None
