"""
Configuration for AI Analysis Scoring Weights and Thresholds.
Centralizes "magic numbers" for easier tuning.
"""
import os


class ScoringConfig:
    # --- Metadata Heuristic Points ---
    METADATA = {
        "NO_EXIF": 30,          # No capture metadata block
        "PNG_BLOCK": 15,        # Generators commonly export PNG
        "NO_GPS": 5,
        "GRID_ALIGNED": 20,     # Width and height both multiples of GRID_SIZE
    }

    # Diffusion models work on latent grids aligned to 64px
    GRID_SIZE = 64

    # --- Thresholds ---
    THRESHOLDS = {
        # Early Exit: heuristic score at or above this skips the model entirely
        "EARLY_EXIT": 60,
        # Final verdict: fused confidence strictly above this is AI
        "DECISION": 0.5,
    }

    # --- Fusion Weights ---
    WEIGHTS = {
        "MODEL": 0.7,
        "METADATA": 0.3,
    }

    # --- Model Input ---
    MODEL = {
        "INPUT_SIZE": 224,
        "SYNTHETIC_INDEX": 1,
        "OUTPUT_NAME": "logits",
    }

    def __init__(self, early_exit=None, model_weight=None, metadata_weight=None, decision=None):
        # Instance overrides fall back to the class-level defaults
        self.early_exit = early_exit if early_exit is not None else self.THRESHOLDS["EARLY_EXIT"]
        self.model_weight = model_weight if model_weight is not None else self.WEIGHTS["MODEL"]
        self.metadata_weight = metadata_weight if metadata_weight is not None else self.WEIGHTS["METADATA"]
        self.decision = decision if decision is not None else self.THRESHOLDS["DECISION"]


def get_model_config() -> dict:
    return {
        "model_path": os.getenv("AI_ANALYZER_MODEL_PATH", os.path.join("models", "ai-detector")),
        "device": os.getenv("AI_ANALYZER_DEVICE", "auto"),
        "output_name": os.getenv("AI_ANALYZER_OUTPUT_NAME", ScoringConfig.MODEL["OUTPUT_NAME"]),
    }
