"""
Offline evaluation over a labelled folder tree.

    python -m ai_analyzer.evaluate /path/to/datasets

Labels are inferred from directory names (ai/ vs original/ or real/).
Reports accuracy, confusion counts and how often the model was bypassed.
"""
import argparse
import asyncio
import logging
import os
from dataclasses import dataclass
from typing import Dict, List, Optional

from PIL import Image

from ai_analyzer.detectors import AIAnalyzer, MediaCapability
from ai_analyzer.detectors.base import IMG_EXTS
from ai_analyzer.detectors.metadata import extract_image_properties, score_metadata
from ai_analyzer.scoring_config import ScoringConfig

logger = logging.getLogger(__name__)


@dataclass
class SampleResult:
    path: str
    label: str  # "ai" or "original"
    predicted: str
    confidence: float
    heuristic: int
    bypassed: bool

    @property
    def correct(self) -> bool:
        return self.label == self.predicted


def infer_label_from_path(path: str) -> Optional[str]:
    """Infer ground truth label from folder names."""
    parts = [p.lower() for p in os.path.normpath(path).split(os.sep)]
    ai_markers = {"ai", "aiartdata", "fake", "synthetic"}
    original_markers = {"original", "real", "realart"}

    if any(p in ai_markers for p in parts):
        return "ai"
    if any(p in original_markers for p in parts):
        return "original"
    return None


def iter_image_files(root: str) -> List[str]:
    out = []
    for dirpath, _dirnames, filenames in os.walk(root):
        for fn in filenames:
            if os.path.splitext(fn)[1].lower() in IMG_EXTS:
                out.append(os.path.join(dirpath, fn))
    return sorted(out)


async def run_one(analyzer: AIAnalyzer, path: str, label: str) -> Optional[SampleResult]:
    try:
        with Image.open(path) as img:
            img.load()
            props = extract_image_properties(img)
            result = await analyzer.analyze_image(img, props)
    except Exception as e:
        logger.warning(f"Skipping {path}: {e}")
        return None
    if result is None:
        return None

    heuristic = score_metadata(props)
    config = getattr(analyzer.find(MediaCapability.IMAGE), "config", None)
    early_exit = config.early_exit if config is not None else ScoringConfig.THRESHOLDS["EARLY_EXIT"]
    return SampleResult(
        path=path,
        label=label,
        predicted="ai" if result.is_ai else "original",
        confidence=result.confidence,
        heuristic=heuristic,
        bypassed=heuristic >= early_exit,
    )


def summarize(results: List[SampleResult]) -> Dict[str, float]:
    total = len(results)
    tp = sum(1 for r in results if r.label == "ai" and r.predicted == "ai")
    tn = sum(1 for r in results if r.label == "original" and r.predicted == "original")
    fp = sum(1 for r in results if r.label == "original" and r.predicted == "ai")
    fn = sum(1 for r in results if r.label == "ai" and r.predicted == "original")
    bypassed = sum(1 for r in results if r.bypassed)
    return {
        "total": total,
        "accuracy": (tp + tn) / total if total else 0.0,
        "bypass_rate": bypassed / total if total else 0.0,
        "tp": tp,
        "tn": tn,
        "fp": fp,
        "fn": fn,
    }


async def evaluate(root: str, analyzer: AIAnalyzer, limit: int = 0) -> List[SampleResult]:
    results = []
    files = iter_image_files(root)
    if limit:
        files = files[:limit]
    for path in files:
        label = infer_label_from_path(os.path.relpath(path, root))
        if label is None:
            continue
        sample = await run_one(analyzer, path, label)
        if sample is not None:
            results.append(sample)
    return results


def main(argv: List[str] = None) -> int:
    parser = argparse.ArgumentParser(description="Evaluate the AI analyzer on a labelled image folder.")
    parser.add_argument("root", help="Dataset root containing ai/ and original/ (or real/) folders")
    parser.add_argument("--model-path", default=None, help="Local model directory (defaults to AI_ANALYZER_MODEL_PATH)")
    parser.add_argument("--limit", type=int, default=0, help="Only evaluate the first N images")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.WARNING)

    analyzer = AIAnalyzer.default(model_path=args.model_path)
    results = asyncio.run(evaluate(args.root, analyzer, limit=args.limit))
    if not results:
        print("No labelled images found.")
        return 1

    stats = summarize(results)
    print("\n" + "=" * 30)
    print("EVALUATION RESULTS")
    print("=" * 30)
    print(f"Images:        {stats['total']}")
    print(f"Accuracy:      {stats['accuracy']:.4f}")
    print(f"Model bypass:  {stats['bypass_rate']:.2%}")
    print(f"TP={stats['tp']} TN={stats['tn']} FP={stats['fp']} FN={stats['fn']}")
    print("=" * 30)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
