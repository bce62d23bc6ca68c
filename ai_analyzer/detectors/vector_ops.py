from typing import List, Sequence

import numpy as np


def softmax(logits: Sequence[float]) -> List[float]:
    """
    Numerically stable softmax. Empty input gives an empty distribution.
    """
    arr = np.asarray(logits, dtype=np.float64).reshape(-1)
    if arr.size == 0:
        return []
    exps = np.exp(arr - arr.max())
    return (exps / exps.sum()).tolist()


def to_float_list(tensor) -> List[float]:
    """Flatten a model output (numpy, torch, nested lists) into floats."""
    if hasattr(tensor, "detach"):
        tensor = tensor.detach().cpu().numpy()
    arr = np.asarray(tensor, dtype=np.float32)
    return [float(x) for x in arr.reshape(-1)]
