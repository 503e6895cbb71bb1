from __future__ import annotations
import numpy as np
import logging

def get_logger(name: str = "cloudhull") -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        fmt = logging.Formatter("[%(levelname)s] %(message)s")
        handler.setFormatter(fmt)
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
    return logger

def ensure_unit_vectors(v: np.ndarray, eps: float = 1e-12) -> np.ndarray:
    norms = np.linalg.norm(v, axis=1, keepdims=True)
    norms = np.clip(norms, eps, None)
    return v / norms

def as_points(xyz, name: str = "xyz") -> np.ndarray:
    """Return a float64 (N, 3) copy of ``xyz``; an empty input becomes (0, 3)."""
    arr = np.array(xyz, dtype=np.float64)
    if arr.size == 0:
        return np.zeros((0, 3), dtype=np.float64)
    if arr.ndim != 2 or arr.shape[1] != 3:
        raise ValueError(f"{name} must have shape (N, 3), got {arr.shape}")
    if not np.all(np.isfinite(arr)):
        raise ValueError(f"{name} contains non-finite coordinates")
    return arr

def orient_deterministic(n: np.ndarray) -> np.ndarray:
    # Flip so the largest-magnitude component is positive.
    k = int(np.argmax(np.abs(n)))
    return -n if n[k] < 0 else n
