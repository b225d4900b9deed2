"""
NPZ artifacts for descrambler inputs and outputs.

Input:  <signal>.npz with a (d, m) signal matrix under key "S" (configurable).
Output: <result>.npz with P, Q, objective diagnostics and optimizer history,
plus any scalar/array metadata passed by the caller.
"""

from __future__ import annotations

from pathlib import Path

import numpy as np

from .solve import DescrambleResult


def load_signal(npz_path: Path, key: str = "S") -> np.ndarray:
    """Load a (d, m) signal matrix from an npz file."""
    npz_path = Path(npz_path)
    with np.load(npz_path, allow_pickle=False) as z:
        if key not in z:
            raise KeyError(f"{npz_path} has no array {key!r}; available: {sorted(z.files)}")
        S = np.asarray(z[key], dtype=np.float64).copy()
    if S.ndim != 2:
        raise ValueError(f"{npz_path}[{key!r}] must be 2-D (d, m); got shape {S.shape}.")
    return S


def save_result(out_path: Path, result: DescrambleResult, **metadata) -> Path:
    """Write a DescrambleResult (and metadata arrays) with np.savez_compressed."""
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    reserved = {"P", "Q", "eta", "eta_initial", "grad_norm", "n_iter", "n_fev", "converged", "message", "history"}
    clash = reserved.intersection(metadata)
    if clash:
        raise ValueError(f"metadata keys clash with result fields: {sorted(clash)}")
    np.savez_compressed(
        out_path,
        P=np.asarray(result.P, dtype=np.float64),
        Q=np.asarray(result.Q, dtype=np.float64),
        eta=np.float64(result.eta),
        eta_initial=np.float64(result.eta_initial),
        grad_norm=np.float64(result.grad_norm),
        n_iter=np.int64(result.n_iter),
        n_fev=np.int64(result.n_fev),
        converged=np.bool_(result.converged),
        message=np.array(str(result.message)),
        history=np.asarray(result.history, dtype=np.float64),
        **{k: np.asarray(v) for k, v in metadata.items()},
    )
    return out_path


def load_result(npz_path: Path) -> dict:
    """Load a result npz written by `save_result` into a plain dict."""
    with np.load(Path(npz_path), allow_pickle=False) as z:
        out = dict(
            P=np.asarray(z["P"], dtype=np.float64).copy(),
            Q=np.asarray(z["Q"], dtype=np.float64).copy(),
            eta=float(z["eta"]),
            eta_initial=float(z["eta_initial"]),
            grad_norm=float(z["grad_norm"]),
            n_iter=int(z["n_iter"]),
            n_fev=int(z["n_fev"]),
            converged=bool(z["converged"]),
            message=str(z["message"]),
            history=np.asarray(z["history"], dtype=np.float64).copy(),
        )
        for k in z.files:
            if k not in out:
                out[k] = np.asarray(z[k]).copy()
        return out
