#!/usr/bin/env python3
"""
Descramble one layer from a signal matrix stored on disk.

Usage:
  python run_descramble.py <signal.npz> <out.npz> [n_iter] [backend] [guess.npz]

Input:  <signal.npz> with S (d, m): columns are layer outputs for m inputs.
Output: <out.npz> with P, Q (d, d) and optimizer diagnostics
        (see descramble.artifact_io.save_result).

The optional guess npz must hold a (d, d) array under key "guess"; only its
strictly lower triangle is used.
"""

from __future__ import annotations

import pathlib
import sys

import numpy as np

BASE_DIR = pathlib.Path(__file__).resolve().parent
REPO_DIR = BASE_DIR.parent

if str(REPO_DIR / "src") not in sys.path:
    sys.path.insert(0, str(REPO_DIR / "src"))

from descramble import DescrambleConfig, descramble
from descramble import artifact_io


def main() -> None:
    if len(sys.argv) < 3:
        raise SystemExit(__doc__)
    signal_path = pathlib.Path(sys.argv[1])
    out_path = pathlib.Path(sys.argv[2])
    n_iter = int(sys.argv[3]) if len(sys.argv) >= 4 else 400
    backend = sys.argv[4] if len(sys.argv) >= 5 else "numpy"
    guess = None
    if len(sys.argv) >= 6:
        with np.load(pathlib.Path(sys.argv[5]), allow_pickle=False) as z:
            guess = np.asarray(z["guess"], dtype=np.float64)

    if not signal_path.exists():
        raise RuntimeError(f"Signal file does not exist: {signal_path}")
    S = artifact_io.load_signal(signal_path)
    print(f"[load] {signal_path} S={S.shape}", flush=True)

    cfg = DescrambleConfig(n_iter=n_iter, backend=backend, verbose=True)
    result = descramble(S, guess=guess, config=cfg)

    artifact_io.save_result(out_path, result, source_signal_path=str(signal_path))
    print(
        f"[write] {out_path} d={result.P.shape[0]} eta={result.eta:.6e} "
        f"orth_err={result.orthogonal.orthogonality_error():.2e}",
        flush=True,
    )


if __name__ == "__main__":
    main()
