"""
descramble: smooth-basis descrambling of neural-network weight matrices.

The main public entry points are:
  - `descramble` (orthogonal P minimizing the Tikhonov roughness of P S)
  - `wiretap_signal` / `augmented_signal` (assemble S for a layer)
  - `descramble_weights` / `descramble_next_layer` (apply P)
"""

from .cayley import OrthogonalMatrix, SkewGenerator, cayley_transform, opt_dim
from .interpret import (
    augmented_signal,
    chebyshev_fit,
    descramble_next_layer,
    descramble_weights,
    fourier_image,
    singular_modes,
    wiretap_signal,
)
from .objective import SmoothnessContext, build_context, evaluate, make_evaluator
from .operator import fourier_diff_matrix, second_derivative_operator
from .solve import DescrambleConfig, DescrambleResult, descramble, descramble_matrix

__all__ = [
    "DescrambleConfig",
    "DescrambleResult",
    "OrthogonalMatrix",
    "SkewGenerator",
    "SmoothnessContext",
    "augmented_signal",
    "build_context",
    "cayley_transform",
    "chebyshev_fit",
    "descramble",
    "descramble_matrix",
    "descramble_next_layer",
    "descramble_weights",
    "evaluate",
    "fourier_diff_matrix",
    "fourier_image",
    "make_evaluator",
    "opt_dim",
    "second_derivative_operator",
    "singular_modes",
    "wiretap_signal",
]
