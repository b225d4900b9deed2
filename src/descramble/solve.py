"""
Descrambler driver: minimize the Tikhonov smoothness objective over the
Cayley-parametrized orthogonal group with limited-memory BFGS.

  q* = argmin_q eta(q),    q in R^(d(d-1)/2), unconstrained
  Q* = L(q*) - L(q*)^T
  P* = (I + Q*)^{-1} (I - Q*)

Wiretap convention for the returned P:
  - S sampled before the activation (S = W X): P W descrambles the output
    dimension of W.
  - S sampled after the activation (S = f(W X)): P^{-1} = P^T descrambles the
    input dimension of the next layer, U -> U P^T.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field

import numpy as np
import scipy.optimize as opt
from tqdm import tqdm

from .cayley import OrthogonalMatrix, SkewGenerator
from .objective import build_context, check_signal, make_evaluator


@dataclass(frozen=True)
class DescrambleConfig:
    """
    Optimizer and backend settings for `descramble`.

    Fields:
      - n_iter: L-BFGS iteration cap (overridden by the `n_iter` argument)
      - lbfgs_memory: number of stored correction pairs
      - gtol, ftol: scipy L-BFGS-B gradient and relative-decrease tolerances
      - max_fun_evals: objective evaluation cap; None means 20*n_iter + 100
      - backend: "numpy" or "jax"
      - derivative_order: order of the Fourier roughness operator
      - verbose: print [descramble] lines and show a tqdm bar
    """

    n_iter: int = 400
    lbfgs_memory: int = 5
    gtol: float = 1e-6
    ftol: float = 1e-12
    max_fun_evals: int | None = None
    backend: str = "numpy"
    derivative_order: int = 2
    verbose: bool = False


@dataclass
class DescrambleResult:
    """
    Descrambler output.

    Fields:
      - P: (d, d) orthogonal descrambling matrix
      - Q: (d, d) skew-symmetric generator with P = (I+Q)^{-1}(I-Q)
      - eta: objective at Q
      - eta_initial: objective at the initial guess
      - grad_norm: 2-norm of the gradient at Q
      - n_iter, n_fev: optimizer iterations and objective evaluations
      - converged: optimizer reported success (False is not an error)
      - message: optimizer termination message
      - history: (n_iter+1,) objective per iteration, starting at the guess
    """

    P: np.ndarray
    Q: np.ndarray
    eta: float
    eta_initial: float
    grad_norm: float
    n_iter: int
    n_fev: int
    converged: bool
    message: str
    history: np.ndarray = field(default_factory=lambda: np.empty((0,), dtype=np.float64))

    @property
    def orthogonal(self) -> OrthogonalMatrix:
        return OrthogonalMatrix(self.P)


def _check_n_iter(n_iter) -> int:
    if isinstance(n_iter, (bool, np.bool_)):
        raise ValueError("n_iter must be a positive real integer.")
    if not isinstance(n_iter, (int, float, np.integer, np.floating)):
        raise ValueError("n_iter must be a positive real integer.")
    if not np.isfinite(n_iter) or float(n_iter) % 1.0 != 0.0 or n_iter < 1:
        raise ValueError("n_iter must be a positive real integer.")
    return int(n_iter)


def _initial_generator(guess, n: int) -> SkewGenerator:
    if guess is None:
        return SkewGenerator.zeros(n)
    g = np.asarray(guess)
    if g.ndim != 2 or g.shape != (n, n):
        raise ValueError(f"guess must have shape {(n, n)} to match S; got {g.shape}.")
    return SkewGenerator.from_matrix(g)


def descramble(
    S: np.ndarray,
    n_iter: int | None = None,
    guess: np.ndarray | None = None,
    *,
    config: DescrambleConfig | None = None,
) -> DescrambleResult:
    """
    Find the orthogonal P that makes the rows of P S smooth.

    Args:
      S: (d, m) real matrix; columns are layer outputs for m inputs.
      n_iter: iteration cap (overrides config.n_iter); ~400 is usually enough.
      guess: optional (d, d) initial generator; only its strictly lower
        triangle is used. Default is zero (start from P = I).
      config: optimizer/backend settings.

    Returns:
      DescrambleResult. Hitting the iteration cap returns the last iterate
      with converged=False.
    """
    cfg = config if config is not None else DescrambleConfig()
    S = check_signal(S)
    n_iter = _check_n_iter(cfg.n_iter if n_iter is None else n_iter)
    n = int(S.shape[0])
    q0 = _initial_generator(guess, n)
    lbfgs_memory = int(cfg.lbfgs_memory)
    if lbfgs_memory < 1:
        raise ValueError("lbfgs_memory must be a positive integer.")
    max_fun = int(cfg.max_fun_evals) if cfg.max_fun_evals is not None else 20 * n_iter + 100

    ctx = build_context(S, backend=cfg.backend, derivative_order=int(cfg.derivative_order))
    evaluate_q = make_evaluator(ctx)

    last: dict = {}

    def reg_sig(q: np.ndarray) -> tuple[float, np.ndarray]:
        eta, grad = evaluate_q(q)
        last["q"], last["eta"] = np.array(q, copy=True), eta
        return eta, grad

    t0 = time.perf_counter()
    eta0, _ = reg_sig(q0.params)
    history = [eta0]
    if cfg.verbose:
        print(
            f"[descramble] d={n} m={S.shape[1]} opt_dim={ctx.opt_dim} "
            f"backend={ctx.backend.name} n_iter={n_iter} eta0={eta0:.6e}",
            flush=True,
        )

    bar = tqdm(total=n_iter, desc="descramble", leave=True, disable=not cfg.verbose)

    def callback(xk: np.ndarray) -> None:
        if "q" in last and np.array_equal(last["q"], xk):
            eta_k = float(last["eta"])
        else:
            eta_k, _ = evaluate_q(xk)
        history.append(eta_k)
        bar.update(1)
        bar.set_postfix(eta=f"{eta_k:.6e}")

    try:
        res = opt.minimize(
            reg_sig,
            np.array(q0.params, copy=True),
            jac=True,
            method="L-BFGS-B",
            callback=callback,
            options=dict(
                maxiter=n_iter,
                maxfun=max_fun,
                maxcor=lbfgs_memory,
                gtol=float(cfg.gtol),
                ftol=float(cfg.ftol),
            ),
        )
    finally:
        bar.close()

    gen = SkewGenerator.from_params(np.asarray(res.x, dtype=np.float64), n)
    eta, grad = evaluate_q(gen.params)
    Q = gen.matrix
    P = gen.cayley().matrix

    message = res.message.decode() if isinstance(res.message, bytes) else str(res.message)
    result = DescrambleResult(
        P=P,
        Q=Q,
        eta=float(eta),
        eta_initial=float(eta0),
        grad_norm=float(np.linalg.norm(grad)),
        n_iter=int(res.nit),
        n_fev=int(res.nfev),
        converged=bool(res.success),
        message=message,
        history=np.asarray(history, dtype=np.float64),
    )
    if cfg.verbose:
        print(
            f"[descramble] done n_iter={result.n_iter} n_fev={result.n_fev} "
            f"eta={result.eta:.6e} (eta0={result.eta_initial:.6e}) "
            f"|grad|={result.grad_norm:.3e} converged={result.converged} "
            f"time={time.perf_counter() - t0:.2f}s  {message}",
            flush=True,
        )
    return result


def descramble_matrix(
    S: np.ndarray,
    n_iter: int,
    guess: np.ndarray | None = None,
) -> tuple[np.ndarray, np.ndarray]:
    """Functional form: returns (P, Q) only."""
    res = descramble(S, n_iter, guess)
    return res.P, res.Q
