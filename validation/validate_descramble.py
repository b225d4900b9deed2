import numpy as np

from descramble import DescrambleConfig, descramble, wiretap_signal
from descramble.cayley import SkewGenerator, opt_dim
from descramble.objective import build_context, make_evaluator


def main() -> None:
    """
    Check the descrambler on a layer with known smooth structure.

    A smooth weight matrix W0 (rows are samples of cos(k t + phi) over the link
    dimension) is scrambled by a random orthogonal R, W = R W0. The
    descrambler sees only S = W X and should return P with P W smooth again,
    i.e. eta(P) well below eta(I).

    Also reports the worst relative mismatch between the analytic gradient and
    centered finite differences at the scrambled starting point.
    """
    rng = np.random.default_rng(0)
    n_link, n_in, n_samples = 16, 64, 2000

    t = np.linspace(0.0, 2.0 * np.pi, n_link, endpoint=False)
    phases = np.linspace(0.0, np.pi, n_in)
    W0 = np.stack([np.cos(t + phi) + 0.3 * np.cos(2.0 * t - phi) for phi in phases], axis=1)  # (n_link, n_in)

    R = SkewGenerator.from_params(rng.standard_normal(opt_dim(n_link)), n_link).cayley().matrix
    W = R @ W0
    X = rng.standard_normal((n_in, n_samples))
    S = wiretap_signal(W, X)

    f = make_evaluator(build_context(S))
    q = 0.1 * rng.standard_normal(opt_dim(n_link))
    _, grad = f(q)
    h = 1e-5
    fd = np.zeros_like(q)
    for i in range(q.size):
        e = np.zeros_like(q)
        e[i] = h
        fd[i] = (f(q + e)[0] - f(q - e)[0]) / (2.0 * h)
    rel = float(np.max(np.abs(grad - fd)) / max(1.0, float(np.max(np.abs(fd)))))
    print(f"[gradient] opt_dim={q.size} max_rel_err={rel:.2e}")

    res = descramble(S, config=DescrambleConfig(n_iter=2000, verbose=True))
    ratio = res.eta / res.eta_initial
    print(
        f"[descramble] eta0={res.eta_initial:.4e} eta={res.eta:.4e} ratio={ratio:.3f} "
        f"orth_err={res.orthogonal.orthogonality_error():.2e}"
    )

    if rel >= 1e-5:
        raise RuntimeError("Gradient check failed.")
    if ratio >= 0.5:
        raise RuntimeError("Smooth-structure recovery check failed.")
    print("Gradient and recovery verified.")


if __name__ == "__main__":
    main()
