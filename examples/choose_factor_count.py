"""
Choosing the Number of Factors
==============================

Three factors hide behind twelve simulated variables. The scree, VSS and
MAP diagnostics are printed side by side.
"""
import numpy as np

from efa_lab import (
    correlation_matrix,
    eigen_decomposition,
    simulate_dataset,
    very_simple_structure,
)


def three_factor_loadings(per_factor=4, strength=0.7):
    k = 3
    loadings = np.zeros((per_factor * k, k))
    for j in range(k):
        loadings[j * per_factor:(j + 1) * per_factor, j] = strength
    return loadings


def main(n_obs=1000, seed=7, max_factors=5, **kwargs):
    print("=" * 70)
    print(f"Running Factor Count Example (n={n_obs}, max_factors={max_factors})")
    print("=" * 70)

    data = simulate_dataset(three_factor_loadings(), n_obs, rng=np.random.default_rng(seed))
    corr = correlation_matrix(data)

    eig = eigen_decomposition(corr)
    print("\n1. Scree")
    print("   Eigenvalues:", np.round(eig.eigenvalues, 2))
    print(f"   Kaiser criterion: {eig.kaiser_count} factors")

    result = very_simple_structure(corr, max_factors=max_factors, rotation="varimax")
    print("\n2. Very Simple Structure")
    print(result.to_frame().round(3).to_string())
    print(f"\n   Complexity 1 peaks at {result.best_complexity_1}")
    print(f"   MAP minimum at {result.best_map}")

    print("\n" + "=" * 70)
    print("Factor count selection complete!")
    print("=" * 70)

    return result


if __name__ == "__main__":
    main()
