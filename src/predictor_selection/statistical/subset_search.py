"""
Least-Correlated Predictor Subset Search

Given a correlation matrix over a small predictor set (typically the 19
WorldClim bioclimatic variables), find the k predictors whose worst pairwise
|correlation| is as small as possible.

This is an exhaustive search: every one of the C(n, k) candidate subsets is
scored with O(k^2) lookups, so the cost grows exponentially with n. It is
tractable for n up to ~20 and should not be pointed at large feature sets.
"""

import logging
from dataclasses import dataclass
from itertools import combinations
from typing import Dict, Optional, Sequence, Tuple
import numpy as np
import pandas as pd
from scipy.special import comb

from ..exceptions import InvalidArgument
from .correlation_analysis import validate_correlation_matrix

logger = logging.getLogger(__name__)

LARGE_SEARCH_WARNING = 10_000_000


@dataclass(frozen=True)
class SelectionResult:
    """Best k-subset found by the search and its worst pairwise |r|."""

    variables: Tuple[str, ...]
    score: float
    k: int
    n_candidates_evaluated: int

    def as_set(self) -> frozenset:
        return frozenset(self.variables)


def _check_subset_size(n_variables: int, k) -> None:
    if isinstance(k, bool) or not isinstance(k, (int, np.integer)):
        raise InvalidArgument(f"Subset size must be an integer, got {k!r}")
    if n_variables < 2:
        raise InvalidArgument(f"Need at least 2 variables, got {n_variables}")
    if k < 2:
        raise InvalidArgument(f"Subset size must be at least 2, got {k}")
    if k > n_variables:
        raise InvalidArgument(f"Subset size {k} exceeds the number of variables ({n_variables})")


def max_abs_pairwise_correlation(correlation_matrix: pd.DataFrame, variables: Sequence[str]) -> float:
    """Worst-case |r| among ``variables`` (diagonal excluded)."""
    if len(variables) < 2:
        raise InvalidArgument("A pairwise score needs at least 2 variables")

    sub = correlation_matrix.loc[list(variables), list(variables)].to_numpy(dtype=float)
    return float(np.abs(sub[np.triu_indices(len(variables), k=1)]).max())


def find_least_correlated_subset(
    correlation_matrix: pd.DataFrame,
    k: int,
    validate: bool = True,
    max_combinations: Optional[int] = None
) -> SelectionResult:
    """
    Exhaustive search for the k-subset minimising the maximum pairwise |r|.

    Candidates are enumerated in lexicographic order over the matrix column
    order and only a strictly smaller score replaces the incumbent, so ties
    resolve to the first subset in that order.

    Args:
        correlation_matrix: Square labelled matrix (index == columns)
        k: Subset size, 2 <= k <= n
        validate: Check the matrix structure first (raises MalformedMatrix)
        max_combinations: Refuse searches with more candidates than this

    Returns:
        SelectionResult with the chosen variables (in column order) and score
    """
    if validate:
        validate_correlation_matrix(correlation_matrix)

    names = list(correlation_matrix.columns)
    n_variables = len(names)
    _check_subset_size(n_variables, k)

    n_candidates = int(comb(n_variables, k, exact=True))
    if max_combinations is not None and n_candidates > max_combinations:
        raise InvalidArgument(
            f"C({n_variables}, {k}) = {n_candidates} candidates exceeds max_combinations={max_combinations}"
        )
    if n_candidates > LARGE_SEARCH_WARNING:
        logger.warning(f"Exhaustive search over {n_candidates} subsets; this may take a long time")

    logger.info(f"Searching {n_candidates} subsets of size {k} from {n_variables} variables")

    abs_corr = np.abs(correlation_matrix.to_numpy(dtype=float)).tolist()
    pair_positions = list(combinations(range(k), 2))

    best_subset = None
    best_score = float('inf')

    for candidate in combinations(range(n_variables), k):
        worst = 0.0
        for a, b in pair_positions:
            value = abs_corr[candidate[a]][candidate[b]]
            if value > worst:
                worst = value
                # cannot strictly beat the incumbent any more
                if worst >= best_score:
                    break

        if worst < best_score:
            best_score = worst
            best_subset = candidate

    result = SelectionResult(
        variables=tuple(names[i] for i in best_subset),
        score=float(best_score),
        k=k,
        n_candidates_evaluated=n_candidates,
    )

    logger.info(f"Least-correlated subset (k={k}): {list(result.variables)} max |r| = {result.score:.4f}")
    return result


class LeastCorrelatedSubsetSelector:
    """
    Stateful wrapper around the exhaustive subset search.

    Keeps the last result and, for ``select_for_sizes``, the optimal score
    at every requested subset size so the score-versus-k curve can be
    inspected before settling on a predictor count.
    """

    def __init__(self, validate: bool = True, max_combinations: Optional[int] = None):
        self.validate = validate
        self.max_combinations = max_combinations

        self.result_ = None
        self.results_by_k_ = {}
        self.scores_by_k_ = {}

    def select(self, correlation_matrix: pd.DataFrame, k: int) -> SelectionResult:
        result = find_least_correlated_subset(
            correlation_matrix,
            k,
            validate=self.validate,
            max_combinations=self.max_combinations
        )
        self.result_ = result
        self.results_by_k_[k] = result
        self.scores_by_k_[k] = result.score
        return result

    def select_for_sizes(
        self,
        correlation_matrix: pd.DataFrame,
        sizes: Sequence[int]
    ) -> Dict[int, SelectionResult]:
        """Optimal subset for each size in ``sizes`` (validated once)."""
        if not sizes:
            raise InvalidArgument("No subset sizes requested")

        if self.validate:
            validate_correlation_matrix(correlation_matrix)

        results = {}
        for k in sorted(set(sizes)):
            results[k] = find_least_correlated_subset(
                correlation_matrix,
                k,
                validate=False,
                max_combinations=self.max_combinations
            )

        self.results_by_k_.update(results)
        self.scores_by_k_.update({k: r.score for k, r in results.items()})
        self.result_ = results[max(results)]
        return results

    def largest_size_within(self, threshold: float) -> Optional[SelectionResult]:
        """Largest searched subset whose score stays below ``threshold``."""
        eligible = [k for k, score in self.scores_by_k_.items() if score < threshold]
        if not eligible:
            return None
        return self.results_by_k_[max(eligible)]

    def get_score_table(self) -> pd.DataFrame:
        if not self.results_by_k_:
            raise ValueError("No search performed - call select or select_for_sizes first")

        rows = [
            {'k': k, 'score': r.score, 'variables': ', '.join(map(str, r.variables))}
            for k, r in sorted(self.results_by_k_.items())
        ]
        return pd.DataFrame(rows)
