"""
Mathematical utility functions for probability calculations.

This module provides the hypergeometric distribution used by the castability
engine to answer "how likely is it to have drawn at least k of these cards".
Binomial coefficients are evaluated in log space from a log-factorial table
that is built once per ``Hypergeometric`` instance and never mutated, so a
single instance can be shared freely between threads.

Impossible configurations (negative counts, samples larger than the deck,
k outside the support) are answered with probability 0 instead of raising.
"""

from __future__ import annotations

import math

from utils.constants.engine import MIN_TABLE_SIZE


def _clamp_probability(value: float) -> float:
    return min(1.0, max(0.0, value))


class Hypergeometric:
    """Hypergeometric distribution backed by a precomputed log-factorial table."""

    def __init__(self, max_population: int = 200) -> None:
        size = max(int(max_population), MIN_TABLE_SIZE)
        log_factorials = [0.0] * (size + 1)
        for i in range(1, size + 1):
            log_factorials[i] = log_factorials[i - 1] + math.log(i)
        self._log_factorials: tuple[float, ...] = tuple(log_factorials)
        self.max_population = size

    def _log_choose(self, n: int, k: int) -> float:
        if k < 0 or k > n:
            return -math.inf
        lf = self._log_factorials
        return lf[n] - lf[k] - lf[n - k]

    def pmf(self, population: int, successes_in_pop: int, sample_size: int, k: int) -> float:
        """
        Probability of drawing exactly ``k`` successes.

        Formula: P(X = k) = [C(K, k) × C(N-K, n-k)] / C(N, n)

        Args:
            population: Total number of cards in the deck (N)
            successes_in_pop: Number of target cards in the deck (K)
            sample_size: Number of cards drawn (n)
            k: Exact number of target cards wanted

        Returns:
            Probability between 0.0 and 1.0 (0.0 outside the valid support)

        Raises:
            ValueError: If the population exceeds the table built for this instance
        """
        if population < 0 or successes_in_pop < 0 or sample_size < 0:
            return 0.0
        if successes_in_pop > population or sample_size > population:
            return 0.0
        if population > self.max_population:
            raise ValueError(
                f"Population ({population}) exceeds log-factorial table size "
                f"({self.max_population})"
            )

        k_min = max(0, sample_size - (population - successes_in_pop))
        k_max = min(successes_in_pop, sample_size)
        if k < k_min or k > k_max:
            return 0.0

        log_p = (
            self._log_choose(successes_in_pop, k)
            + self._log_choose(population - successes_in_pop, sample_size - k)
            - self._log_choose(population, sample_size)
        )
        return math.exp(log_p)

    def at_least(
        self, population: int, successes_in_pop: int, sample_size: int, min_successes: int
    ) -> float:
        """Probability of drawing at least ``min_successes`` target cards, P(X >= k_min)."""
        if min_successes <= 0:
            return 1.0
        max_successes = min(successes_in_pop, sample_size)
        if min_successes > max_successes:
            return 0.0

        total = 0.0
        for k in range(min_successes, max_successes + 1):
            total += self.pmf(population, successes_in_pop, sample_size, k)
        return _clamp_probability(total)

    def at_most(
        self, population: int, successes_in_pop: int, sample_size: int, max_successes: int
    ) -> float:
        """Probability of drawing at most ``max_successes`` target cards, P(X <= k_max)."""
        k_min = max(0, sample_size - (population - successes_in_pop))
        upper = min(max_successes, successes_in_pop, sample_size)
        if upper < k_min:
            return 0.0

        total = 0.0
        for k in range(k_min, upper + 1):
            total += self.pmf(population, successes_in_pop, sample_size, k)
        return _clamp_probability(total)

    def at_least_one_copy(self, deck_size: int, copies: int, cards_seen: int) -> float:
        """
        Probability of seeing at least one copy of a card.

        Example:
            >>> # At least one copy of a 4-of in a 7-card opening hand
            >>> Hypergeometric().at_least_one_copy(60, 4, 7)
            0.3994...
        """
        if copies <= 0:
            return 0.0
        miss = self.pmf(deck_size, copies, cards_seen, 0)
        return _clamp_probability(1.0 - miss)


_DEFAULT_TABLE = Hypergeometric()


def hypergeometric_probability(
    population: int,
    successes_in_pop: int,
    sample_size: int,
    successes_in_sample: int,
) -> float:
    """
    Calculate the exact probability of drawing a specific number of target cards.

    Example:
        >>> # Probability of drawing exactly 1 Lightning Bolt in opening hand
        >>> # (4 copies in 60-card deck, drawing 7 cards)
        >>> hypergeometric_probability(60, 4, 7, 1)
        0.3363...
    """
    return _DEFAULT_TABLE.pmf(population, successes_in_pop, sample_size, successes_in_sample)


def hypergeometric_at_least(
    population: int,
    successes_in_pop: int,
    sample_size: int,
    min_successes: int,
) -> float:
    """
    Calculate the probability of drawing at least a minimum number of target cards.

    Example:
        >>> # At least 1 land in a 7-card hand from 24 lands in 60 cards
        >>> hypergeometric_at_least(60, 24, 7, 1)
        0.9783...
    """
    return _DEFAULT_TABLE.at_least(population, successes_in_pop, sample_size, min_successes)


def hypergeometric_at_most(
    population: int,
    successes_in_pop: int,
    sample_size: int,
    max_successes: int,
) -> float:
    """Calculate the probability of drawing at most a maximum number of target cards."""
    return _DEFAULT_TABLE.at_most(population, successes_in_pop, sample_size, max_successes)


def at_least_one_copy(deck_size: int, copies: int, cards_seen: int) -> float:
    """Probability of having seen at least one of ``copies`` cards after ``cards_seen`` draws."""
    return _DEFAULT_TABLE.at_least_one_copy(deck_size, copies, cards_seen)
