"""
Poseidon over the BLS12-381 scalar field.

Parameters (round numbers, Grain LFSR round constants and the MDS matrix)
come from the `poseidon-hash` package. The permutation itself is written
once, against a small set of arithmetic hooks, so that the off-circuit hash
(plain ints) and the in-circuit gadget (linear combinations over a
constraint system) run literally the same round schedule. See
`zknote.snark.gadgets.poseidon_permute_var` for the latter.
"""

from dataclasses import dataclass
from functools import cached_property
from typing import Callable, List, Sequence, TypeVar

import poseidon

from zknote.config import PoseidonConfig
from zknote.jubjub import BLS_MODULUS

T = TypeVar("T")


@dataclass(frozen=True)
class Poseidon:
    config: PoseidonConfig
    modulus: int = BLS_MODULUS

    def __post_init__(self):
        # x -> x^alpha must be a permutation of the field
        assert (self.modulus - 1) % self.config.alpha != 0

    @property
    def width(self) -> int:
        return self.config.width

    @property
    def rate(self) -> int:
        return self.config.rate

    @cached_property
    def parameters(self) -> poseidon.Poseidon:
        return poseidon.Poseidon(
            p=self.modulus,
            security_level=self.config.security_level,
            alpha=self.config.alpha,
            input_rate=self.rate,
            t=self.width,
        )

    @cached_property
    def full_rounds(self) -> int:
        return int(self.parameters.full_round)

    @cached_property
    def partial_rounds(self) -> int:
        return int(self.parameters.partial_round)

    @cached_property
    def round_constants(self) -> List[List[int]]:
        flat = [int(c) for c in self.parameters.rc_field]
        rounds = self.full_rounds + self.partial_rounds
        assert len(flat) >= rounds * self.width
        return [flat[r * self.width:(r + 1) * self.width] for r in range(rounds)]

    @cached_property
    def mds(self) -> List[List[int]]:
        return [[int(m) for m in row] for row in self.parameters.mds_matrix]

    def is_full_round(self, r: int) -> bool:
        half = self.full_rounds // 2
        return r < half or r >= half + self.partial_rounds

    def permute_generic(
            self,
            state: Sequence[T],
            sbox: Callable[[T], T],
            reduce: Callable[[T], T],
    ) -> List[T]:
        """
        Run the permutation with caller supplied S-box and reduction.

        `state` elements only need to support `+ int`, `* int` and `sum`.
        """
        assert len(state) == self.width
        state = list(state)
        for r, constants in enumerate(self.round_constants):
            state = [reduce(s + c) for s, c in zip(state, constants)]
            if self.is_full_round(r):
                state = [sbox(s) for s in state]
            else:
                state[0] = sbox(state[0])
            state = [
                reduce(sum(m * s for m, s in zip(row, state)))
                for row in self.mds
            ]
        return state

    def permute(self, state: Sequence[int]) -> List[int]:
        return self.permute_generic(
            [s % self.modulus for s in state],
            sbox=lambda x: pow(x, self.config.alpha, self.modulus),
            reduce=lambda x: x % self.modulus,
        )

    def hash(self, domain_separator: int, inputs: Sequence[int]) -> int:
        """
        Fixed-length hash: the domain separator fills the capacity element,
        the inputs fill the rate (zero padded), one permutation.
        """
        assert len(inputs) <= self.rate, f"at most {self.rate} inputs, got {len(inputs)}"
        state = [domain_separator, *inputs] + [0] * (self.rate - len(inputs))
        return self.permute(state)[1]
