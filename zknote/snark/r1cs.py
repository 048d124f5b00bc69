"""
Rank-1 constraint systems over the BLS12-381 scalar field.

Every constraint has the form <a, w> * <b, w> = <c, w> where w is the full
assignment: w[0] = 1, then the public inputs, then the private witnesses.
A ConstraintSystem always carries concrete values, so the same synthesis
code drives both the setup (over a dummy witness) and the prover.
"""

from typing import Dict, List, Optional, Sequence, Tuple, Union

from zknote.jubjub import BLS_MODULUS, fr_inv


class LinearCombination:
    __slots__ = ("terms",)

    def __init__(self, terms: Optional[Dict[int, int]] = None):
        self.terms: Dict[int, int] = {}
        for index, coeff in (terms or {}).items():
            coeff %= BLS_MODULUS
            if coeff:
                self.terms[index] = coeff

    @classmethod
    def variable(cls, index: int) -> "LinearCombination":
        return cls({index: 1})

    @classmethod
    def constant(cls, value: int) -> "LinearCombination":
        return cls({0: value})

    def _combine(self, other: "LC", sign: int) -> "LinearCombination":
        if isinstance(other, int):
            other = LinearCombination.constant(other)
        elif not isinstance(other, LinearCombination):
            return NotImplemented
        terms = dict(self.terms)
        for index, coeff in other.terms.items():
            terms[index] = terms.get(index, 0) + sign * coeff
        return LinearCombination(terms)

    def __add__(self, other: "LC") -> "LinearCombination":
        return self._combine(other, 1)

    __radd__ = __add__

    def __sub__(self, other: "LC") -> "LinearCombination":
        return self._combine(other, -1)

    def __rsub__(self, other: "LC") -> "LinearCombination":
        return (-self) + other

    def __neg__(self) -> "LinearCombination":
        return self * -1

    def __mul__(self, scalar: int) -> "LinearCombination":
        if not isinstance(scalar, int):
            return NotImplemented
        return LinearCombination({i: c * scalar for i, c in self.terms.items()})

    __rmul__ = __mul__

    def evaluate(self, assignment: Sequence[int]) -> int:
        return sum(coeff * assignment[index] for index, coeff in self.terms.items()) % BLS_MODULUS

    def __repr__(self) -> str:
        return "LC(" + " + ".join(f"{c}*w{i}" for i, c in sorted(self.terms.items())) + ")"


LC = Union[LinearCombination, int]
Constraint = Tuple[LinearCombination, LinearCombination, LinearCombination]

ONE = LinearCombination.variable(0)


def as_lc(x: LC) -> LinearCombination:
    if isinstance(x, int):
        return LinearCombination.constant(x)
    return x


class Unsatisfiable(Exception):
    pass


class ConstraintSystem:
    def __init__(self):
        self.assignment: List[int] = [1]
        self.num_inputs = 1
        self.constraints: List[Constraint] = []

    @property
    def num_variables(self) -> int:
        return len(self.assignment)

    @property
    def num_constraints(self) -> int:
        return len(self.constraints)

    @property
    def public_inputs(self) -> List[int]:
        return self.assignment[1:self.num_inputs]

    def alloc_input(self, value: int) -> LinearCombination:
        # the setup and the verifier rely on w = [1, inputs..., witnesses...]
        assert self.num_inputs == len(self.assignment), "public inputs must be allocated before witnesses"
        self.assignment.append(value % BLS_MODULUS)
        self.num_inputs += 1
        return LinearCombination.variable(self.num_inputs - 1)

    def alloc(self, value: int) -> LinearCombination:
        self.assignment.append(value % BLS_MODULUS)
        return LinearCombination.variable(len(self.assignment) - 1)

    def value(self, lc: LC) -> int:
        return as_lc(lc).evaluate(self.assignment)

    def enforce(self, a: LC, b: LC, c: LC):
        self.constraints.append((as_lc(a), as_lc(b), as_lc(c)))

    def mul(self, a: LC, b: LC) -> LinearCombination:
        out = self.alloc(self.value(a) * self.value(b))
        self.enforce(a, b, out)
        return out

    def inverse(self, a: LC) -> LinearCombination:
        """
        Allocate a^-1 and enforce a * a^-1 = 1. Unsatisfiable for a = 0.
        """
        value = self.value(a)
        out = self.alloc(fr_inv(value) if value else 0)
        self.enforce(a, out, ONE)
        return out

    def which_is_unsatisfied(self) -> Optional[int]:
        for i, (a, b, c) in enumerate(self.constraints):
            if self.value(a) * self.value(b) % BLS_MODULUS != self.value(c):
                return i
        return None

    def is_satisfied(self) -> bool:
        return self.which_is_unsatisfied() is None

    def check(self):
        index = self.which_is_unsatisfied()
        if index is not None:
            raise Unsatisfiable(f"constraint {index} of {self.num_constraints} is not satisfied")
