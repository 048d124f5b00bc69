from typing import List, Sequence, Tuple

from zknote.jubjub import EDWARDS_D
from zknote.algebraic_hash import Poseidon

from .r1cs import ONE, LC, ConstraintSystem, LinearCombination, as_lc


def _pow5(cs: ConstraintSystem, x: LC) -> LinearCombination:
    x2 = cs.mul(x, x)
    x4 = cs.mul(x2, x2)
    return cs.mul(x4, x)


def poseidon_permute_var(cs: ConstraintSystem, hasher: Poseidon, state: Sequence[LC]) -> List[LinearCombination]:
    """
    In-circuit Poseidon permutation. Linear layers are free, every S-box
    costs three multiplication constraints.
    """
    assert hasher.config.alpha == 5
    return hasher.permute_generic(
        [as_lc(s) for s in state],
        sbox=lambda x: _pow5(cs, x),
        reduce=lambda x: x,
    )


def poseidon_hash_var(
        cs: ConstraintSystem,
        hasher: Poseidon,
        domain_separator: int,
        inputs: Sequence[LC],
) -> LinearCombination:
    assert len(inputs) <= hasher.rate
    state = [domain_separator, *inputs] + [0] * (hasher.rate - len(inputs))
    return poseidon_permute_var(cs, hasher, state)[1]


def alloc_point(cs: ConstraintSystem, u: int, v: int) -> Tuple[LinearCombination, LinearCombination]:
    """
    Witness a Jubjub point and enforce the curve equation

        -u^2 + v^2 = 1 + d u^2 v^2   <=>   (d u^2) * (v^2) = v^2 - u^2 - 1
    """
    u_var, v_var = cs.alloc(u), cs.alloc(v)
    uu = cs.mul(u_var, u_var)
    vv = cs.mul(v_var, v_var)
    cs.enforce(EDWARDS_D * uu, vv, vv - uu - ONE)
    return u_var, v_var


def assert_nonidentity(cs: ConstraintSystem, u: LC):
    # (0, 1) is the identity and (0, -1) has order two: u != 0 rules out both
    cs.inverse(u)


def enforce_range(cs: ConstraintSystem, x: LC, bits: int) -> List[LinearCombination]:
    """
    Decompose x into `bits` boolean witnesses, little endian.
    """
    value = cs.value(x)
    decomposition = []
    packed = LinearCombination()
    for i in range(bits):
        b = cs.alloc((value >> i) & 1)
        cs.enforce(b, ONE - b, 0)
        decomposition.append(b)
        packed = packed + (1 << i) * b
    cs.enforce(packed, ONE, x)
    return decomposition
