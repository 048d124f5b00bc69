"""
Groth16 over BLS12-381.

The QAP is built over the smallest power of two domain that holds every
constraint plus one consistency row per public variable (a_i * 0 = 0),
which makes the public input polynomials linearly independent.

Points are stored as py_ecc optimized (projective) tuples and serialized in
the ZCash compressed format: 48 bytes per G1 element, 96 per G2 element.
"""

import logging
import secrets
import time
from dataclasses import dataclass
from functools import reduce
from typing import List, Protocol, Sequence, Tuple

from py_ecc.bls.g2_primitives import subgroup_check
from py_ecc.bls.point_compression import compress_G1, compress_G2, decompress_G1, decompress_G2
from py_ecc.optimized_bls12_381 import (
    FQ12,
    G1,
    G2,
    Z1,
    Z2,
    add,
    curve_order,
    double,
    final_exponentiate,
    is_inf,
    multiply,
    neg,
    pairing,
)

from zknote.errors import ProofGenerationFailed, SerializationError

from .fft import coset_fft, coset_ifft, ifft
from .r1cs import Constraint, ConstraintSystem, LinearCombination
from .roots import compute_roots_of_unity

logger = logging.getLogger(__name__)

G1_BYTES = 48
G2_BYTES = 96
PROOF_BYTES = 2 * G1_BYTES + G2_BYTES
_COUNT_BYTES = 4

# shift of the coset the quotient polynomial is evaluated on
_COSET_SHIFT = 7


class Circuit(Protocol):
    def synthesize(self, cs: ConstraintSystem): ...


def _fr_inv(x: int) -> int:
    return pow(x, curve_order - 2, curve_order)


def _batch_inverse(values: Sequence[int]) -> List[int]:
    """
    Montgomery's trick: one exponentiation for the whole list.
    """
    prefix, acc = [], 1
    for v in values:
        assert v % curve_order != 0
        prefix.append(acc)
        acc = acc * v % curve_order
    inv = _fr_inv(acc)
    out = [0] * len(values)
    for i in reversed(range(len(values))):
        out[i] = prefix[i] * inv % curve_order
        inv = inv * values[i] % curve_order
    return out


def linear_combination(points, scalars: Sequence[int], zero):
    """
    Multi-scalar multiplication, bucket method for anything but tiny inputs.
    """
    pairs = [(p, s % curve_order) for p, s in zip(points, scalars) if s % curve_order]
    if len(pairs) < 16:
        return reduce(add, (p if s == 1 else multiply(p, s) for p, s in pairs), zero)
    c = max(2, len(pairs).bit_length() - 3)
    mask = (1 << c) - 1
    result = zero
    for w in reversed(range((curve_order.bit_length() + c - 1) // c)):
        if not is_inf(result):
            for _ in range(c):
                result = double(result)
        buckets = [None] * (1 << c)
        for p, s in pairs:
            d = (s >> (w * c)) & mask
            if d:
                buckets[d] = p if buckets[d] is None else add(buckets[d], p)
        running, window_sum = zero, zero
        for bucket in reversed(buckets[1:]):
            if bucket is not None:
                running = add(running, bucket)
            window_sum = add(window_sum, running)
        result = add(result, window_sum)
    return result


class _FixedBase:
    """
    Windowed table of multiples of one generator, for the setup where
    thousands of scalars are multiplied by the same base.
    """

    def __init__(self, generator, zero, window: int = 4):
        self.window, self.zero = window, zero
        self.table = []
        base = generator
        for _ in range((curve_order.bit_length() + window - 1) // window):
            row, acc = [zero], zero
            for _ in range((1 << window) - 1):
                acc = add(acc, base)
                row.append(acc)
            self.table.append(row)
            base = add(row[-1], base)

    def __mul__(self, scalar: int):
        scalar %= curve_order
        mask = (1 << self.window) - 1
        result = self.zero
        for row in self.table:
            digit = scalar & mask
            if digit:
                result = add(result, row[digit])
            scalar >>= self.window
        return result


# serialization
def g1_to_bytes(point) -> bytes:
    return compress_G1(point).to_bytes(G1_BYTES, "big")


def g2_to_bytes(point) -> bytes:
    z1, z2 = compress_G2(point)
    return z1.to_bytes(G1_BYTES, "big") + z2.to_bytes(G1_BYTES, "big")


def g1_from_bytes(data: bytes):
    if len(data) != G1_BYTES:
        raise SerializationError(f"G1 element must be {G1_BYTES} bytes, got {len(data)}")
    try:
        point = decompress_G1(int.from_bytes(data, "big"))
    except ValueError as e:
        raise SerializationError(f"invalid G1 element: {e}") from e
    if not subgroup_check(point):
        raise SerializationError("G1 element is not in the prime order subgroup")
    return point


def g2_from_bytes(data: bytes):
    if len(data) != G2_BYTES:
        raise SerializationError(f"G2 element must be {G2_BYTES} bytes, got {len(data)}")
    try:
        point = decompress_G2((int.from_bytes(data[:G1_BYTES], "big"), int.from_bytes(data[G1_BYTES:], "big")))
    except ValueError as e:
        raise SerializationError(f"invalid G2 element: {e}") from e
    if not subgroup_check(point):
        raise SerializationError("G2 element is not in the prime order subgroup")
    return point


class _Reader:
    def __init__(self, data: bytes):
        self.data, self.offset = bytes(data), 0

    def take(self, n: int) -> bytes:
        if self.offset + n > len(self.data):
            raise SerializationError("unexpected end of buffer")
        chunk = self.data[self.offset:self.offset + n]
        self.offset += n
        return chunk

    def count(self) -> int:
        return int.from_bytes(self.take(_COUNT_BYTES), "big")

    def g1(self):
        return g1_from_bytes(self.take(G1_BYTES))

    def g2(self):
        return g2_from_bytes(self.take(G2_BYTES))

    def g1_list(self) -> List:
        return [self.g1() for _ in range(self.count())]

    def g2_list(self) -> List:
        return [self.g2() for _ in range(self.count())]

    def finish(self):
        if self.offset != len(self.data):
            raise SerializationError(f"{len(self.data) - self.offset} trailing bytes")


def _count(n: int) -> bytes:
    return n.to_bytes(_COUNT_BYTES, "big")


def _g1_list(points) -> bytes:
    return _count(len(points)) + b"".join(g1_to_bytes(p) for p in points)


def _g2_list(points) -> bytes:
    return _count(len(points)) + b"".join(g2_to_bytes(p) for p in points)


@dataclass(frozen=True)
class VerifyingKey:
    alpha_g1: tuple
    beta_g2: tuple
    gamma_g2: tuple
    delta_g2: tuple
    # gamma^-1 (beta u_i(tau) + alpha v_i(tau) + w_i(tau)) G1, one per public variable
    ic: Tuple[tuple, ...]

    @property
    def num_public_inputs(self) -> int:
        return len(self.ic) - 1

    def to_bytes(self) -> bytes:
        return b"".join((
            g1_to_bytes(self.alpha_g1),
            g2_to_bytes(self.beta_g2),
            g2_to_bytes(self.gamma_g2),
            g2_to_bytes(self.delta_g2),
            _g1_list(self.ic),
        ))

    @classmethod
    def from_bytes(cls, data: bytes) -> "VerifyingKey":
        r = _Reader(data)
        vk = cls(r.g1(), r.g2(), r.g2(), r.g2(), tuple(r.g1_list()))
        r.finish()
        if not vk.ic:
            raise SerializationError("verifying key has no input commitments")
        return vk


@dataclass(frozen=True)
class ProvingKey:
    vk: VerifyingKey
    beta_g1: tuple
    delta_g1: tuple
    domain_size: int
    a_query: Tuple[tuple, ...]
    b_g1_query: Tuple[tuple, ...]
    b_g2_query: Tuple[tuple, ...]
    # delta^-1 (beta u_i + alpha v_i + w_i) G1 for private variables only
    l_query: Tuple[tuple, ...]
    # delta^-1 tau^i Z(tau) G1, i < domain_size - 1
    h_query: Tuple[tuple, ...]

    @property
    def num_variables(self) -> int:
        return len(self.a_query)

    @property
    def num_inputs(self) -> int:
        return len(self.vk.ic)

    def to_bytes(self) -> bytes:
        vk = self.vk.to_bytes()
        return b"".join((
            _count(len(vk)),
            vk,
            g1_to_bytes(self.beta_g1),
            g1_to_bytes(self.delta_g1),
            _count(self.domain_size),
            _g1_list(self.a_query),
            _g1_list(self.b_g1_query),
            _g2_list(self.b_g2_query),
            _g1_list(self.l_query),
            _g1_list(self.h_query),
        ))

    @classmethod
    def from_bytes(cls, data: bytes) -> "ProvingKey":
        r = _Reader(data)
        vk = VerifyingKey.from_bytes(r.take(r.count()))
        pk = cls(
            vk, r.g1(), r.g1(), r.count(),
            tuple(r.g1_list()), tuple(r.g1_list()), tuple(r.g2_list()),
            tuple(r.g1_list()), tuple(r.g1_list()),
        )
        r.finish()
        n = pk.num_variables
        if (
                len(pk.b_g1_query) != n
                or len(pk.b_g2_query) != n
                or len(pk.l_query) != n - pk.num_inputs
                or len(pk.h_query) != pk.domain_size - 1
        ):
            raise SerializationError("proving key queries have inconsistent lengths")
        return pk


@dataclass(frozen=True)
class Proof:
    a: tuple
    b: tuple
    c: tuple

    def to_bytes(self) -> bytes:
        return g1_to_bytes(self.a) + g2_to_bytes(self.b) + g1_to_bytes(self.c)

    @classmethod
    def from_bytes(cls, data: bytes) -> "Proof":
        if len(data) != PROOF_BYTES:
            raise SerializationError(f"proof must be {PROOF_BYTES} bytes, got {len(data)}")
        data = bytes(data)
        return cls(
            g1_from_bytes(data[:G1_BYTES]),
            g2_from_bytes(data[G1_BYTES:G1_BYTES + G2_BYTES]),
            g1_from_bytes(data[G1_BYTES + G2_BYTES:]),
        )


def _domain_size(cs: ConstraintSystem) -> int:
    rows = cs.num_constraints + cs.num_inputs
    size = 1
    while size < rows:
        size *= 2
    return size


def _qap_rows(cs: ConstraintSystem) -> List[Constraint]:
    zero = LinearCombination()
    return list(cs.constraints) + [
        (LinearCombination.variable(i), zero, zero) for i in range(cs.num_inputs)
    ]


def _synthesize(circuit: Circuit) -> ConstraintSystem:
    cs = ConstraintSystem()
    circuit.synthesize(cs)
    return cs


def _random_nonzero() -> int:
    return 1 + secrets.randbelow(curve_order - 1)


def generate_setup_params(circuit: Circuit) -> Tuple[ProvingKey, VerifyingKey]:
    """
    Circuit specific trusted setup.

    The toxic waste only lives in this frame. Anyone who learns it can forge
    proofs for this circuit, so it is never logged or returned.
    """
    start = time.perf_counter()
    cs = _synthesize(circuit)
    n = _domain_size(cs)
    roots = compute_roots_of_unity(n)
    rows = _qap_rows(cs)
    logger.info(
        "groth16 setup: %d constraints, %d variables (%d public), domain %d",
        cs.num_constraints, cs.num_variables, cs.num_inputs, n,
    )

    tau = _random_nonzero()
    while pow(tau, n, curve_order) == 1:
        tau = _random_nonzero()
    alpha, beta, gamma, delta = (_random_nonzero() for _ in range(4))

    # Lagrange basis at tau: L_j(tau) = w^j (tau^n - 1) / (n (tau - w^j))
    z_tau = (pow(tau, n, curve_order) - 1) % curve_order
    inv = _batch_inverse([n * (tau - w) % curve_order for w in roots])
    lagrange = [z_tau * w % curve_order * i % curve_order for w, i in zip(roots, inv)]

    u = [0] * cs.num_variables
    v = [0] * cs.num_variables
    w = [0] * cs.num_variables
    for l_j, (a, b, c) in zip(lagrange, rows):
        for target, lc in ((u, a), (v, b), (w, c)):
            for index, coeff in lc.terms.items():
                target[index] = (target[index] + coeff * l_j) % curve_order

    g1, g2 = _FixedBase(G1, Z1), _FixedBase(G2, Z2)
    gamma_inv, delta_inv = _batch_inverse([gamma, delta])
    combined = [(beta * u_i + alpha * v_i + w_i) % curve_order for u_i, v_i, w_i in zip(u, v, w)]

    vk = VerifyingKey(
        alpha_g1=g1 * alpha,
        beta_g2=g2 * beta,
        gamma_g2=g2 * gamma,
        delta_g2=g2 * delta,
        ic=tuple(g1 * (x * gamma_inv) for x in combined[:cs.num_inputs]),
    )
    h_query, tau_power = [], 1
    z_delta = z_tau * delta_inv % curve_order
    for _ in range(n - 1):
        h_query.append(g1 * (tau_power * z_delta))
        tau_power = tau_power * tau % curve_order
    pk = ProvingKey(
        vk=vk,
        beta_g1=g1 * beta,
        delta_g1=g1 * delta,
        domain_size=n,
        a_query=tuple(g1 * x for x in u),
        b_g1_query=tuple(g1 * x for x in v),
        b_g2_query=tuple(g2 * x for x in v),
        l_query=tuple(g1 * (x * delta_inv) for x in combined[cs.num_inputs:]),
        h_query=tuple(h_query),
    )
    logger.info("groth16 setup finished in %.2fs", time.perf_counter() - start)
    return pk, vk


def _quotient(cs: ConstraintSystem, n: int) -> List[int]:
    """
    Coefficients of h = (a * b - c) / Z, computed on the coset so that Z
    never vanishes.
    """
    roots = compute_roots_of_unity(n)
    evaluations = [[0] * n for _ in range(3)]
    for j, row in enumerate(_qap_rows(cs)):
        for k, lc in enumerate(row):
            evaluations[k][j] = cs.value(lc)
    a, b, c = (coset_fft(ifft(e, roots), roots, _COSET_SHIFT) for e in evaluations)
    z_inv = _fr_inv((pow(_COSET_SHIFT, n, curve_order) - 1) % curve_order)
    h = [(x * y - z) * z_inv % curve_order for x, y, z in zip(a, b, c)]
    h = coset_ifft(h, roots, _COSET_SHIFT)
    assert h[-1] == 0, "a * b - c is not divisible by the vanishing polynomial"
    return h[:-1]


def prove(r: int, s: int, pk: ProvingKey, circuit: Circuit) -> Proof:
    """
    Prove knowledge of a satisfying assignment. `r` and `s` must be fresh
    uniform scalars for every call; they are what makes the proof zero
    knowledge.
    """
    start = time.perf_counter()
    cs = _synthesize(circuit)
    if cs.num_variables != pk.num_variables or cs.num_inputs != pk.num_inputs:
        raise ProofGenerationFailed("circuit shape does not match the proving key")
    if _domain_size(cs) != pk.domain_size:
        raise ProofGenerationFailed("circuit shape does not match the proving key")
    unsatisfied = cs.which_is_unsatisfied()
    if unsatisfied is not None:
        raise ProofGenerationFailed(f"witness does not satisfy constraint {unsatisfied}")

    witness = cs.assignment
    h = _quotient(cs, pk.domain_size)
    vk = pk.vk

    a = add(add(vk.alpha_g1, linear_combination(pk.a_query, witness, Z1)), multiply(pk.delta_g1, r))
    b_g2 = add(add(vk.beta_g2, linear_combination(pk.b_g2_query, witness, Z2)), multiply(vk.delta_g2, s))
    b_g1 = add(add(pk.beta_g1, linear_combination(pk.b_g1_query, witness, Z1)), multiply(pk.delta_g1, s))
    c = reduce(add, (
        linear_combination(pk.l_query, witness[cs.num_inputs:], Z1),
        linear_combination(pk.h_query, h, Z1),
        multiply(a, s),
        multiply(b_g1, r),
        neg(multiply(pk.delta_g1, r * s % curve_order)),
    ))
    logger.debug("groth16 proof generated in %.2fs", time.perf_counter() - start)
    return Proof(a, b_g2, c)


def verify(vk: VerifyingKey, public_inputs: Sequence[int], proof: Proof) -> bool:
    """
    e(A, B) = e(alpha, beta) e(sum x_i IC_i, gamma) e(C, delta)
    """
    if len(public_inputs) != vk.num_public_inputs:
        raise SerializationError(
            f"expected {vk.num_public_inputs} public inputs, got {len(public_inputs)}"
        )
    if any(not 0 <= x < curve_order for x in public_inputs):
        raise SerializationError("public input is not a canonical field element")
    ic = add(vk.ic[0], linear_combination(vk.ic[1:], public_inputs, Z1))
    product = FQ12.one()
    for q, p in (
            (proof.b, proof.a),
            (vk.beta_g2, neg(vk.alpha_g1)),
            (vk.gamma_g2, neg(ic)),
            (vk.delta_g2, neg(proof.c)),
    ):
        product *= pairing(q, p, final_exponentiate=False)
    return final_exponentiate(product) == FQ12.one()
