"""
Native Groth16 verification of snarkjs artifacts

Reproduces the pairing check the on-chain verifier performs, using py_ecc's
BN254 implementation, so a (proof, commitment) pair can be accepted or
rejected without calling out to node/snarkjs:

    e(A, B) == e(alpha, beta) * e(vk_x, gamma) * e(C, delta)
    vk_x = IC[0] + sum(public[i] * IC[i + 1])
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from py_ecc.optimized_bn128 import (
    FQ,
    FQ2,
    add,
    b,
    b2,
    curve_order,
    is_on_curve,
    multiply,
    normalize,
    pairing,
)

logger = logging.getLogger(__name__)


def _g1(coords: list[Any]):
    x, y, z = (int(c) for c in coords)
    return (FQ(x), FQ(y), FQ(z))


def _g2(coords: list[list[Any]]):
    (x0, x1), (y0, y1), (z0, z1) = ([int(c) for c in pair] for pair in coords)
    return (FQ2([x0, x1]), FQ2([y0, y1]), FQ2([z0, z1]))


def g1_to_json(point) -> list[str]:
    """snarkjs encoding of a G1 point (affine, decimal strings)"""
    x, y = normalize(point)
    return [str(int(x)), str(int(y)), "1"]


def g2_to_json(point) -> list[list[str]]:
    """snarkjs encoding of a G2 point: [[x.c0, x.c1], [y.c0, y.c1], ["1", "0"]]"""
    x, y = normalize(point)
    return [
        [str(int(c)) for c in x.coeffs],
        [str(int(c)) for c in y.coeffs],
        ["1", "0"],
    ]


@dataclass
class VerificationKey:
    alpha: Any
    beta: Any
    gamma: Any
    delta: Any
    ic: list[Any]

    @property
    def n_public(self) -> int:
        return len(self.ic) - 1

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "VerificationKey":
        protocol = data.get("protocol", "groth16")
        curve = data.get("curve", "bn128")
        if protocol != "groth16" or curve not in ("bn128", "bn254"):
            raise ValueError(f"Unsupported verification key: {protocol}/{curve}")

        vk = cls(
            alpha=_g1(data["vk_alpha_1"]),
            beta=_g2(data["vk_beta_2"]),
            gamma=_g2(data["vk_gamma_2"]),
            delta=_g2(data["vk_delta_2"]),
            ic=[_g1(p) for p in data["IC"]],
        )
        if "nPublic" in data and int(data["nPublic"]) != vk.n_public:
            raise ValueError(
                f"nPublic={data['nPublic']} does not match {len(vk.ic)} IC points"
            )
        return vk

    @classmethod
    def load(cls, path: str | Path) -> "VerificationKey":
        with open(path, encoding="utf-8") as f:
            return cls.from_dict(json.load(f))


class Groth16Verifier:
    """Pairing-based Groth16 verifier over BN254"""

    def __init__(self, verification_key: VerificationKey):
        self.vk = verification_key

    def verify(self, proof: dict[str, Any], public_signals: list[Any]) -> bool:
        """Accept or reject a snarkjs proof for the given public signals"""
        try:
            a = _g1(proof["pi_a"])
            b_point = _g2(proof["pi_b"])
            c = _g1(proof["pi_c"])
            signals = [int(s) for s in public_signals]
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Malformed proof: {e}")
            return False

        if len(signals) != self.vk.n_public:
            logger.warning(
                f"Expected {self.vk.n_public} public signals, got {len(signals)}"
            )
            return False

        if any(not 0 <= s < curve_order for s in signals):
            logger.warning("Public signal outside the scalar field")
            return False

        if not (is_on_curve(a, b) and is_on_curve(c, b) and is_on_curve(b_point, b2)):
            logger.warning("Proof point not on curve")
            return False

        vk_x = self.vk.ic[0]
        for signal, point in zip(signals, self.vk.ic[1:]):
            vk_x = add(vk_x, multiply(point, signal))

        lhs = pairing(b_point, a)
        rhs = (
            pairing(self.vk.beta, self.vk.alpha)
            * pairing(self.vk.gamma, vk_x)
            * pairing(self.vk.delta, c)
        )
        accepted = lhs == rhs

        logger.info(f"Native Groth16 verification: {'accepted' if accepted else 'rejected'}")
        return accepted
