"""
Spartan 부분 검증자 가젯
========================

kzhfold.spartan.partial_verifier 와 같은 순서로 트랜스크립트를 흡수하고
같은 종료 검사를 제약으로 기록한다. 행렬 평가 A~, B~, C~ 는 증인으로 할당되어
그대로 행렬 누적자 가젯에 넘어간다.
"""

from kzhfold.circuit.sumcheck_gadget import alloc_round_polys, verify_sumcheck
from kzhfold.errors import TranscriptError


class SpartanProofVar:
    """회로 변수로 할당된 SpartanProof."""

    def __init__(self, phase1, claims, phase2, eval_vars_at_ry, matrix_evals):
        self.phase1 = phase1
        self.claims = claims
        self.phase2 = phase2
        self.eval_vars_at_ry = eval_vars_at_ry
        self.matrix_evals = matrix_evals

    @classmethod
    def alloc(cls, cs, proof):
        return cls(
            phase1=alloc_round_polys(cs, proof.phase1),
            claims=[cs.alloc_witness(c) for c in proof.claims],
            phase2=alloc_round_polys(cs, proof.phase2),
            eval_vars_at_ry=cs.alloc_witness(proof.eval_vars_at_ry),
            matrix_evals=[cs.alloc_witness(e) for e in proof.matrix_evals],
        )


class PartialResultVar:
    def __init__(self, rx, ry, matrix_evals, eval_vars_at_ry):
        self.rx = rx
        self.ry = ry
        self.matrix_evals = matrix_evals
        self.eval_vars_at_ry = eval_vars_at_ry

    @property
    def matrix_point(self):
        return list(self.rx) + list(self.ry)


def eq_var(x, y):
    """eq(x, y) = Π (2·x_i·y_i - x_i - y_i + 1).  빈 점이면 1."""
    result = 1
    for xi, yi in zip(x, y):
        term = (xi * yi) * 2 - xi - yi + 1
        result = result * term
    return result


def eq_table_var(cs, point):
    table = [cs.one]
    for xi in point:
        one_minus = xi * (-1) + 1
        expanded = []
        for t in table:
            expanded.append(t * one_minus)
            expanded.append(t * xi)
        table = expanded
    return table


def verify_partial(cs, shape, comm_W, io, proof, transcript):
    """부분 검증 제약을 추가한다.

    Args:
        shape: R1CSShape (크기만 사용)
        comm_W: GroupVar
        io: FieldVar 리스트
        proof: SpartanProofVar

    Returns:
        (PartialResultVar, transcript)
    """
    if len(io) != shape.num_io:
        raise TranscriptError(f"공개 입력 길이 {len(io)} != {shape.num_io}")
    transcript = transcript.append_point(b"comm_W", comm_W)
    transcript = transcript.append_scalars(b"io", io)
    transcript, tau = transcript.challenge_scalars(b"tau", shape.num_x_vars)

    with cs.namespace("phase1"):
        claim_x, rx, transcript = verify_sumcheck(
            cs, proof.phase1, cs.constant(0), shape.num_x_vars, 3, transcript, b"phase1"
        )
        az, bz, cz = proof.claims
        cs.enforce_equal(claim_x, eq_var(tau, rx) * (az * bz - cz), "final check")

    transcript = transcript.append_scalars(b"claims", proof.claims)
    transcript, (r_a, r_b, r_c) = transcript.challenge_scalars(b"r_abc", 3)

    with cs.namespace("phase2"):
        claim_y, ry, transcript = verify_sumcheck(
            cs, proof.phase2, r_a * az + r_b * bz + r_c * cz,
            shape.num_y_vars, 2, transcript, b"phase2",
        )
        # IO(y') = eq(y', 0) + Σ_k eq(y', k + 1) · io[k]
        weights = eq_table_var(cs, ry[1:])
        io_eval = weights[0]
        for k, value in enumerate(io):
            io_eval = io_eval + weights[k + 1] * value
        ry0 = ry[0]
        z_ry = (ry0 * (-1) + 1) * proof.eval_vars_at_ry + ry0 * io_eval
        a_eval, b_eval, c_eval = proof.matrix_evals
        combined = r_a * a_eval + r_b * b_eval + r_c * c_eval
        cs.enforce_equal(claim_y, combined * z_ry, "final check")

    transcript = transcript.append_scalar(b"eval_vars_at_ry", proof.eval_vars_at_ry)
    result = PartialResultVar(rx, ry, proof.matrix_evals, proof.eval_vars_at_ry)
    return result, transcript
