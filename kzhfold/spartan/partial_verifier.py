"""
Spartan 부분 검증자 (Partial Verifier)
======================================

두 sumcheck를 검증하되, 마지막 점에서의 행렬 평가 A~(r), B~(r), C~(r)는
Prover가 보낸 값을 그대로 믿고 사용한다. 그 값들은 PartialVerifierResult로
반환되어 행렬 누적자에 접히고, 체인 끝의 matrix_accumulator.decide가
한 번에 확인한다. W(ry[1:]) 주장도 마찬가지로 KZH-fold 누적자로 넘어간다.

행렬 희소 패턴의 크기와 무관하게 단계별 검증 비용이 일정한 이유다.

**종료 검사**:
  phase 1:  e_x == eq(τ, rx) · (Az·Bz - Cz)
  phase 2:  e_y == (r_A·A~ + r_B·B~ + r_C·C~) · Z(ry)
            Z(ry) = (1 - ry_0)·W(ry[1:]) + ry_0·IO(ry[1:])

verify()는 부분 검증 뒤에 행렬 평가와 W 열기까지 직접 확인하는
완전한 (누적하지 않는) 검증자다.
"""

import logging

from kzhfold.errors import TranscriptError, VerificationFailure
from kzhfold.field import FR
from kzhfold.pcs import kzh
from kzhfold.polynomial import MultilinearPolynomial, eq_eval
from kzhfold import sumcheck
from kzhfold.spartan.prover import absorb_instance

logger = logging.getLogger(__name__)


class PartialVerifierResult:
    """부분 검증 후 남은 주장들."""

    def __init__(self, rx, ry, matrix_evals, eval_vars_at_ry):
        self.rx = rx
        self.ry = ry
        self.matrix_evals = tuple(matrix_evals)
        self.eval_vars_at_ry = eval_vars_at_ry

    @property
    def matrix_point(self):
        return list(self.rx) + list(self.ry)


def partial_verify(shape, instance, proof, transcript):
    """행렬 평가를 미루는 Spartan 검증.

    shape에서는 크기(num_cons, num_vars, num_io)만 읽는다.

    Returns:
        (PartialVerifierResult, transcript)

    Raises:
        TranscriptError, VerificationFailure
    """
    if len(instance.io) != shape.num_io:
        raise TranscriptError(f"공개 입력 길이 {len(instance.io)} != {shape.num_io}")
    if len(proof.claims) != 3 or len(proof.matrix_evals) != 3:
        raise TranscriptError("claims/matrix_evals 는 세 값이어야 합니다")

    transcript = absorb_instance(transcript, instance)
    transcript, tau = transcript.challenge_scalars(b"tau", shape.num_x_vars)

    claim_x, rx, transcript = sumcheck.verify(
        proof.phase1, FR(0), shape.num_x_vars, 3, transcript, label=b"phase1"
    )
    az, bz, cz = proof.claims
    if claim_x != eq_eval(tau, rx) * (az * bz - cz):
        raise VerificationFailure("phase 1 종료 검사 실패", round_index=shape.num_x_vars)

    transcript = transcript.append_scalars(b"claims", proof.claims)
    transcript, (r_a, r_b, r_c) = transcript.challenge_scalars(b"r_abc", 3)

    claim_y, ry, transcript = sumcheck.verify(
        proof.phase2, r_a * az + r_b * bz + r_c * cz, shape.num_y_vars, 2,
        transcript, label=b"phase2",
    )
    io_eval = MultilinearPolynomial(shape.io_vector(instance.io)).evaluate(ry[1:])
    z_ry = (FR(1) - ry[0]) * proof.eval_vars_at_ry + ry[0] * io_eval
    a_eval, b_eval, c_eval = proof.matrix_evals
    if claim_y != (r_a * a_eval + r_b * b_eval + r_c * c_eval) * z_ry:
        raise VerificationFailure("phase 2 종료 검사 실패", round_index=shape.num_y_vars)

    transcript = transcript.append_scalar(b"eval_vars_at_ry", proof.eval_vars_at_ry)
    result = PartialVerifierResult(rx, ry, proof.matrix_evals, proof.eval_vars_at_ry)
    return result, transcript


def verify(shape, pcs_key, instance, proof, opening, transcript):
    """누적 없이 Spartan 증명 전체를 확인한다.

    Returns:
        bool
    """
    try:
        result, _ = partial_verify(shape, instance, proof, transcript)
        if tuple(shape.evaluate_matrices(result.rx, result.ry)) != result.matrix_evals:
            raise VerificationFailure("행렬 평가 불일치")
        if list(opening.point) != list(result.ry[1:]):
            raise VerificationFailure("열기 점이 ry[1:]과 다름")
        if opening.value != result.eval_vars_at_ry:
            raise VerificationFailure("열기 값이 W(ry[1:]) 주장과 다름")
        if not kzh.verify(pcs_key, instance.comm_W, opening.point, opening.value, opening.proof):
            raise VerificationFailure("W 열기 검증 실패")
    except (TranscriptError, VerificationFailure) as exc:
        logger.debug("spartan proof rejected: %s", exc)
        return False
    return True
