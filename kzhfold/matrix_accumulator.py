"""
행렬 평가 누적자 (Matrix Evaluation Accumulator)
=================================================

Spartan 부분 검증자는 마지막에 A~(r), B~(r), C~(r) 세 값을 직접 확인하지 않고
이 누적자에 넘긴다. 단계마다 새 평가 주장을 누적 상태에 접고,
IVC 체인이 끝난 뒤 decide가 한 번만 희소 행렬을 직접 평가한다.

**상태**: (점 r ∈ F^m, (a, b, c)),  불변식 a = A~(r), b = B~(r), c = C~(r)

**접기** (running 점 r₁, current 점 r₀):
  직선 ℓ(t) = t·r₁ + (1 - t)·r₀
  Prover가 q_M(t) = M~(ℓ(t)) 를 보낸다 (M ∈ {A, B, C}, 차수 ≤ m).
  검증자:
    q_M(1) == running 평가값,  q_M(0) == current 평가값
    트랜스크립트에서 β를 얻고  새 상태 = (ℓ(β), q_M(β))

  q_M이 올바르면 새 상태도 불변식을 만족한다. q_M이 틀렸다면
  슈바르츠-지펠 보조정리에 의해 β에서 들킬 확률이 1 - m/|F| 이다.

**genesis**: 원점 (0, ..., 0) 에서의 값, 즉 각 행렬의 (0, 0) 항목.
"""

import logging

from kzhfold.errors import TranscriptError, VerificationFailure
from kzhfold.field import FR
from kzhfold.polynomial import UniPoly
from kzhfold.transcript import Transcript
from kzhfold import config

logger = logging.getLogger(__name__)


class MatrixAccState:
    """누적 상태: 점과 세 행렬 평가값."""

    def __init__(self, point, evals):
        self.point = list(point)
        self.evals = tuple(evals)

    def to_scalars(self):
        return self.point + list(self.evals)

    def __eq__(self, other):
        if not isinstance(other, MatrixAccState):
            return False
        return self.point == other.point and self.evals == other.evals

    def __repr__(self):
        return f"MatrixAccState(m={len(self.point)})"


class MatrixFoldProof:
    """q_A, q_B, q_C (UniPoly, 계수 m + 1개씩)."""

    def __init__(self, q_polys):
        self.q_polys = list(q_polys)


def genesis(shape):
    """원점에서의 초기 상태."""
    point = [FR(0)] * (shape.num_x_vars + shape.num_y_vars)
    return MatrixAccState(point, shape.evaluate_matrices_at(point))


def line_point(running_point, current_point, t):
    """ℓ(t) = t·running + (1 - t)·current."""
    one_minus = FR(1) - t
    return [t * a + one_minus * b for a, b in zip(running_point, current_point)]


def _challenge(running, current, proof, transcript):
    if transcript is None:
        transcript = Transcript.new(config.FOLD_LABEL)
    transcript = transcript.append_scalars(b"matrix_running", running.to_scalars())
    transcript = transcript.append_scalars(b"matrix_current", current.to_scalars())
    for q in proof.q_polys:
        transcript = transcript.append_scalars(b"q", q.coeffs)
    return transcript.challenge_scalar(b"matrix_beta")


def prove_accumulate(shape, running, current, transcript=None, challenge=None):
    """current 평가 주장을 running 상태에 접는다 (Prover).

    Args:
        shape: R1CSShape
        running, current: MatrixAccState

    Returns:
        (MatrixAccState, MatrixFoldProof, transcript)
    """
    m = len(running.point)
    samples = [
        shape.evaluate_matrices_at(line_point(running.point, current.point, FR(t)))
        for t in range(m + 1)
    ]
    q_polys = [UniPoly.interpolate([s[k] for s in samples]) for k in range(3)]
    proof = MatrixFoldProof(q_polys)
    transcript, beta = _challenge(running, current, proof, transcript)
    if challenge is not None:
        beta = challenge if isinstance(challenge, FR) else FR(challenge)
    new_state = MatrixAccState(
        line_point(running.point, current.point, beta),
        [q.evaluate(beta) for q in q_polys],
    )
    return new_state, proof, transcript


def accumulate(state, evals, point, proof, transcript=None, challenge=None):
    """검증자 쪽 접기: (evals, point)를 state에 접은 새 상태.

    Returns:
        (MatrixAccState, transcript)

    Raises:
        TranscriptError: q 다항식 개수/차수가 맞지 않을 때
        VerificationFailure: q(1) 또는 q(0)이 주장과 다를 때
    """
    current = MatrixAccState(point, evals)
    m = len(state.point)
    if len(current.point) != m:
        raise TranscriptError(f"행렬 평가점 차원 {len(current.point)} != {m}")
    if len(proof.q_polys) != 3:
        raise TranscriptError("q 다항식은 세 개여야 합니다")
    for q, running_eval, current_eval in zip(proof.q_polys, state.evals, current.evals):
        if len(q.coeffs) != m + 1:
            raise TranscriptError(f"q 계수 개수 {len(q.coeffs)} != {m + 1}")
        if q.eval_at_one() != running_eval:
            raise VerificationFailure("q(1) != running 평가값")
        if q.eval_at_zero() != current_eval:
            raise VerificationFailure("q(0) != current 평가값")
    transcript, beta = _challenge(state, current, proof, transcript)
    if challenge is not None:
        beta = challenge if isinstance(challenge, FR) else FR(challenge)
    new_state = MatrixAccState(
        line_point(state.point, current.point, beta),
        [q.evaluate(beta) for q in proof.q_polys],
    )
    return new_state, transcript


def decide(shape, state):
    """누적 상태의 평가값이 실제 행렬 MLE와 같은지 직접 확인한다."""
    if len(state.point) != shape.num_x_vars + shape.num_y_vars:
        logger.debug("matrix accumulator rejected: point dimension")
        return False
    expected = shape.evaluate_matrices_at(state.point)
    if tuple(expected) != tuple(state.evals):
        logger.debug("matrix accumulator rejected: evaluations differ")
        return False
    return True
