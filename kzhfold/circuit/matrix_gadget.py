"""
행렬 누적자 가젯
================

matrix_accumulator.accumulate 의 회로 버전.
  q_M(1) == running 평가값,  q_M(0) == current 평가값  (선형 제약)
  β ← 트랜스크립트 (running, current, q 계수 흡수)
  새 점 = β·running + (1-β)·current,  새 평가값 = q_M(β)
"""

from kzhfold.errors import TranscriptError
from kzhfold.polynomial import horner


class MatrixStateVar:
    """회로 변수로 할당된 MatrixAccState."""

    def __init__(self, point, evals):
        self.point = list(point)
        self.evals = list(evals)

    @classmethod
    def alloc(cls, cs, state):
        return cls(
            [cs.alloc_witness(v) for v in state.point],
            [cs.alloc_witness(v) for v in state.evals],
        )

    def to_scalars(self):
        return self.point + self.evals


def alloc_q_polys(cs, proof):
    return [[cs.alloc_witness(c) for c in q.coeffs] for q in proof.q_polys]


def accumulate_var(cs, running, current, q_polys, transcript):
    """행렬 누적 제약을 추가한다.

    Args:
        running, current: MatrixStateVar
        q_polys: 행렬별 계수 FieldVar 리스트 (세 개)

    Returns:
        (MatrixStateVar, transcript)
    """
    m = len(running.point)
    if len(current.point) != m or len(q_polys) != 3:
        raise TranscriptError("행렬 누적 입력의 형태가 맞지 않습니다")
    names = ("A", "B", "C")
    for name, q, run_eval, cur_eval in zip(names, q_polys, running.evals, current.evals):
        if len(q) != m + 1:
            raise TranscriptError(f"q_{name} 계수 개수 {len(q)} != {m + 1}")
        at_one = q[0]
        for c in q[1:]:
            at_one = at_one + c
        cs.enforce_equal(at_one, run_eval, f"q_{name}(1)")
        cs.enforce_equal(q[0], cur_eval, f"q_{name}(0)")

    transcript = transcript.append_scalars(b"matrix_running", running.to_scalars())
    transcript = transcript.append_scalars(b"matrix_current", current.to_scalars())
    for q in q_polys:
        transcript = transcript.append_scalars(b"q", q)
    transcript, beta = transcript.challenge_scalar(b"matrix_beta")

    one_minus = beta * (-1) + 1
    point = [beta * a + one_minus * b for a, b in zip(running.point, current.point)]
    evals = [horner(q, beta) for q in q_polys]
    return MatrixStateVar(point, evals), transcript
