"""
KZH 다항식 커밋먼트 스킴
========================

다중선형 다항식 f (평가표 길이 N = 2^n)를 한 개의 G1 점으로 커밋하고,
임의의 점 x에서의 평가를 O(N^{1/L}) 크기의 증명으로 연다.

**커밋**:
  C = <f, H^(0)> = Σ_b f[b] · H^(0)[b]

**열기** (점 x를 블록 x_0, ..., x_{L-1}로 분할):
  f_0 = f 로 시작해 단계 l = 0, ..., L-2 마다
    D_l[i] = <f_l(i, ·), H^(l+1)>      (행(row) 커밋먼트)
    f_{l+1} = f_l(x_l, ·)               (첫 블록 고정)
  f* = f_{L-1} = f(x_0, ..., x_{L-2}, ·) 를 그대로 보내고,
  Σ_y f*(y) · eq(x_{L-1}, y) = value 를 sumcheck로 증명한다.

**검증** (값싼 검사부터):
  1. sumcheck: f*가 x_{L-1}에서 value로 평가됨
  2. C_{l+1} = <D_l, eq(x_l)>               (l < L-2, 중간 커밋먼트 재구성)
  3. <H^(L-1), f*> == <D_{L-2}, eq(x_{L-2})>  (마지막 행 일치)
  4. 단계마다 e(C_l, V) == Π_i e(D_l[i], V_l[i])  (행 커밋먼트가 C_l을 이룸)

  어느 하나라도 어긋나면 False를 반환한다 (예외가 아니다).
  평가점 차원이 n과 다르면 ShapeError.

**n = 0**:
  상수 다항식. 증명은 비어 있고 C == value · H^(0)[0] 만 확인한다.

사용 예시:
    >>> key = setup(3, seed=42)
    >>> f = MultilinearPolynomial([FR(v) for v in range(1, 9)])
    >>> C = commit(key, f)
    >>> value, proof = open(key, f, [FR(1), FR(1), FR(1)])   # value == 8
    >>> verify(key, C, [FR(1), FR(1), FR(1)], value, proof)   # True
"""

import logging

from kzhfold import config
from kzhfold.errors import ShapeError, TranscriptError, VerificationFailure
from kzhfold.field import (
    FR, ec_add, ec_mul, ec_eq, ec_neg, msm, msm_rows, pairing_product_is_one,
)
from kzhfold.polynomial import MultilinearPolynomial, eq_eval, eq_table
from kzhfold import sumcheck
from kzhfold.sumcheck import SumcheckProof
from kzhfold.transcript import Transcript

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────
# 데이터 타입
# ─────────────────────────────────────────────────────────────────────

class Commitment:
    """KZH 커밋먼트 (G1 점 하나).

    커밋은 선형이므로 commit(f) + commit(g) == commit(f + g),
    commit(f).scale(s) == commit(s · f) 가 성립한다.
    """

    def __init__(self, point):
        self.point = point

    def __add__(self, other):
        return Commitment(ec_add(self.point, other.point))

    def scale(self, scalar):
        return Commitment(ec_mul(self.point, scalar))

    def __eq__(self, other):
        if not isinstance(other, Commitment):
            return False
        return ec_eq(self.point, other.point)

    def __repr__(self):
        return f"Commitment({self.point!r})"


class OpeningProof:
    """KZH 열기 증명.

    속성:
        D: 단계별 행 커밋먼트 리스트 [D_0, ..., D_{L-2}], D_l의 길이 2^{d_l}
        f_star: 마지막 블록 위의 접힌 행 f(x_0, ..., x_{L-2}, ·)
        sumcheck: Σ_y f*(y)·eq(x_{L-1}, y) = value 에 대한 SumcheckProof
    """

    def __init__(self, D, f_star, sumcheck_proof):
        self.D = D
        self.f_star = f_star
        self.sumcheck = sumcheck_proof

    def is_empty(self):
        return not self.D and not self.f_star


def empty_proof():
    """n = 0 에서 쓰는 빈 증명."""
    return OpeningProof([], [], SumcheckProof([]))


# ─────────────────────────────────────────────────────────────────────
# 보조 함수
# ─────────────────────────────────────────────────────────────────────

def split_point(key, point):
    """평가점을 키의 블록 크기대로 나눈다.

    Raises:
        ShapeError: len(point) != key.num_vars
    """
    if len(point) != key.num_vars:
        raise ShapeError(
            f"평가점 차원 {len(point)}이 키의 변수 개수 {key.num_vars}와 다릅니다"
        )
    blocks = []
    pos = 0
    for d in key.dims:
        blocks.append([p if isinstance(p, FR) else FR(p) for p in point[pos:pos + d]])
        pos += d
    return blocks


def _as_polynomial(key, poly):
    if not isinstance(poly, MultilinearPolynomial):
        if len(poly) != (1 << key.num_vars):
            raise ShapeError(
                f"평가표 길이 {len(poly)} != 2^{key.num_vars}"
            )
        poly = MultilinearPolynomial(poly)
    if poly.num_vars != key.num_vars:
        raise ShapeError(
            f"다항식 변수 개수 {poly.num_vars} != 키의 변수 개수 {key.num_vars}"
        )
    return poly


def commitment_point(commitment):
    return commitment.point if isinstance(commitment, Commitment) else commitment


def _opening_transcript(point, value, D, f_star):
    transcript = Transcript.new(config.OPENING_LABEL)
    transcript = transcript.append_scalars(b"point", point)
    transcript = transcript.append_scalar(b"value", value)
    for level, row_comms in enumerate(D):
        transcript = transcript.append_points(b"D%d" % level, row_comms)
    return transcript.append_scalars(b"f_star", f_star)


def fold_commitments(row_comms, block_point):
    """C_{l+1} = <D_l, eq(x_l)>."""
    return msm(row_comms, eq_table(block_point))


# ─────────────────────────────────────────────────────────────────────
# 커밋 / 열기 / 검증
# ─────────────────────────────────────────────────────────────────────

def commit(key, poly):
    """다항식 커밋: C = <f, H^(0)>.

    Args:
        key: KZHKey
        poly: MultilinearPolynomial 또는 길이 2^n 의 평가표

    Returns:
        Commitment

    Raises:
        ShapeError: 평가표 길이가 2^n 이 아닐 때
    """
    poly = _as_polynomial(key, poly)
    return Commitment(msm(key.H[0], poly.evals))


def open(key, poly, point):
    """f(point)를 계산하고 열기 증명을 만든다.

    Returns:
        (value, OpeningProof)

    Raises:
        ShapeError: 다항식 또는 평가점의 차원이 키와 다를 때
    """
    poly = _as_polynomial(key, poly)
    blocks = split_point(key, point)
    point = [p for block in blocks for p in block]
    value = poly.evaluate(point)
    if key.num_vars == 0:
        return value, empty_proof()

    D = []
    current = poly
    for level in range(key.arity - 1):
        rows = current.rows(key.dims[level])
        D.append(msm_rows(key.H[level + 1], rows))
        current = current.bind_prefix(blocks[level])
    f_star = list(current.evals)

    # f*(x_last) = value 를 sumcheck로 증명
    transcript = _opening_transcript(point, value, D, f_star)
    eq_last = MultilinearPolynomial(eq_table(blocks[-1]))
    proof, _, _, _ = sumcheck.prove(
        [current, eq_last], lambda v: v[0] * v[1], 2, transcript, b"f_star_eval"
    )
    return value, OpeningProof(D, f_star, proof)


def check_opening(key, commitment, point, value, proof):
    """verify의 예외 버전: 실패 시 VerificationFailure/TranscriptError.

    평가점 차원 오류(ShapeError)는 그대로 전파된다.
    """
    blocks = split_point(key, point)
    point = [p for block in blocks for p in block]
    value = value if isinstance(value, FR) else FR(value)
    C = commitment_point(commitment)

    if key.num_vars == 0:
        if not ec_eq(C, ec_mul(key.H[0][0], value)):
            raise VerificationFailure("상수 커밋먼트가 값과 다름")
        return

    L = key.arity
    if len(proof.D) != L - 1:
        raise TranscriptError(f"행 커밋먼트 단계 수 {len(proof.D)} != {L - 1}")
    for level, row_comms in enumerate(proof.D):
        if len(row_comms) != key.level_size(level):
            raise TranscriptError(f"D_{level} 길이 {len(row_comms)}")
    if len(proof.f_star) != key.level_size(L - 1):
        raise TranscriptError(f"f* 길이 {len(proof.f_star)}")

    # 1. sumcheck: f*(x_last) = value
    f_star = MultilinearPolynomial(proof.f_star)
    x_last = blocks[-1]

    def oracle(challenges, final_claim):
        return f_star.evaluate(challenges) * eq_eval(x_last, challenges) == final_claim

    transcript = _opening_transcript(point, value, proof.D, proof.f_star)
    sumcheck.verify(
        proof.sumcheck, value, len(x_last), 2, transcript, oracle, b"f_star_eval"
    )

    # 2. 중간 커밋먼트 재구성
    comms = [C]
    for level in range(L - 2):
        comms.append(fold_commitments(proof.D[level], blocks[level]))

    # 3. 마지막 행 일치
    lhs = msm(key.generators, proof.f_star)
    rhs = fold_commitments(proof.D[L - 2], blocks[L - 2])
    if not ec_eq(lhs, rhs):
        raise VerificationFailure("<H, f*> != <D, eq(x)>")

    # 4. 단계별 페어링 검사
    for level in range(L - 1):
        pairs = [(comms[level], key.V)]
        pairs += [
            (ec_neg(d), v) for d, v in zip(proof.D[level], key.V_levels[level])
        ]
        if not pairing_product_is_one(pairs):
            raise VerificationFailure(f"단계 {level} 페어링 검사 실패")


def verify(key, commitment, point, value, proof):
    """열기 증명을 검증한다.

    Returns:
        bool: 모든 검사를 통과하면 True. 형식 오류와 불일치는 구분 없이 False.

    Raises:
        ShapeError: 평가점 차원이 키와 다를 때
    """
    try:
        check_opening(key, commitment, point, value, proof)
    except (TranscriptError, VerificationFailure) as exc:
        logger.debug("KZH opening rejected: %s", exc)
        return False
    return True
