"""
Sumcheck 프로토콜 (Fiat-Shamir 변환)
====================================

주장:  Σ_{b ∈ {0,1}^n} F(p_1(b), ..., p_k(b)) = claim

p_j는 다중선형 다항식, F는 각 변수에 대해 차수 ≤ degree인 결합 함수이다.

**라운드 i** (변수 0부터 차례로 고정):
  Prover: g_i(X) = Σ_{b'} F(p_j(r_0..r_{i-1}, X, b')) 를 계수로 전송
  Verifier:
    1. 계수 개수가 degree + 1인지 확인 (아니면 TranscriptError)
    2. g_i(0) + g_i(1) == current_claim 확인 (아니면 VerificationFailure)
    3. g_i의 계수를 흡수하고 챌린지 r_i 도출
    4. current_claim := g_i(r_i)

**종료** (i == n):
  current_claim == F(p_j(r)) 는 호출자가 넘기는 oracle로 확인한다
  (직접 평가 또는 커밋먼트 열기). 라운드는 반드시 순서대로 진행되며
  부분 점수나 재시도는 없다.

사용 예시:
    >>> proof, r, finals, t = prove([f, g], lambda v: v[0] * v[1], 2, t)
    >>> claim, r, t = verify(proof, claim, n, 2, t2, oracle=...)
"""

import logging

from kzhfold.errors import TranscriptError, VerificationFailure
from kzhfold.field import FR
from kzhfold.polynomial import UniPoly

logger = logging.getLogger(__name__)


class SumcheckProof:
    """라운드 다항식 g_0, ..., g_{n-1} 의 목록."""

    def __init__(self, round_polys):
        self.round_polys = list(round_polys)

    def __len__(self):
        return len(self.round_polys)

    def __eq__(self, other):
        if not isinstance(other, SumcheckProof):
            return False
        return self.round_polys == other.round_polys

    def __repr__(self):
        return f"SumcheckProof(rounds={len(self.round_polys)})"


def _bind_table(table, r):
    half = len(table) // 2
    return [table[j] + r * (table[j + half] - table[j]) for j in range(half)]


def prove(polys, combine, degree, transcript, label=b"sumcheck"):
    """sumcheck 증명을 생성한다.

    Args:
        polys: 변수 개수가 같은 MultilinearPolynomial 리스트
        combine: FR 값 리스트 → FR (결합 함수 F)
        degree: 라운드 다항식의 차수 상한
        transcript: Transcript
        label: 라운드 메시지 레이블

    Returns:
        (SumcheckProof, challenges, final_evals, transcript)
        final_evals[j] = p_j(challenges)
    """
    num_rounds = polys[0].num_vars
    tables = [list(p.evals) for p in polys]
    points = [FR(t) for t in range(degree + 1)]
    round_polys = []
    challenges = []
    for _ in range(num_rounds):
        half = len(tables[0]) // 2
        evals = []
        for t in points:
            total = FR(0)
            for j in range(half):
                vals = [tab[j] + t * (tab[j + half] - tab[j]) for tab in tables]
                total = total + combine(vals)
            evals.append(total)
        g = UniPoly.interpolate(evals)
        round_polys.append(g)
        transcript = transcript.append_scalars(label, g.coeffs)
        transcript, r = transcript.challenge_scalar(label)
        challenges.append(r)
        tables = [_bind_table(tab, r) for tab in tables]
    final_evals = [tab[0] for tab in tables]
    return SumcheckProof(round_polys), challenges, final_evals, transcript


def verify(proof, claim, num_rounds, degree, transcript, oracle=None,
           label=b"sumcheck"):
    """sumcheck 트랜스크립트를 검증한다.

    Args:
        proof: SumcheckProof
        claim: 초기 주장 값
        num_rounds: 기대 라운드 수 n
        degree: 라운드 다항식 차수 상한
        transcript: Transcript
        oracle: (challenges, final_claim) → bool, 종료 검사 (선택)

    Returns:
        (final_claim, challenges, transcript)

    Raises:
        TranscriptError: 라운드 수 또는 계수 개수가 맞지 않을 때
        VerificationFailure: 라운드 검사 또는 종료 검사 실패
    """
    if len(proof.round_polys) != num_rounds:
        raise TranscriptError(
            f"라운드 수 {len(proof.round_polys)} != 기대값 {num_rounds}"
        )
    challenges = []
    for i, g in enumerate(proof.round_polys):
        if len(g.coeffs) > degree + 1:
            raise TranscriptError(f"라운드 {i}: 차수 상한 {degree} 초과")
        if len(g.coeffs) != degree + 1:
            raise TranscriptError(f"라운드 {i}: 계수 개수 {len(g.coeffs)}")
        if g.eval_at_zero() + g.eval_at_one() != claim:
            raise VerificationFailure(
                f"라운드 {i}: g(0) + g(1) != claim", round_index=i
            )
        transcript = transcript.append_scalars(label, g.coeffs)
        transcript, r = transcript.challenge_scalar(label)
        challenges.append(r)
        claim = g.evaluate(r)
    if oracle is not None and not oracle(challenges, claim):
        raise VerificationFailure("종료 검사 실패", round_index=num_rounds)
    return claim, challenges, transcript


def is_valid(proof, claim, num_rounds, degree, transcript, oracle=None,
             label=b"sumcheck"):
    """verify의 술어 버전. 거부 사유는 DEBUG 로그로만 남긴다."""
    try:
        verify(proof, claim, num_rounds, degree, transcript, oracle, label)
    except (TranscriptError, VerificationFailure) as exc:
        logger.debug("sumcheck rejected: %s", exc)
        return False
    return True
