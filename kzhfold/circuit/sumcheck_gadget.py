"""
sumcheck 검증 가젯
==================

라운드 i마다 g_i(0) + g_i(1) == claim 을 선형 제약으로 추가하고,
계수를 회로 트랜스크립트에 흡수해 챌린지 변수 r_i를 얻은 뒤
claim := g_i(r_i) 를 Horner 방식으로 계산한다 (라운드당 곱셈 제약 d개).

종료 검사는 호출하는 가젯이 반환된 (claim, challenges)로 수행한다.
"""

from kzhfold.errors import TranscriptError
from kzhfold.polynomial import horner


def alloc_round_polys(cs, proof):
    """SumcheckProof의 계수를 증인 변수로 할당한다."""
    return [
        [cs.alloc_witness(c) for c in g.coeffs]
        for g in proof.round_polys
    ]


def verify_sumcheck(cs, round_polys, claim, num_rounds, degree, transcript,
                    label=b"sumcheck"):
    """회로 안에서 sumcheck 라운드를 검증한다.

    Args:
        round_polys: 라운드별 계수 FieldVar 리스트
        claim: 초기 주장 (FieldVar)

    Returns:
        (final_claim, challenges, transcript)
    """
    if len(round_polys) != num_rounds:
        raise TranscriptError(f"라운드 수 {len(round_polys)} != {num_rounds}")
    challenges = []
    for i, coeffs in enumerate(round_polys):
        if len(coeffs) != degree + 1:
            raise TranscriptError(f"라운드 {i}: 계수 개수 {len(coeffs)}")
        at_one = coeffs[0]
        for c in coeffs[1:]:
            at_one = at_one + c
        cs.enforce_equal(coeffs[0] + at_one, claim, f"sumcheck round {i}")
        transcript = transcript.append_scalars(label, coeffs)
        transcript, r = transcript.challenge_scalar(label)
        challenges.append(r)
        claim = horner(coeffs, r)
    return claim, challenges, transcript
