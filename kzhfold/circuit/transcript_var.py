"""
회로 안의 Fiat-Shamir 트랜스크립트
==================================

네이티브 Transcript와 같은 스펀지 로직을 FieldVar 상태 위에서 실행한다.
같은 순서로 같은 값을 흡수하면 회로 안에서 얻은 챌린지 변수의 값은
네이티브 챌린지와 같고, 그 계산 과정 전체가 Poseidon 제약으로 기록된다.

점은 GroupVar의 좌표 변수 두 개로 흡수한다.
"""

from kzhfold import config
from kzhfold.transcript import Transcript, label_to_scalar


class TranscriptVar(Transcript):
    """상태가 FieldVar인 Transcript."""

    @classmethod
    def new(cls, cs, label=config.FOLD_LABEL):
        return cls((cs.constant(label_to_scalar(label)), cs.constant(0), cs.constant(0)))

    def _coerce(self, element):
        return element

    def _point_elements(self, point):
        return list(point.coords)


def digest_var(cs, elements, label=config.STATE_DIGEST_LABEL):
    """kzhfold.transcript.digest 의 회로 버전."""
    transcript = TranscriptVar.new(cs, label).append_scalars(b"elements", elements)
    _, value = transcript.challenge_scalar(b"digest")
    return value
