"""
kzhfold: KZH 다항식 커밋먼트와 KZH-fold 누적 기반 IVC
=====================================================

  kzhfold.pcs                KZH-2/3/4 커밋, 열기, 검증
  kzhfold.accumulation       열기 주장 누적 (fold / decide)
  kzhfold.spartan            Spartan Prover 와 부분 검증자
  kzhfold.matrix_accumulator 행렬 평가 누적
  kzhfold.circuit            증강 회로
  kzhfold.ivc                단계별 IVC 드라이버
  kzhfold.aggregation        열기 주장 일괄 누적
  kzhfold.serialization      32바이트 워드 와이어 형식
"""

__version__ = "0.1.0"

from kzhfold.errors import (
    KZHError, ParameterError, ShapeError, TranscriptError, VerificationFailure,
)
from kzhfold.field import FR
from kzhfold.polynomial import MultilinearPolynomial
