"""
KZH-fold 오류 분류
==================

- ParameterError: 지원하지 않는 크기/형태로 setup을 요청함 (설정 오류)
- ShapeError: 다항식/점/키 사이의 차원 불일치 (프로그래머 오류)
- TranscriptError: 외부에서 받은 트랜스크립트의 형식 오류
  (라운드 수 불일치, 차수 상한 초과)
- VerificationFailure: 검사가 거짓으로 판정됨

ParameterError와 ShapeError는 즉시 전파되고 재시도하지 않는다.
verify/decide 같은 술어(predicate)는 TranscriptError와 VerificationFailure를
내부에서 잡아 False를 돌려준다. "형식이 잘못된 증명"과 "틀린 증명"을
호출자에게 구분해 주지 않는다.
"""


class KZHError(Exception):
    """kzhfold 예외의 기반 클래스."""


class ParameterError(KZHError, ValueError):
    """지원 범위를 벗어난 파라미터로 setup을 요청했을 때."""


class ShapeError(KZHError, ValueError):
    """다항식, 평가점, 키의 차원이 맞지 않을 때."""


class TranscriptError(KZHError):
    """증명 트랜스크립트가 잘못된 형태일 때."""


class VerificationFailure(KZHError):
    """검증 술어가 거짓으로 판정되었을 때.

    속성:
        round_index: sumcheck에서 거부된 라운드 (해당 없으면 None)
    """

    def __init__(self, message, round_index=None):
        super().__init__(message)
        self.round_index = round_index
