"""
KZH-fold 설정 상수
==================

모든 값은 모듈 상수이며 실행 중에 바뀌지 않는다.
MAX_NUM_VARS와 WORKERS만 환경 변수 KZHFOLD_MAX_NUM_VARS,
KZHFOLD_WORKERS로 덮어쓸 수 있다.

**MAX_NUM_VARS**:
  커밋 가능한 다항식의 최대 변수 개수 n. SRS의 G1 원소 수가
  2^n 에 비례하고 py_ecc의 순수 파이썬 스칼라 곱이 느리므로
  기본값을 20으로 둔다.

**Poseidon 파라미터**:
  폭 3 (rate 2, capacity 1), S-box x^5, full 8 / partial 57 라운드.
  BN254 스칼라 필드에서 128비트 보안 수준에 해당하는 표준 조합이다.
"""

import os


# KZH 분해 단계 수 (KZH-2, KZH-3, KZH-4)
SUPPORTED_ARITIES = (2, 3, 4)
DEFAULT_ARITY = 2

MAX_NUM_VARS = int(os.environ.get("KZHFOLD_MAX_NUM_VARS", "20"))

# 행 커밋먼트 MSM 에 쓸 프로세스 수 (1 이면 직렬)
WORKERS = int(os.environ.get("KZHFOLD_WORKERS", "1"))

# Poseidon
POSEIDON_WIDTH = 3
POSEIDON_RATE = 2
POSEIDON_ALPHA = 5
POSEIDON_FULL_ROUNDS = 8
POSEIDON_PARTIAL_ROUNDS = 57
POSEIDON_DOMAIN = b"kzhfold-poseidon-bn254"

# 트랜스크립트 도메인 분리 레이블
OPENING_LABEL = b"kzh-opening"
FOLD_LABEL = b"kzh-fold"
SPARTAN_LABEL = b"kzh-spartan"
IVC_LABEL = b"kzh-fold-ivc"
STATE_DIGEST_LABEL = b"kzh-fold-state"
