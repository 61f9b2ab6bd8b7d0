"""
Poseidon 순열 (BN254 스칼라 필드)
=================================

Fiat-Shamir 트랜스크립트와 IVC 공개 입력 해시에 쓰이는 산술화 친화적
해시 순열. SHA-256과 달리 필드 연산만으로 구성되므로 같은 코드를
회로 변수(FieldVar) 위에서도 그대로 실행할 수 있다.

**구조** (폭 t = 3):
  매 라운드: 라운드 상수 덧셈 → S-box(x^5) → MDS 행렬 곱
  - full 라운드: 모든 원소에 S-box (앞 4 + 뒤 4 = 8회)
  - partial 라운드: 첫 원소에만 S-box (57회)

**상수 생성**:
  라운드 상수는 도메인 문자열과 (라운드, 위치)를 SHA-256으로 해싱해
  r로 축소한다. MDS는 코시(Cauchy) 행렬 M[i][j] = 1 / (x_i + y_j),
  x = [0, 1, 2], y = [3, 4, 5].

순열 함수는 + 와 * 만 사용하며 상태 원소가 항상 왼쪽 피연산자에 온다.
"""

import hashlib
from functools import lru_cache

from kzhfold import config
from kzhfold.field import FR, CURVE_ORDER


class PoseidonParams:
    """Poseidon 순열 파라미터.

    속성:
        width: 상태 크기 t
        full_rounds: full 라운드 수 (짝수)
        partial_rounds: partial 라운드 수
        round_constants: 라운드별 길이 t의 FR 리스트
        mds: t × t FR 행렬
    """

    def __init__(self, width, full_rounds, partial_rounds, alpha, domain):
        if alpha != 5:
            raise ValueError(f"지원하는 S-box 지수는 5뿐입니다: {alpha}")
        if full_rounds % 2 != 0:
            raise ValueError(f"full 라운드 수는 짝수여야 합니다: {full_rounds}")
        self.width = width
        self.full_rounds = full_rounds
        self.partial_rounds = partial_rounds
        self.alpha = alpha
        self.round_constants = _derive_round_constants(
            domain, width, full_rounds + partial_rounds
        )
        self.mds = _cauchy_mds(width)

    @property
    def num_rounds(self):
        return self.full_rounds + self.partial_rounds


def _derive_round_constants(domain, width, rounds):
    constants = []
    for rnd in range(rounds):
        row = []
        for pos in range(width):
            h = hashlib.sha256(
                domain + rnd.to_bytes(2, "big") + pos.to_bytes(1, "big")
            ).digest()
            row.append(FR(int.from_bytes(h, "big") % CURVE_ORDER))
        constants.append(row)
    return constants


def _cauchy_mds(width):
    xs = [FR(i) for i in range(width)]
    ys = [FR(width + j) for j in range(width)]
    return [[FR(1) / (x + y) for y in ys] for x in xs]


@lru_cache(maxsize=1)
def default_params():
    """config의 기본 파라미터로 만든 PoseidonParams (한 번만 생성)."""
    return PoseidonParams(
        width=config.POSEIDON_WIDTH,
        full_rounds=config.POSEIDON_FULL_ROUNDS,
        partial_rounds=config.POSEIDON_PARTIAL_ROUNDS,
        alpha=config.POSEIDON_ALPHA,
        domain=config.POSEIDON_DOMAIN,
    )


# ─────────────────────────────────────────────────────────────────────
# 순열
# ─────────────────────────────────────────────────────────────────────

def _sbox(x):
    x2 = x * x
    x4 = x2 * x2
    return x4 * x


def _mix(state, mds):
    out = []
    for row in mds:
        acc = state[0] * row[0]
        for j in range(1, len(state)):
            acc = acc + state[j] * row[j]
        out.append(acc)
    return out


def permute(state, params=None):
    """Poseidon 순열을 적용한 새 상태 리스트를 반환한다.

    Args:
        state: 길이 t의 리스트 (FR 또는 FieldVar)
        params: PoseidonParams (기본값: default_params())
    """
    params = params or default_params()
    if len(state) != params.width:
        raise ValueError(f"상태 길이 {len(state)} != 폭 {params.width}")
    half = params.full_rounds // 2
    partial_end = half + params.partial_rounds
    state = list(state)
    for rnd in range(params.num_rounds):
        state = [s + c for s, c in zip(state, params.round_constants[rnd])]
        if rnd < half or rnd >= partial_end:
            state = [_sbox(s) for s in state]
        else:
            state = [_sbox(state[0])] + state[1:]
        state = _mix(state, params.mds)
    return state
