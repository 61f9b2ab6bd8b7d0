"""
KZH Structured Reference String (커밋먼트 키)
=============================================

L단계 KZH (L = 2, 3, 4) 커밋먼트 키를 생성한다.

**변수 블록 분해**:
  n개의 변수를 L개 블록으로 나눈다. 블록당 n // L 개씩, 나머지는
  뒤쪽 블록에 하나씩 더한다.
      n = 3, L = 2  →  블록 크기 (1, 2)
      n = 10, L = 4 →  블록 크기 (2, 2, 3, 3)
  평가표 인덱스는 블록 0이 최상위 비트다.

**키 구조** (d_l = 블록 l의 변수 수):
  - H^(L-1) = [G_0, ..., G_{2^{d_{L-1}}-1}]: 무작위 G1 생성자
  - H^(l)[i ‖ rest] = τ_l[i] · H^(l+1)[rest]   (l = L-2, ..., 0)
  - V: G2 생성자,  V_l[i] = τ_l[i] · V   (l = 0, ..., L-2)

  |H^(0)| = 2^n 이고 커밋은 <f, H^(0)> 한 점이다.
  τ_l, G_k 의 이산로그는 "toxic waste"로 생성 후 폐기된다.

**setup 캐시**:
  같은 (n, arity, seed) 요청은 functools.lru_cache로 같은 키 객체를 공유한다.
  키는 생성 후 변경되지 않는다.

사용 예시:
    >>> key = setup(3, arity=2, seed=42)
    >>> key.dims        # (1, 2)
    >>> len(key.H[0])   # 8
"""

import hashlib
import secrets
from functools import lru_cache

from kzhfold import config
from kzhfold.errors import ParameterError
from kzhfold.field import FR, G1, G2, ec_mul, CURVE_ORDER


def block_dims(num_vars, arity):
    """n개의 변수를 arity개 블록으로 나눈 블록 크기 튜플."""
    base, rem = divmod(num_vars, arity)
    return tuple(base + (1 if i >= arity - rem else 0) for i in range(arity))


def derive_scalar(seed, tag, index):
    """(seed, tag, index)에서 0이 아닌 FR 원소를 유도한다.

    seed가 None이면 암호학적 난수를 사용한다.
    """
    if seed is not None:
        h = hashlib.sha256(f"{seed}:{tag}:{index}".encode()).digest()
        value = int.from_bytes(h, "big") % CURVE_ORDER
        return FR(value or 1)
    return FR(secrets.randbelow(CURVE_ORDER - 1) + 1)


class KZHKey:
    """KZH 커밋먼트 키 (불변).

    속성:
        num_vars: 다항식 변수 개수 n
        arity: 분해 단계 수 L
        dims: 블록별 변수 개수 튜플 (길이 L)
        H: 단계별 G1 원소 리스트, H[l]의 길이는 2^{d_l + ... + d_{L-1}}
        V: G2 생성자
        V_levels: V_levels[l][i] = τ_l[i] · V  (l < L-1)
    """

    def __init__(self, num_vars, arity, dims, H, V, V_levels):
        self.num_vars = num_vars
        self.arity = arity
        self.dims = tuple(dims)
        self.H = H
        self.V = V
        self.V_levels = V_levels

    @property
    def generators(self):
        """마지막 단계의 G1 생성자 H^(L-1)."""
        return self.H[-1]

    def level_size(self, level):
        """블록 level의 불리언 점 개수 2^{d_l}."""
        return 1 << self.dims[level]

    @classmethod
    def generate(cls, num_vars, arity=config.DEFAULT_ARITY, seed=None):
        """검증 없이 키를 생성한다. 일반적으로 setup()을 사용한다."""
        dims = block_dims(num_vars, arity)

        # 마지막 단계: 무작위 G1 생성자
        last = [
            ec_mul(G1, derive_scalar(seed, "G", k))
            for k in range(1 << dims[-1])
        ]
        H = [None] * arity
        H[-1] = last

        V = G2
        V_levels = [None] * (arity - 1)
        for level in range(arity - 2, -1, -1):
            taus = [
                derive_scalar(seed, f"tau{level}", i)
                for i in range(1 << dims[level])
            ]
            H[level] = [ec_mul(h, tau) for tau in taus for h in H[level + 1]]
            V_levels[level] = [ec_mul(V, tau) for tau in taus]

        return cls(num_vars, arity, dims, H, V, V_levels)


def _validate(num_vars, arity):
    if arity not in config.SUPPORTED_ARITIES:
        raise ParameterError(
            f"지원하지 않는 KZH 단계 수: {arity} (지원: {config.SUPPORTED_ARITIES})"
        )
    if not isinstance(num_vars, int) or num_vars < 0:
        raise ParameterError(f"변수 개수는 0 이상의 정수여야 합니다: {num_vars!r}")
    if num_vars > config.MAX_NUM_VARS:
        raise ParameterError(
            f"변수 개수 {num_vars}가 최대값 {config.MAX_NUM_VARS}를 넘습니다"
        )
    if arity > 2 and num_vars < arity:
        raise ParameterError(
            f"KZH-{arity}는 최소 {arity}개의 변수가 필요합니다: {num_vars}"
        )


@lru_cache(maxsize=32)
def _cached_generate(num_vars, arity, seed):
    return KZHKey.generate(num_vars, arity, seed)


def setup(num_vars, arity=config.DEFAULT_ARITY, seed=None):
    """n변수 다항식용 KZH 키를 만든다.

    Args:
        num_vars: 변수 개수 n
        arity: 분해 단계 수 (2, 3, 4)
        seed: 결정론적 생성을 위한 시드. None이면 무작위이며 캐시하지 않는다.

    Returns:
        KZHKey

    Raises:
        ParameterError: 단계 수가 지원 범위 밖이거나, n이 음수/최대값 초과이거나,
                        KZH-3/4에서 n < arity 인 경우
    """
    _validate(num_vars, arity)
    if seed is None:
        return KZHKey.generate(num_vars, arity, None)
    return _cached_generate(num_vars, arity, seed)
