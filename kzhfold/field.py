"""
KZH-fold 기반 모듈: 유한체(Finite Field) 및 타원곡선 연산
==========================================================

이 모듈은 KZH 커밋먼트, 누적(folding), 회로 계층 전체에서 사용되는
기본 대수적 도구를 정의한다.

**유한체 FR**:
  BN254(bn128) 타원곡선의 스칼라 필드. 다중선형 다항식의 평가표,
  sumcheck 라운드 다항식, 누적자의 스칼라 성분이 모두 이 필드 위에 있다.
  - 위수 r ≈ 2^254, 소수체

**타원곡선 연산**:
  KZH 커밋먼트는 G1 점들의 선형 결합(MSM)이고, 검증은 G2 키와의
  페어링 곱으로 이루어진다. 성능을 위해 py_ecc의 optimized_bn128
  (야코비안 좌표)을 사용한다. 점 비교는 반드시 ec_eq로 한다.

**페어링 곱**:
  e(C, V) == Π e(D_i, V_i) 형태의 검사를 Miller loop 곱과
  한 번의 final exponentiation으로 수행한다.

사용 예시:
    >>> from kzhfold.field import FR, G1, ec_mul, msm
    >>> P = ec_mul(G1, FR(5))
    >>> Q = msm([G1, P], [FR(2), FR(3)])   # 17·G1
"""

from concurrent.futures import ProcessPoolExecutor
from itertools import repeat

from py_ecc.fields import bn128_FQ as FQ
from py_ecc import bn128
from py_ecc import optimized_bn128 as curve

from kzhfold import config


# ─────────────────────────────────────────────────────────────────────
# 유한체(Finite Field) FR
# ─────────────────────────────────────────────────────────────────────

class FR(FQ):
    """bn128 스칼라 필드 위의 유한체 원소.

    py_ecc의 FQ 클래스를 상속하여 +, -, *, /, ** 연산을 제공한다.

    예시:
        >>> x = FR(3)
        >>> x * x          # FR(9)
        >>> FR(1) / FR(3)   # 3의 모듈러 역원
    """
    field_modulus = bn128.curve_order


# 곡선 위수 (필드 크기)
CURVE_ORDER = bn128.curve_order


# ─────────────────────────────────────────────────────────────────────
# 타원곡선 상수 및 연산
# ─────────────────────────────────────────────────────────────────────

# G1, G2 생성자 (야코비안 좌표)
G1 = curve.G1
G2 = curve.G2

# 항등원 (point at infinity)
Z1 = curve.Z1
Z2 = curve.Z2


def ec_mul(point, scalar):
    """타원곡선 스칼라 곱셈: scalar · point.

    Args:
        point: G1 또는 G2 위의 점
        scalar: 정수 또는 FR 원소

    Returns:
        scalar · point (같은 그룹의 점)
    """
    if isinstance(scalar, FQ):
        scalar = int(scalar)
    return curve.multiply(point, scalar % CURVE_ORDER)


def ec_add(p1, p2):
    """타원곡선 점 덧셈: p1 + p2."""
    return curve.add(p1, p2)


def ec_neg(point):
    """타원곡선 점의 역원: -point."""
    return curve.neg(point)


def ec_sub(p1, p2):
    """p1 - p2."""
    return curve.add(p1, curve.neg(p2))


def ec_eq(p1, p2):
    """두 점이 같은 군 원소인지 비교한다.

    야코비안 좌표는 표현이 유일하지 않으므로 튜플 비교(==)를 쓰면 안 된다.
    """
    return curve.eq(p1, p2)


def is_identity(point):
    """항등원(무한원점) 여부."""
    return curve.is_inf(point)


def normalize(point):
    """야코비안 점을 아핀 좌표 (x, y)로 변환한다. 항등원은 None."""
    if curve.is_inf(point):
        return None
    return curve.normalize(point)


def msm(points, scalars):
    """다중 스칼라 곱셈(MSM): Σ scalars[i] · points[i].

    0 스칼라는 건너뛴다. 점과 스칼라 개수가 다르면 ValueError.

    Args:
        points: 같은 그룹의 점 리스트
        scalars: 정수 또는 FR 리스트

    Returns:
        합산된 점 (빈 입력이면 G1 항등원)
    """
    if len(points) != len(scalars):
        raise ValueError(
            f"점과 스칼라 개수가 다릅니다: {len(points)} != {len(scalars)}"
        )
    result = None
    for point, scalar in zip(points, scalars):
        s = int(scalar) % CURVE_ORDER
        if s == 0:
            continue
        term = point if s == 1 else curve.multiply(point, s)
        result = term if result is None else curve.add(result, term)
    if result is None:
        return _zero_like(points[0]) if points else Z1
    return result


def _zero_like(point):
    """point와 같은 그룹의 항등원."""
    one = point[0].__class__.one()
    zero = point[0].__class__.zero()
    return (one, one, zero)


def msm_rows(points, rows, workers=None):
    """같은 점 리스트로 여러 행의 MSM을 계산한다.

    행끼리는 독립이므로 workers > 1 이면 프로세스 풀에 행을 나눠 맡긴다.
    py_ecc 연산은 순수 파이썬이라 스레드로는 빨라지지 않는다.

    Args:
        points: 점 리스트 (모든 행이 공유)
        rows: 스칼라 리스트의 리스트
        workers: 프로세스 수 (기본값: config.WORKERS)

    Returns:
        행 순서대로의 점 리스트
    """
    workers = config.WORKERS if workers is None else workers
    if workers <= 1 or len(rows) < 2:
        return [msm(points, row) for row in rows]
    with ProcessPoolExecutor(max_workers=min(workers, len(rows))) as pool:
        return list(pool.map(msm, repeat(points), rows))


# ─────────────────────────────────────────────────────────────────────
# 페어링
# ─────────────────────────────────────────────────────────────────────

def miller_loop(g2_point, g1_point):
    """final exponentiation 전의 페어링 값 (GT의 대표원)."""
    return curve.pairing(g2_point, g1_point, final_exponentiate=False)


def pairing_product_is_one(pairs):
    """Π e(P_i, Q_i) == 1 인지 확인한다.

    각 쌍의 Miller loop를 곱한 뒤 final exponentiation은 한 번만 수행한다.
    한쪽이 항등원인 쌍은 기여가 1이므로 건너뛴다.

    Args:
        pairs: [(g1_point, g2_point), ...]

    Returns:
        bool
    """
    acc = curve.FQ12.one()
    for g1_point, g2_point in pairs:
        if curve.is_inf(g1_point) or curve.is_inf(g2_point):
            continue
        acc = acc * miller_loop(g2_point, g1_point)
    return curve.final_exponentiate(acc) == curve.FQ12.one()


# ─────────────────────────────────────────────────────────────────────
# 점 → 스칼라 변환 (트랜스크립트 흡수용)
# ─────────────────────────────────────────────────────────────────────

def point_to_scalars(point):
    """G1 점을 두 FR 원소 (x mod r, y mod r)로 변환한다.

    기저체 Fq의 좌표는 r보다 클 수 있으므로 r로 축소한다.
    항등원은 (0, 0)으로 표현한다.
    """
    affine = normalize(point)
    if affine is None:
        return FR(0), FR(0)
    x, y = affine
    return FR(int(x) % CURVE_ORDER), FR(int(y) % CURVE_ORDER)
