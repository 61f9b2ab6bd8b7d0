"""
KZH-fold 기반 모듈: 다중선형 다항식과 단변수 라운드 다항식
===========================================================

**MultilinearPolynomial**:
  불리언 초입방체 {0,1}^n 위의 평가표로 표현하는 다중선형 다항식.
  길이 2^n의 리스트이며, 인덱스의 최상위 비트가 변수 0이다.

      f(x_0, ..., x_{n-1}) = Σ_b f[b] · eq(x, b)

  예: n = 3, 평가표 [1..8]이면 f(0,0,0) = 1, f(1,1,1) = 8, f(1,0,0) = 5.

**eq 다항식**:
  eq(x, y) = Π (x_i·y_i + (1 - x_i)(1 - y_i)).
  eq_table(x)는 모든 불리언 b에 대한 eq(x, b)를 같은 인덱스 규약으로 만든다.

**UniPoly**:
  sumcheck 라운드마다 주고받는 단변수 다항식 g_i(X). 계수 리스트로 표현하고
  와이어 크기가 차수 상한에 의해 고정되도록 최고차 0 계수를 잘라내지 않는다.

**희소 행렬 MLE**:
  (row, col, value) 항목 리스트로 주어진 R1CS 행렬 M에 대해
  M~(rx, ry) = Σ value · eq(rx, row) · eq(ry, col).

사용 예시:
    >>> f = MultilinearPolynomial([FR(v) for v in range(1, 9)])
    >>> f.evaluate([FR(1), FR(1), FR(1)])   # FR(8)
    >>> g = UniPoly.interpolate([FR(1), FR(3), FR(7)])
    >>> g.evaluate(FR(3))                    # FR(13)
"""

from kzhfold.errors import ShapeError
from kzhfold.field import FR


def _log2_exact(length):
    """length가 2의 거듭제곱이면 log2(length), 아니면 ShapeError."""
    if length < 1 or (length & (length - 1)) != 0:
        raise ShapeError(f"평가표 길이는 2의 거듭제곱이어야 합니다: {length}")
    return length.bit_length() - 1


# ─────────────────────────────────────────────────────────────────────
# eq 다항식
# ─────────────────────────────────────────────────────────────────────

def eq_eval(x, y):
    """eq(x, y) = Π (x_i·y_i + (1 - x_i)(1 - y_i))."""
    if len(x) != len(y):
        raise ShapeError(f"eq 인자 차원 불일치: {len(x)} != {len(y)}")
    result = FR(1)
    for xi, yi in zip(x, y):
        result = result * (xi * yi + (FR(1) - xi) * (FR(1) - yi))
    return result


def eq_table(point):
    """모든 b ∈ {0,1}^n 에 대한 eq(point, b) 리스트.

    point[0]이 인덱스의 최상위 비트가 되도록 앞 변수부터 전개한다.

    예시:
        >>> eq_table([FR(0), FR(1)])   # [0, 1, 0, 0]
    """
    table = [FR(1)]
    for xi in point:
        one_minus = FR(1) - xi
        expanded = []
        for t in table:
            expanded.append(t * one_minus)
            expanded.append(t * xi)
        table = expanded
    return table


def inner_product(a, b):
    """<a, b> = Σ a_i · b_i (FR 벡터)."""
    if len(a) != len(b):
        raise ShapeError(f"내적 차원 불일치: {len(a)} != {len(b)}")
    result = FR(0)
    for ai, bi in zip(a, b):
        result = result + ai * bi
    return result


# ─────────────────────────────────────────────────────────────────────
# MultilinearPolynomial
# ─────────────────────────────────────────────────────────────────────

class MultilinearPolynomial:
    """평가표 기반 다중선형 다항식.

    속성:
        evals: 길이 2^n 의 FR 리스트
        num_vars: 변수 개수 n
    """

    def __init__(self, evals):
        self.evals = [e if isinstance(e, FR) else FR(e) for e in evals]
        self.num_vars = _log2_exact(len(self.evals))

    @classmethod
    def zero(cls, num_vars):
        return cls([FR(0)] * (1 << num_vars))

    def __len__(self):
        return len(self.evals)

    def bind_first(self, r):
        """변수 0을 r로 고정한 (n-1)변수 다항식을 반환한다.

        f(r, ·)[j] = f[j] + r · (f[j + half] - f[j])
        """
        if self.num_vars == 0:
            raise ShapeError("상수 다항식에는 고정할 변수가 없습니다")
        half = len(self.evals) // 2
        lo, hi = self.evals[:half], self.evals[half:]
        return MultilinearPolynomial(
            [a + r * (b - a) for a, b in zip(lo, hi)]
        )

    def bind_prefix(self, prefix):
        """앞쪽 변수들을 prefix로 차례로 고정한다."""
        poly = self
        for r in prefix:
            poly = poly.bind_first(r)
        return poly

    def evaluate(self, point):
        """f(point)를 계산한다.

        Raises:
            ShapeError: len(point) != num_vars
        """
        if len(point) != self.num_vars:
            raise ShapeError(
                f"평가점 차원 {len(point)}이 변수 개수 {self.num_vars}와 다릅니다"
            )
        return self.bind_prefix(point).evals[0]

    def rows(self, row_vars):
        """앞의 row_vars개 변수로 평가표를 행(row)들로 나눈다."""
        width = 1 << (self.num_vars - row_vars)
        return [
            self.evals[i * width:(i + 1) * width]
            for i in range(1 << row_vars)
        ]

    def __add__(self, other):
        if self.num_vars != other.num_vars:
            raise ShapeError("변수 개수가 다른 다항식은 더할 수 없습니다")
        return MultilinearPolynomial(
            [a + b for a, b in zip(self.evals, other.evals)]
        )

    def scale(self, scalar):
        scalar = scalar if isinstance(scalar, FR) else FR(scalar)
        return MultilinearPolynomial([e * scalar for e in self.evals])

    def __eq__(self, other):
        if not isinstance(other, MultilinearPolynomial):
            return False
        return self.evals == other.evals

    def __repr__(self):
        return f"MLE(n={self.num_vars}, evals={[int(e) for e in self.evals]})"


# ─────────────────────────────────────────────────────────────────────
# 단변수 다항식 (sumcheck 라운드 메시지)
# ─────────────────────────────────────────────────────────────────────

def horner(coeffs, point):
    """Horner 방식 평가: c_0 + x(c_1 + x(c_2 + ...)).

    + 와 * 만 사용하므로 FR 값과 회로 변수 모두에 쓸 수 있다.
    """
    result = coeffs[-1]
    for coeff in reversed(coeffs[:-1]):
        result = result * point + coeff
    return result


class UniPoly:
    """계수 표현 단변수 다항식 g(X) = c_0 + c_1·X + ... + c_d·X^d.

    최고차 0 계수를 보존한다.
    라운드 메시지는 항상 (차수 상한 + 1)개의 계수로 전송된다.
    """

    def __init__(self, coeffs):
        if not coeffs:
            raise ShapeError("UniPoly는 최소 한 개의 계수가 필요합니다")
        self.coeffs = [c if isinstance(c, FR) else FR(c) for c in coeffs]

    @property
    def degree(self):
        """명목 차수 (계수 개수 - 1)."""
        return len(self.coeffs) - 1

    def __len__(self):
        return len(self.coeffs)

    def evaluate(self, point):
        if not isinstance(point, FR):
            point = FR(point)
        return horner(self.coeffs, point)

    def eval_at_zero(self):
        return self.coeffs[0]

    def eval_at_one(self):
        total = FR(0)
        for c in self.coeffs:
            total = total + c
        return total

    @classmethod
    def interpolate(cls, evals):
        """점 0, 1, ..., d 에서의 값으로부터 계수를 복원한다 (라그랑주 보간).

        Args:
            evals: [g(0), g(1), ..., g(d)]

        Returns:
            UniPoly: 차수 ≤ d, 계수 d+1개
        """
        d = len(evals) - 1
        coeffs = [FR(0)] * (d + 1)
        for i, y in enumerate(evals):
            # 기저 다항식 Π_{j≠i} (X - j) 의 계수를 누적
            basis = [FR(1)]
            denom = FR(1)
            for j in range(d + 1):
                if j == i:
                    continue
                shifted = [FR(0)] + basis
                for k in range(len(basis)):
                    shifted[k] = shifted[k] - basis[k] * FR(j)
                basis = shifted
                denom = denom * FR(i - j)
            factor = y / denom
            for k in range(len(basis)):
                coeffs[k] = coeffs[k] + basis[k] * factor
        return cls(coeffs)

    def __eq__(self, other):
        if not isinstance(other, UniPoly):
            return False
        return self.coeffs == other.coeffs

    def __repr__(self):
        return "UniPoly(" + ", ".join(str(int(c)) for c in self.coeffs) + ")"


# ─────────────────────────────────────────────────────────────────────
# 희소 행렬의 다중선형 확장
# ─────────────────────────────────────────────────────────────────────

def sparse_mle_eval(entries, rx, ry):
    """M~(rx, ry) = Σ value · eq(rx, row) · eq(ry, col).

    Args:
        entries: [(row, col, value), ...]
        rx: 행 인덱스 변수에 대한 점 (log2(행 수) 차원)
        ry: 열 인덱스 변수에 대한 점 (log2(열 수) 차원)
    """
    ex = eq_table(rx)
    ey = eq_table(ry)
    total = FR(0)
    for row, col, value in entries:
        total = total + value * ex[row] * ey[col]
    return total
