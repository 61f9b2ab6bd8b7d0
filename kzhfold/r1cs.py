"""
R1CS (Rank-1 Constraint System)
===============================

제약 (A·z) ∘ (B·z) = C·z 를 희소 행렬로 표현한다.

**z 벡터 배치** (길이 2·num_vars):

    z = (vars[0..num_vars), 1, io[0..num_io), 0, ..., 0)

  앞 절반이 증인(witness) 변수, 뒤 절반이 상수 1과 공개 입력이다.
  z의 다중선형 확장에서 최상위 변수 y_0이 두 절반을 가른다:

    Z(y_0, y') = (1 - y_0) · W(y') + y_0 · IO(y')

  따라서 Spartan 검증자는 W(y') 하나의 커밋먼트 열기만 있으면 된다.

**행렬 표현**:
  (row, col, value) 항목 리스트. 행 수 num_cons와 num_vars는 2의 거듭제곱이다.

**예제 회로** (x³ + x + 5 = y, 폭 4):

    vars = [x², x³, s, 0]      io = [x, y]
    제약 0:  x  · x   = x²
    제약 1:  x² · x   = x³
    제약 2:  (x³ + x) · 1 = s
    제약 3:  (s + 5) · 1 = y

  IVC에서는 io = [z_i, z_{i+1}] 로 한 단계의 입력과 출력을 잇는다.
"""

from kzhfold.errors import ShapeError
from kzhfold.field import FR
from kzhfold.pcs.srs import derive_scalar
from kzhfold.polynomial import sparse_mle_eval


def _is_power_of_two(n):
    return n >= 1 and (n & (n - 1)) == 0


def log2(n):
    return n.bit_length() - 1


class R1CSShape:
    """R1CS 회로 형태 (행렬 A, B, C와 크기 정보).

    속성:
        num_cons: 제약 개수 (2의 거듭제곱)
        num_vars: 증인 변수 개수 (2의 거듭제곱)
        num_io: 공개 입력 개수 (< num_vars)
        A, B, C: [(row, col, FR), ...]
    """

    def __init__(self, num_cons, num_vars, num_io, A, B, C):
        if not _is_power_of_two(num_cons) or not _is_power_of_two(num_vars):
            raise ShapeError(
                f"num_cons({num_cons})와 num_vars({num_vars})는 2의 거듭제곱이어야 합니다"
            )
        if num_io >= num_vars:
            raise ShapeError(f"공개 입력 개수 {num_io}는 num_vars {num_vars}보다 작아야 합니다")
        self.num_cons = num_cons
        self.num_vars = num_vars
        self.num_io = num_io
        self.A = self._normalize(A)
        self.B = self._normalize(B)
        self.C = self._normalize(C)

    def _normalize(self, entries):
        out = []
        for row, col, value in entries:
            if not 0 <= row < self.num_cons or not 0 <= col < 2 * self.num_vars:
                raise ShapeError(f"행렬 항목 ({row}, {col})이 범위를 벗어납니다")
            out.append((row, col, value if isinstance(value, FR) else FR(value)))
        return out

    @classmethod
    def synthetic(cls, num_cons, num_vars, num_io, seed=None):
        """임의 크기의 만족 가능한 R1CS와 그 증인을 만든다.

        무작위 z = (vars, 1, io)를 먼저 고르고 제약 i마다
        A[i][i], B[i][i+2] 를 1로 두고 C[i][i+3] 을 A·z 곱에 맞춘다
        (인덱스는 len(vars) + 1 + num_io 로 나눈 나머지).

        Returns:
            (R1CSShape, vars, io)
        """
        size_z = num_vars + 1 + num_io
        z = [derive_scalar(seed, "synthetic-r1cs", i) for i in range(size_z)]
        z[num_vars] = FR(1)

        A, B, C = [], [], []
        for i in range(num_cons):
            a_idx, b_idx, c_idx = i % size_z, (i + 2) % size_z, (i + 3) % size_z
            A.append((i, a_idx, FR(1)))
            B.append((i, b_idx, FR(1)))
            ab = z[a_idx] * z[b_idx]
            if z[c_idx] == FR(0):
                C.append((i, num_vars, ab))
            else:
                C.append((i, c_idx, ab / z[c_idx]))

        shape = cls(num_cons, num_vars, num_io, A, B, C)
        return shape, z[:num_vars], z[num_vars + 1:]

    @property
    def num_x_vars(self):
        """행(제약) 인덱스 변수 개수 log2(num_cons)."""
        return log2(self.num_cons)

    @property
    def num_y_vars(self):
        """열(z) 인덱스 변수 개수 log2(2·num_vars)."""
        return log2(self.num_vars) + 1

    @property
    def num_witness_vars(self):
        """증인 다항식 W의 변수 개수 log2(num_vars)."""
        return log2(self.num_vars)

    def z_vector(self, vars, io):
        if len(vars) != self.num_vars:
            raise ShapeError(f"증인 길이 {len(vars)} != {self.num_vars}")
        if len(io) != self.num_io:
            raise ShapeError(f"공개 입력 길이 {len(io)} != {self.num_io}")
        pad = self.num_vars - 1 - self.num_io
        return list(vars) + [FR(1)] + list(io) + [FR(0)] * pad

    def io_vector(self, io):
        """z의 뒤 절반 (1, io, 0...)."""
        return [FR(1)] + list(io) + [FR(0)] * (self.num_vars - 1 - self.num_io)

    @staticmethod
    def _mat_vec(entries, z, rows):
        out = [FR(0)] * rows
        for row, col, value in entries:
            out[row] = out[row] + value * z[col]
        return out

    def multiply_vec(self, z):
        """(A·z, B·z, C·z)."""
        return (
            self._mat_vec(self.A, z, self.num_cons),
            self._mat_vec(self.B, z, self.num_cons),
            self._mat_vec(self.C, z, self.num_cons),
        )

    def is_sat(self, vars, io):
        """(A·z) ∘ (B·z) == C·z 인지 확인한다."""
        az, bz, cz = self.multiply_vec(self.z_vector(vars, io))
        return all(a * b == c for a, b, c in zip(az, bz, cz))

    def evaluate_matrices(self, rx, ry):
        """(A~(rx, ry), B~(rx, ry), C~(rx, ry))."""
        if len(rx) != self.num_x_vars or len(ry) != self.num_y_vars:
            raise ShapeError(
                f"행렬 평가점 차원 ({len(rx)}, {len(ry)}) != "
                f"({self.num_x_vars}, {self.num_y_vars})"
            )
        return tuple(sparse_mle_eval(m, rx, ry) for m in (self.A, self.B, self.C))

    def evaluate_matrices_at(self, point):
        """연결된 점 (rx ‖ ry)에서의 행렬 평가."""
        return self.evaluate_matrices(point[:self.num_x_vars], point[self.num_x_vars:])


# ─────────────────────────────────────────────────────────────────────
# 예제: x³ + x + 5 = y
# ─────────────────────────────────────────────────────────────────────

class CubicStepCircuit:
    """IVC 한 단계: z_{i+1} = z_i³ + z_i + 5.

    z 인덱스: x²=0, x³=1, s=2, (패딩 3), 1=4, x=5, y=6, (패딩 7)
    """

    X2, X3, S, ONE, X, Y = 0, 1, 2, 4, 5, 6

    def __init__(self):
        X2, X3, S, ONE, X, Y = self.X2, self.X3, self.S, self.ONE, self.X, self.Y
        A = [(0, X, 1), (1, X2, 1), (2, X3, 1), (2, X, 1), (3, S, 1), (3, ONE, 5)]
        B = [(0, X, 1), (1, X, 1), (2, ONE, 1), (3, ONE, 1)]
        C = [(0, X2, 1), (1, X3, 1), (2, S, 1), (3, Y, 1)]
        self.shape = R1CSShape(num_cons=4, num_vars=4, num_io=2, A=A, B=B, C=C)

    def witness(self, z):
        """입력 z에 대한 (vars, io)."""
        x = z if isinstance(z, FR) else FR(z)
        x2 = x * x
        x3 = x2 * x
        s = x3 + x
        y = s + FR(5)
        return [x2, x3, s, FR(0)], [x, y]

    @staticmethod
    def output(io):
        return io[-1]
