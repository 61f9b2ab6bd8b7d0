"""
제약 시스템 (Constraint System) 과 회로 변수
============================================

증강 회로(augmented circuit)를 합성하기 위한 R1CS 빌더.

**ConstraintSystem**:
  - 변수 0은 상수 1
  - alloc_witness / alloc_input 으로 변수 할당 (값을 함께 기록)
  - enforce(a, b, c): <a, z> · <b, z> = <c, z> 제약 추가
  - namespace(name): 제약 레이블 접두어 (with 문)
  - is_satisfied / which_is_unsatisfied: 현재 값으로 모든 제약을 확인

**FieldVar**:
  선형 결합 {변수 인덱스: 계수} 와 그 값. 덧셈/상수배는 제약 없이 새 선형 결합을
  만들고, 변수끼리의 곱만 새 변수와 곱셈 제약을 추가한다.
  계수는 정수 mod r 로 저장한다.

**GroupVar 와 군(group) 관계**:
  G1 점의 좌표는 Fq 원소라 스칼라 필드 회로에서 직접 다룰 수 없다.
  GroupVar는 점 값과 좌표 변수 (x mod r, y mod r)를 함께 가지며,
  enforce_group_combination(out, [(P_i, s_i)]) 은 out == Σ s_i·P_i 를
  "군 관계"로 기록한다. 군 관계는 is_satisfied에서 스칼라 변수의 현재 값으로
  네이티브 검사된다. 보조 곡선(secondary curve) 회로가 맡을 부분을
  대신하는 장치다.
"""

from contextlib import contextmanager

from kzhfold.field import FR, CURVE_ORDER, ec_add, ec_mul, ec_eq, Z1, point_to_scalars


def _as_int(value):
    return int(value) % CURVE_ORDER


# ─────────────────────────────────────────────────────────────────────
# FieldVar
# ─────────────────────────────────────────────────────────────────────

class FieldVar:
    """선형 결합으로 표현된 회로 변수.

    속성:
        cs: 소속 ConstraintSystem
        lc: {변수 인덱스: 정수 계수}
        value: 합성 시점의 FR 값
    """

    __slots__ = ("cs", "lc", "value")

    def __init__(self, cs, lc, value):
        self.cs = cs
        self.lc = lc
        self.value = value if isinstance(value, FR) else FR(value)

    def is_constant(self):
        return all(idx == 0 for idx in self.lc)

    def _lift(self, other):
        if isinstance(other, FieldVar):
            return other
        return self.cs.constant(other)

    def __add__(self, other):
        other = self._lift(other)
        lc = dict(self.lc)
        for idx, coeff in other.lc.items():
            lc[idx] = (lc.get(idx, 0) + coeff) % CURVE_ORDER
        return FieldVar(self.cs, lc, self.value + other.value)

    def __radd__(self, other):
        return self.__add__(other)

    def __neg__(self):
        lc = {idx: (-coeff) % CURVE_ORDER for idx, coeff in self.lc.items()}
        return FieldVar(self.cs, lc, FR(0) - self.value)

    def __sub__(self, other):
        return self.__add__(-self._lift(other))

    def __rsub__(self, other):
        return self._lift(other).__add__(-self)

    def scale(self, scalar):
        s = _as_int(scalar)
        lc = {idx: coeff * s % CURVE_ORDER for idx, coeff in self.lc.items()}
        return FieldVar(self.cs, lc, self.value * FR(s))

    def __mul__(self, other):
        if not isinstance(other, FieldVar):
            return self.scale(other)
        if other.is_constant():
            return self.scale(other.lc.get(0, 0))
        if self.is_constant():
            return other.scale(self.lc.get(0, 0))
        product = self.cs.alloc_witness(self.value * other.value)
        self.cs.enforce(self, other, product, "mul")
        return product

    def __rmul__(self, other):
        return self.__mul__(other)

    def __repr__(self):
        return f"FieldVar(value={int(self.value)}, terms={len(self.lc)})"


# ─────────────────────────────────────────────────────────────────────
# GroupVar
# ─────────────────────────────────────────────────────────────────────

class GroupVar:
    """G1 점 값과 그 좌표 변수 (x mod r, y mod r)."""

    __slots__ = ("point", "coords")

    def __init__(self, point, coords):
        self.point = point
        self.coords = coords

    @classmethod
    def alloc(cls, cs, point, label="point"):
        xs, ys = point_to_scalars(point)
        coords = (cs.alloc_witness(xs), cs.alloc_witness(ys))
        var = cls(point, coords)
        cs.add_group_relation(
            label + " coords", lambda: tuple(cs.eval(c) for c in coords) == point_to_scalars(point)
        )
        return var

    @classmethod
    def constant(cls, cs, point):
        xs, ys = point_to_scalars(point)
        return cls(point, (cs.constant(xs), cs.constant(ys)))


# ─────────────────────────────────────────────────────────────────────
# ConstraintSystem
# ─────────────────────────────────────────────────────────────────────

class ConstraintSystem:
    """R1CS 빌더.

    속성:
        values: 변수 값 리스트 (values[0] = 1)
        input_indices: 공개 입력 변수 인덱스
        constraints: [(a_lc, b_lc, c_lc, label), ...]
        group_relations: [(label, check), ...]
    """

    def __init__(self):
        self.values = [FR(1)]
        self.input_indices = []
        self.constraints = []
        self.group_relations = []
        self._scope = []

    # ── 할당 ──

    @property
    def one(self):
        return FieldVar(self, {0: 1}, FR(1))

    def constant(self, value):
        v = _as_int(value)
        return FieldVar(self, {0: v} if v else {}, FR(v))

    def alloc_witness(self, value, label=None):
        idx = len(self.values)
        self.values.append(value if isinstance(value, FR) else FR(_as_int(value)))
        return FieldVar(self, {idx: 1}, self.values[idx])

    def alloc_input(self, value, label=None):
        var = self.alloc_witness(value, label)
        self.input_indices.extend(var.lc)
        return var

    @property
    def public_inputs(self):
        return [self.values[idx] for idx in self.input_indices]

    @property
    def num_constraints(self):
        return len(self.constraints)

    @property
    def num_variables(self):
        return len(self.values)

    # ── 제약 ──

    def _label(self, label):
        return "/".join(self._scope + [label])

    @contextmanager
    def namespace(self, name):
        self._scope.append(name)
        try:
            yield self
        finally:
            self._scope.pop()

    def _lc(self, term):
        if isinstance(term, FieldVar):
            return term.lc
        v = _as_int(term)
        return {0: v} if v else {}

    def enforce(self, a, b, c, label="constraint"):
        """<a, z> · <b, z> = <c, z>."""
        self.constraints.append(
            (self._lc(a), self._lc(b), self._lc(c), self._label(label))
        )

    def enforce_equal(self, a, b, label="equal"):
        """a == b (선형 제약 (a - b) · 1 = 0)."""
        if not isinstance(a, FieldVar):
            a, b = b, a
        self.enforce(a - b, 1, 0, label)

    def add_group_relation(self, label, check):
        self.group_relations.append((self._label(label), check))

    def enforce_group_combination(self, out, terms, label="group"):
        """out == Σ scalar_i · point_i 를 군 관계로 기록한다.

        Args:
            out: GroupVar
            terms: [(GroupVar, FieldVar 또는 FR), ...]
        """
        def check():
            acc = Z1
            for g, scalar in terms:
                s = self.eval(scalar) if isinstance(scalar, FieldVar) else scalar
                acc = ec_add(acc, ec_mul(g.point, s))
            return ec_eq(acc, out.point)
        self.add_group_relation(label, check)

    def enforce_group_equal(self, a, b, label="group equal"):
        self.add_group_relation(label, lambda: ec_eq(a.point, b.point))
        self.enforce_equal(a.coords[0], b.coords[0], label + " x")
        self.enforce_equal(a.coords[1], b.coords[1], label + " y")

    # ── 검사 ──

    def eval_lc(self, lc):
        total = 0
        for idx, coeff in lc.items():
            total += coeff * int(self.values[idx])
        return FR(total % CURVE_ORDER)

    def eval(self, var):
        return self.eval_lc(var.lc)

    def which_is_unsatisfied(self):
        """처음으로 만족되지 않는 제약/관계의 레이블. 모두 만족하면 None."""
        for a, b, c, label in self.constraints:
            if self.eval_lc(a) * self.eval_lc(b) != self.eval_lc(c):
                return label
        for label, check in self.group_relations:
            if not check():
                return label
        return None

    def is_satisfied(self):
        return self.which_is_unsatisfied() is None
