"""
KZH-fold 와이어 형식 (직렬화/역직렬화)
======================================

커밋먼트, 열기 증명, 누적자 인스턴스를 32바이트 빅엔디언 워드의
평탄한 바이트열로 바꾼다. 길이 정보는 쓰지 않는다. 워드 개수는
(n, arity)만으로 정해지므로 디코더는 키에서 배치를 알아낸다.

  스칼라 (FR)   1 워드
  G1 점         2 워드  (아핀 x, y)
  G2 점         4 워드  (x.c0, x.c1, y.c0, y.c1)
  항등원        같은 개수의 0 워드

**열기 증명** (d_l = 블록 l의 변수 수):
  D_0 ‖ ... ‖ D_{L-2}     Σ_{l<L-1} 2^{d_l} 개의 G1
  f*                      2^{d_{L-1}} 개의 스칼라
  sumcheck 라운드         d_{L-1} 라운드 × 계수 3개
  n = 0 이면 빈 바이트열.

**누적자 인스턴스**:
  C (L-1 개 G1) ‖ T ‖ E (L+1 개 G1) ‖ x (n 개) ‖ z

**누적자 증인**:
  D_0 ‖ ... ‖ D_{L-2}     열기 증명과 같은 배치
  trees                   블록 l마다 2^{d_l + 1} - 1 개의 스칼라
  f*                      2^{d_{L-1}} 개의 스칼라

**누적자** = 인스턴스 ‖ 증인.  decide는 이것만으로 실행할 수 있다.

**접기 증명**:  Q (L+1 개 G1)

**일괄 누적 결과**:  누적자 ‖ 접기 증명 k개  (k는 주장 개수, 따로 전달)

디코더는 워드 개수, 스칼라 범위 (< r), 점의 곡선 위 여부를 확인하고
어긋나면 TranscriptError를 던진다.
"""

from py_ecc import optimized_bn128 as curve

from kzhfold.accumulation.accumulator import AccInstance, AccWitness, Accumulator, FoldProof
from kzhfold.accumulation.eq_tree import tree_size
from kzhfold.aggregation import Aggregate
from kzhfold.errors import TranscriptError
from kzhfold.field import FR, CURVE_ORDER, Z1, Z2, normalize
from kzhfold.pcs.kzh import Commitment, OpeningProof, commitment_point, empty_proof
from kzhfold.pcs.srs import block_dims
from kzhfold.polynomial import UniPoly
from kzhfold.sumcheck import SumcheckProof

WORD_SIZE = 32
G1_WORDS = 2
G2_WORDS = 4

# KZH 열기 sumcheck 의 라운드 다항식 차수 (f* · eq)
_OPENING_DEGREE = 2


# ─── 크기 ───

def commitment_size(num_vars, arity):
    """커밋먼트 워드 수 (G1 한 개)."""
    return G1_WORDS


def opening_proof_size(num_vars, arity):
    """열기 증명 워드 수."""
    if num_vars == 0:
        return 0
    dims = block_dims(num_vars, arity)
    rows = sum(1 << d for d in dims[:-1])
    return G1_WORDS * rows + (1 << dims[-1]) + (_OPENING_DEGREE + 1) * dims[-1]


def instance_size(num_vars, arity):
    """누적자 인스턴스 워드 수."""
    points = (arity - 1) + 1 + (arity + 1)
    return G1_WORDS * points + num_vars + 1


def witness_size(num_vars, arity):
    """누적자 증인 워드 수: D, eq 트리 노드, f*."""
    dims = block_dims(num_vars, arity)
    rows = sum(1 << d for d in dims[:-1])
    nodes = sum(tree_size(d) for d in dims)
    return G1_WORDS * rows + nodes + (1 << dims[-1])


def accumulator_size(num_vars, arity):
    return instance_size(num_vars, arity) + witness_size(num_vars, arity)


def fold_proof_size(num_vars, arity):
    """접기 증명 워드 수 (결함마다 교차항 G1 한 개)."""
    return G1_WORDS * (arity + 1)


def aggregate_size(num_vars, arity, num_claims):
    return accumulator_size(num_vars, arity) + num_claims * fold_proof_size(num_vars, arity)


# ─── 워드 단위 ───

def _word(value):
    return int(value).to_bytes(WORD_SIZE, "big")


def encode_fr(value):
    """FR → 32바이트"""
    return _word(int(value) % CURVE_ORDER)


def encode_g1(point):
    """G1 점 → 64바이트 (항등원은 0)"""
    affine = normalize(point)
    if affine is None:
        return _word(0) * G1_WORDS
    return _word(affine[0]) + _word(affine[1])


def encode_g2(point):
    """G2 점 → 128바이트 (항등원은 0)"""
    affine = normalize(point)
    if affine is None:
        return _word(0) * G2_WORDS
    x, y = affine
    return b"".join(_word(c) for c in (x.coeffs[0], x.coeffs[1], y.coeffs[0], y.coeffs[1]))


class _Reader:
    """바이트열을 워드 단위로 읽는다."""

    def __init__(self, data, expected_words):
        if len(data) != expected_words * WORD_SIZE:
            raise TranscriptError(
                f"바이트 길이 {len(data)} != {expected_words} 워드"
            )
        self.data = data
        self.pos = 0

    def word(self):
        chunk = self.data[self.pos:self.pos + WORD_SIZE]
        self.pos += WORD_SIZE
        return int.from_bytes(chunk, "big")

    def fr(self):
        value = self.word()
        if value >= CURVE_ORDER:
            raise TranscriptError("스칼라가 필드 범위를 벗어남")
        return FR(value)

    def g1(self):
        x, y = self.word(), self.word()
        if x == 0 and y == 0:
            return Z1
        if x >= curve.field_modulus or y >= curve.field_modulus:
            raise TranscriptError("G1 좌표가 기저체 범위를 벗어남")
        point = (curve.FQ(x), curve.FQ(y), curve.FQ.one())
        if not curve.is_on_curve(point, curve.b):
            raise TranscriptError("G1 점이 곡선 위에 있지 않음")
        return point

    def g2(self):
        words = [self.word() for _ in range(G2_WORDS)]
        if not any(words):
            return Z2
        if any(w >= curve.field_modulus for w in words):
            raise TranscriptError("G2 좌표가 기저체 범위를 벗어남")
        point = (
            curve.FQ2([words[0], words[1]]),
            curve.FQ2([words[2], words[3]]),
            curve.FQ2.one(),
        )
        if not curve.is_on_curve(point, curve.b2):
            raise TranscriptError("G2 점이 곡선 위에 있지 않음")
        return point


def decode_fr(data):
    return _Reader(data, 1).fr()


def decode_g1(data):
    return _Reader(data, G1_WORDS).g1()


def decode_g2(data):
    return _Reader(data, G2_WORDS).g2()


# ─── 커밋먼트 ───

def encode_commitment(commitment):
    return encode_g1(commitment_point(commitment))


def decode_commitment(data):
    return Commitment(decode_g1(data))


# ─── 열기 증명 ───

def encode_opening_proof(key, proof):
    """열기 증명 → 바이트열. 배치가 키와 다르면 TranscriptError."""
    if key.num_vars == 0:
        return b""
    out = []
    if len(proof.D) != key.arity - 1:
        raise TranscriptError(f"행 커밋먼트 단계 수 {len(proof.D)} != {key.arity - 1}")
    for level, rows in enumerate(proof.D):
        if len(rows) != key.level_size(level):
            raise TranscriptError(f"D_{level} 길이 {len(rows)}")
        out.extend(encode_g1(d) for d in rows)
    if len(proof.f_star) != key.level_size(key.arity - 1):
        raise TranscriptError(f"f* 길이 {len(proof.f_star)}")
    out.extend(encode_fr(v) for v in proof.f_star)
    if len(proof.sumcheck) != key.dims[-1]:
        raise TranscriptError(f"sumcheck 라운드 수 {len(proof.sumcheck)}")
    for g in proof.sumcheck.round_polys:
        if len(g.coeffs) != _OPENING_DEGREE + 1:
            raise TranscriptError(f"라운드 계수 개수 {len(g.coeffs)}")
        out.extend(encode_fr(c) for c in g.coeffs)
    return b"".join(out)


def decode_opening_proof(key, data):
    """바이트열 → OpeningProof."""
    reader = _Reader(data, opening_proof_size(key.num_vars, key.arity))
    if key.num_vars == 0:
        return empty_proof()
    D = [
        [reader.g1() for _ in range(key.level_size(level))]
        for level in range(key.arity - 1)
    ]
    f_star = [reader.fr() for _ in range(key.level_size(key.arity - 1))]
    rounds = [
        UniPoly([reader.fr() for _ in range(_OPENING_DEGREE + 1)])
        for _ in range(key.dims[-1])
    ]
    return OpeningProof(D, f_star, SumcheckProof(rounds))


# ─── 누적자 인스턴스 ───

def encode_instance(instance):
    parts = [encode_g1(p) for p in instance.points()]
    parts.extend(encode_fr(v) for v in instance.x)
    parts.append(encode_fr(instance.z))
    return b"".join(parts)


def decode_instance(key, data):
    """바이트열 → AccInstance (key: KZHKey, 배치 결정용)."""
    return _read_instance(key, _Reader(data, instance_size(key.num_vars, key.arity)))


def _read_instance(key, reader):
    L = key.arity
    C = [reader.g1() for _ in range(L - 1)]
    T = reader.g1()
    E = [reader.g1() for _ in range(L + 1)]
    x = [reader.fr() for _ in range(key.num_vars)]
    return AccInstance(C, T, E, x, reader.fr())


# ─── 누적자 증인 ───

def encode_witness(key, witness):
    """누적자 증인 → 바이트열. 배치가 키와 다르면 TranscriptError."""
    L = key.arity
    if len(witness.D) != L - 1 or len(witness.trees) != L:
        raise TranscriptError(f"증인 단계 수 D {len(witness.D)}, trees {len(witness.trees)}")
    out = []
    for level, rows in enumerate(witness.D):
        if len(rows) != key.level_size(level):
            raise TranscriptError(f"D_{level} 길이 {len(rows)}")
        out.extend(encode_g1(d) for d in rows)
    for nodes, d in zip(witness.trees, key.dims):
        if len(nodes) != tree_size(d):
            raise TranscriptError(f"eq 트리 노드 수 {len(nodes)}")
        out.extend(encode_fr(v) for v in nodes)
    if len(witness.f_star) != key.level_size(L - 1):
        raise TranscriptError(f"f* 길이 {len(witness.f_star)}")
    out.extend(encode_fr(v) for v in witness.f_star)
    return b"".join(out)


def _read_witness(key, reader):
    D = [
        [reader.g1() for _ in range(key.level_size(level))]
        for level in range(key.arity - 1)
    ]
    trees = [[reader.fr() for _ in range(tree_size(d))] for d in key.dims]
    f_star = [reader.fr() for _ in range(key.level_size(key.arity - 1))]
    return AccWitness(D, trees, f_star)


def decode_witness(key, data):
    return _read_witness(key, _Reader(data, witness_size(key.num_vars, key.arity)))


# ─── 누적자 (인스턴스 ‖ 증인) ───

def encode_accumulator(key, acc):
    """Accumulator → 바이트열. decide에 필요한 모든 것을 담는다."""
    return encode_instance(acc.instance) + encode_witness(key, acc.witness)


def decode_accumulator(key, data):
    reader = _Reader(data, accumulator_size(key.num_vars, key.arity))
    instance = _read_instance(key, reader)
    return Accumulator(instance, _read_witness(key, reader))


# ─── 접기 증명 ───

def encode_fold_proof(key, fold_proof):
    if len(fold_proof.Q) != key.arity + 1:
        raise TranscriptError(f"교차항 개수 {len(fold_proof.Q)} != {key.arity + 1}")
    return b"".join(encode_g1(q) for q in fold_proof.Q)


def _read_fold_proof(key, reader):
    return FoldProof([reader.g1() for _ in range(key.arity + 1)])


def decode_fold_proof(key, data):
    return _read_fold_proof(key, _Reader(data, fold_proof_size(key.num_vars, key.arity)))


# ─── 일괄 누적 결과 ───

def encode_aggregate(key, result):
    """Aggregate → 누적자 ‖ 접기 증명 k개."""
    parts = [encode_accumulator(key, result.accumulator)]
    parts.extend(encode_fold_proof(key, p) for p in result.fold_proofs)
    return b"".join(parts)


def decode_aggregate(key, data, num_claims):
    """바이트열 → Aggregate (num_claims: 접은 주장 개수)."""
    reader = _Reader(data, aggregate_size(key.num_vars, key.arity, num_claims))
    instance = _read_instance(key, reader)
    acc = Accumulator(instance, _read_witness(key, reader))
    proofs = [_read_fold_proof(key, reader) for _ in range(num_claims)]
    return Aggregate(acc, proofs)
