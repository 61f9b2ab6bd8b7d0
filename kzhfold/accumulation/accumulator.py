"""
KZH-fold 누적(Accumulation) 스킴
================================

여러 KZH 열기 주장 (C, x, z, π)을 하나씩 검증하지 않고 누적자 하나로 접는다.
마지막에 decide 한 번이 성공하면 접힌 모든 주장이 유효했음을 뜻한다
(접기 한 번당 약 deg / |F_r| 의 건전성 오차).

**누적자 = (인스턴스, 증인)**: 새 주장과 모양이 같으므로 다시 접을 수 있다.

  인스턴스 (검증자가 보는 부분, 상수 크기):
    C   = [C_0, ..., C_{L-2}]   C_0은 다항식 커밋먼트, C_l은 중간 커밋먼트
    T   = Σ_l <k_l, tree_l>     eq 트리 커밋먼트
    E   = [E_tree, E_eval, E_link_0, ..., E_link_{L-3}, E_final]  결함 커밋먼트
    x   평가점,  z   평가값

  증인:
    D   = [D_0, ..., D_{L-2}]   행 커밋먼트
    trees                       블록별 eq 트리 노드
    f*                          접힌 마지막 행

**관계식** (신선한 주장이면 모든 결함이 0):
  E_tree   = Σ_l <k_l, tree_errors(tree_l, x_l)>
  E_eval   = k' · (z - <f*, leaves_{L-1}>)
  E_link_l = C_{l+1} - <D_l, leaves_l>
  E_final  = <H^(L-1), f*> - <D_{L-2}, leaves_{L-2}>
  페어링:   e(C_l, V) == Π_i e(D_l[i], V_l[i])

**접기** (챌린지 β):
  모든 선형 성분은  new = β·running + (1-β)·current
  결함은  E'' = β·E + (1-β)·E' + β(1-β)·Q
  Q는 이차 관계식의 교차항이며 접기 증명으로 전송된다.
  β는 (running 인스턴스, current 인스턴스, Q)를 흡수한 트랜스크립트에서 얻는다.

사용 예시:
    >>> acc_key = AccKey.generate(pcs_key, seed=7)
    >>> acc = instance_from_opening(acc_key, C1, x1, z1, proof1)
    >>> acc, fold_proof, _ = fold(acc_key, acc, C2, x2, z2, proof2)
    >>> decide(acc_key, acc)   # True
"""

import logging

from kzhfold import config
from kzhfold.accumulation.eq_tree import (
    EqTree, leaves, tree_errors, tree_cross_terms, tree_size,
)
from kzhfold.errors import ShapeError, TranscriptError, VerificationFailure
from kzhfold.field import (
    FR, G1, Z1, ec_add, ec_mul, ec_sub, ec_eq, ec_neg, msm,
    pairing_product_is_one, point_to_scalars,
)
from kzhfold.pcs.kzh import split_point, fold_commitments, commitment_point
from kzhfold.pcs.srs import derive_scalar
from kzhfold.polynomial import inner_product
from kzhfold.transcript import Transcript

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────
# 키와 데이터 타입
# ─────────────────────────────────────────────────────────────────────

class AccKey:
    """누적 키: PCS 키 + 트리/평가 결함 커밋용 G1 원소.

    속성:
        pcs_key: KZHKey
        k_trees: 블록 l마다 길이 2^{d_l + 1} - 1 인 G1 리스트
        k_prime: 평가 결함 커밋용 G1 점
    """

    def __init__(self, pcs_key, k_trees, k_prime):
        self.pcs_key = pcs_key
        self.k_trees = k_trees
        self.k_prime = k_prime

    @property
    def arity(self):
        return self.pcs_key.arity

    @property
    def num_errors(self):
        return self.pcs_key.arity + 1

    @classmethod
    def generate(cls, pcs_key, seed=None):
        k_trees = []
        for level, d in enumerate(pcs_key.dims):
            k_trees.append([
                ec_mul(G1, derive_scalar(seed, f"acc-k{level}", i))
                for i in range(tree_size(d))
            ])
        k_prime = ec_mul(G1, derive_scalar(seed, "acc-k-prime", 0))
        return cls(pcs_key, k_trees, k_prime)


class AccInstance:
    """누적자 인스턴스 (상수 크기, 검증자가 보는 부분)."""

    def __init__(self, C, T, E, x, z):
        self.C = list(C)
        self.T = T
        self.E = list(E)
        self.x = list(x)
        self.z = z

    def points(self):
        """C, T, E 순서의 G1 점 리스트."""
        return self.C + [self.T] + self.E

    def to_scalars(self):
        """트랜스크립트/해시 입력용 FR 리스트: 점 좌표, x, z 순서."""
        out = []
        for point in self.points():
            out.extend(point_to_scalars(point))
        return out + self.x + [self.z]

    def append_to(self, transcript, label):
        transcript = transcript.append_points(label, self.points())
        transcript = transcript.append_scalars(label, self.x)
        return transcript.append_scalar(label, self.z)

    def __eq__(self, other):
        if not isinstance(other, AccInstance):
            return False
        return (
            len(self.C) == len(other.C)
            and len(self.E) == len(other.E)
            and all(ec_eq(a, b) for a, b in zip(self.points(), other.points()))
            and self.x == other.x
            and self.z == other.z
        )


class AccWitness:
    """누적자 증인."""

    def __init__(self, D, trees, f_star):
        self.D = D
        self.trees = trees
        self.f_star = f_star


class Accumulator:
    """(인스턴스, 증인) 쌍."""

    def __init__(self, instance, witness):
        self.instance = instance
        self.witness = witness


class FoldProof:
    """접기 증명: 결함별 교차항 커밋먼트 Q (길이 L + 1)."""

    def __init__(self, Q):
        self.Q = list(Q)


# ─────────────────────────────────────────────────────────────────────
# 결함(error)과 교차항
# ─────────────────────────────────────────────────────────────────────

def _tree_commitment(acc_key, trees):
    T = Z1
    for k, nodes in zip(acc_key.k_trees, trees):
        T = ec_add(T, msm(k, nodes))
    return T


def _leaves(acc_key, trees):
    return [leaves(nodes, d) for nodes, d in zip(trees, acc_key.pcs_key.dims)]


def compute_errors(acc_key, instance, witness):
    """인스턴스/증인으로부터 결함 벡터 E를 다시 계산한다."""
    key = acc_key.pcs_key
    L = key.arity
    blocks = split_point(key, instance.x)
    all_leaves = _leaves(acc_key, witness.trees)

    e_tree = Z1
    for k, nodes, block in zip(acc_key.k_trees, witness.trees, blocks):
        e_tree = ec_add(e_tree, msm(k, tree_errors(nodes, block)))

    eval_defect = instance.z - inner_product(witness.f_star, all_leaves[L - 1])
    errors = [e_tree, ec_mul(acc_key.k_prime, eval_defect)]

    for level in range(L - 2):
        errors.append(ec_sub(
            instance.C[level + 1], msm(witness.D[level], all_leaves[level])
        ))
    errors.append(ec_sub(
        msm(key.generators, witness.f_star),
        msm(witness.D[L - 2], all_leaves[L - 2]),
    ))
    return errors


def compute_cross_terms(acc_key, running, current):
    """running과 current의 교차항 Q를 계산한다 (Prover 전용)."""
    key = acc_key.pcs_key
    L = key.arity
    dx = [a - b for a, b in zip(running.instance.x, current.instance.x)]
    d_blocks = split_point(key, dx)
    d_trees = [
        [a - b for a, b in zip(t1, t2)]
        for t1, t2 in zip(running.witness.trees, current.witness.trees)
    ]
    d_leaves = _leaves(acc_key, d_trees)
    d_rows = [
        [ec_sub(a, b) for a, b in zip(r1, r2)]
        for r1, r2 in zip(running.witness.D, current.witness.D)
    ]
    d_f_star = [a - b for a, b in zip(running.witness.f_star, current.witness.f_star)]

    q_tree = Z1
    for k, nodes, block in zip(acc_key.k_trees, d_trees, d_blocks):
        q_tree = ec_add(q_tree, msm(k, tree_cross_terms(nodes, block)))

    Q = [q_tree, ec_mul(acc_key.k_prime, inner_product(d_f_star, d_leaves[L - 1]))]
    for level in range(L - 2):
        Q.append(msm(d_rows[level], d_leaves[level]))
    Q.append(msm(d_rows[L - 2], d_leaves[L - 2]))
    return Q


# ─────────────────────────────────────────────────────────────────────
# 인스턴스 생성
# ─────────────────────────────────────────────────────────────────────

def _fresh(acc_key, C0, point, value, D, f_star):
    key = acc_key.pcs_key
    blocks = split_point(key, point)
    trees = [EqTree.build(block).nodes for block in blocks]
    C = [C0] + [fold_commitments(D[level], blocks[level]) for level in range(key.arity - 2)]
    instance = AccInstance(
        C=C,
        T=_tree_commitment(acc_key, trees),
        E=[Z1] * acc_key.num_errors,
        x=[p for block in blocks for p in block],
        z=value,
    )
    return Accumulator(instance, AccWitness(D, trees, list(f_star)))


def instance_from_opening(acc_key, commitment, point, value, proof):
    """KZH 열기 주장을 누적자 모양으로 바꾼다 (검증하지 않는다).

    n = 0 이면 증명이 비어 있으므로 D = [[z·G_0]], f* = [z] 로 복원한다.
    """
    key = acc_key.pcs_key
    value = value if isinstance(value, FR) else FR(value)
    if key.num_vars == 0:
        D = [[ec_mul(key.generators[0], value)]]
        f_star = [value]
    else:
        if len(proof.D) != key.arity - 1:
            raise ShapeError(f"열기 증명의 단계 수 {len(proof.D)} != {key.arity - 1}")
        D, f_star = proof.D, proof.f_star
    return _fresh(acc_key, commitment_point(commitment), point, value, D, f_star)


def accumulator_init(acc_key):
    """항등 누적자: 영 다항식을 원점에서 연 주장.

    커밋먼트와 결함은 항등원이고 (T는 원점의 eq 트리 커밋먼트) decide를 통과한다.
    """
    key = acc_key.pcs_key
    D = [[Z1] * key.level_size(level) for level in range(key.arity - 1)]
    f_star = [FR(0)] * key.level_size(key.arity - 1)
    zero_point = [FR(0)] * key.num_vars
    return _fresh(acc_key, Z1, zero_point, FR(0), D, f_star)


# ─────────────────────────────────────────────────────────────────────
# 접기
# ─────────────────────────────────────────────────────────────────────

def _lin_point(a, b, beta, one_minus):
    return ec_add(ec_mul(a, beta), ec_mul(b, one_minus))


def _lin_scalar(a, b, beta, one_minus):
    return a * beta + b * one_minus


def fold_instances(running, current, Q, beta):
    """인스턴스만 접는다 (검증자와 회로가 수행하는 부분)."""
    one_minus = FR(1) - beta
    cross = beta * one_minus
    E = [
        ec_add(_lin_point(e1, e2, beta, one_minus), ec_mul(q, cross))
        for e1, e2, q in zip(running.E, current.E, Q)
    ]
    return AccInstance(
        C=[_lin_point(a, b, beta, one_minus) for a, b in zip(running.C, current.C)],
        T=_lin_point(running.T, current.T, beta, one_minus),
        E=E,
        x=[_lin_scalar(a, b, beta, one_minus) for a, b in zip(running.x, current.x)],
        z=_lin_scalar(running.z, current.z, beta, one_minus),
    )


def fold_witnesses(running, current, beta):
    one_minus = FR(1) - beta
    D = [
        [_lin_point(a, b, beta, one_minus) for a, b in zip(r1, r2)]
        for r1, r2 in zip(running.D, current.D)
    ]
    trees = [
        [_lin_scalar(a, b, beta, one_minus) for a, b in zip(t1, t2)]
        for t1, t2 in zip(running.trees, current.trees)
    ]
    f_star = [
        _lin_scalar(a, b, beta, one_minus)
        for a, b in zip(running.f_star, current.f_star)
    ]
    return AccWitness(D, trees, f_star)


def fold_challenge(running, current, Q, transcript=None):
    """(running, current, Q)를 흡수하고 접기 챌린지 β를 도출한다.

    Returns:
        (transcript, beta)
    """
    if transcript is None:
        transcript = Transcript.new(config.FOLD_LABEL)
    transcript = running.append_to(transcript, b"running")
    transcript = current.append_to(transcript, b"current")
    transcript = transcript.append_points(b"Q", Q)
    return transcript.challenge_scalar(b"beta")


def prove_fold(acc_key, running, current, transcript=None, challenge=None):
    """두 누적자를 접는다.

    Args:
        acc_key: AccKey
        running, current: Accumulator
        transcript: 이어서 쓸 Transcript (None이면 새로 시작)
        challenge: 고정 챌린지 (None이면 Fiat-Shamir)

    Returns:
        (Accumulator, FoldProof, transcript)
    """
    Q = compute_cross_terms(acc_key, running, current)
    transcript, beta = fold_challenge(running.instance, current.instance, Q, transcript)
    if challenge is not None:
        beta = challenge if isinstance(challenge, FR) else FR(challenge)
    instance = fold_instances(running.instance, current.instance, Q, beta)
    witness = fold_witnesses(running.witness, current.witness, beta)
    return Accumulator(instance, witness), FoldProof(Q), transcript


def fold(acc_key, acc, commitment, point, value, proof, challenge=None,
         transcript=None):
    """누적자 acc에 새 열기 주장 (commitment, point, value, proof)를 접는다.

    Returns:
        (Accumulator, FoldProof, transcript)
    """
    current = instance_from_opening(acc_key, commitment, point, value, proof)
    return prove_fold(acc_key, acc, current, transcript, challenge)


def verify_fold(acc_key, running, current, fold_proof, folded, transcript=None,
                challenge=None):
    """인스턴스만으로 접기 결과를 확인한다 (증인 불필요).

    Args:
        running, current, folded: AccInstance

    Returns:
        bool
    """
    if len(fold_proof.Q) != acc_key.num_errors:
        logger.debug("fold rejected: Q length %d", len(fold_proof.Q))
        return False
    _, beta = fold_challenge(running, current, fold_proof.Q, transcript)
    if challenge is not None:
        beta = challenge if isinstance(challenge, FR) else FR(challenge)
    if fold_instances(running, current, fold_proof.Q, beta) != folded:
        logger.debug("fold rejected: folded instance mismatch")
        return False
    return True


# ─────────────────────────────────────────────────────────────────────
# 결정자(decider)
# ─────────────────────────────────────────────────────────────────────

def _check_shape(acc_key, acc):
    key = acc_key.pcs_key
    inst, wit = acc.instance, acc.witness
    if len(inst.C) != key.arity - 1 or len(inst.E) != acc_key.num_errors:
        raise TranscriptError("누적자 인스턴스 길이 오류")
    if len(inst.x) != key.num_vars:
        raise TranscriptError("누적자 평가점 차원 오류")
    if len(wit.D) != key.arity - 1 or len(wit.trees) != key.arity:
        raise TranscriptError("누적자 증인 길이 오류")
    for level, rows in enumerate(wit.D):
        if len(rows) != key.level_size(level):
            raise TranscriptError(f"D_{level} 길이 오류")
    for nodes, d in zip(wit.trees, key.dims):
        if len(nodes) != tree_size(d):
            raise TranscriptError("eq 트리 크기 오류")
    if len(wit.f_star) != key.level_size(key.arity - 1):
        raise TranscriptError("f* 길이 오류")


def check_accumulator(acc_key, acc):
    """decide의 예외 버전."""
    _check_shape(acc_key, acc)
    key = acc_key.pcs_key
    inst, wit = acc.instance, acc.witness

    if not ec_eq(inst.T, _tree_commitment(acc_key, wit.trees)):
        raise VerificationFailure("T가 eq 트리 커밋먼트와 다름")

    errors = compute_errors(acc_key, inst, wit)
    names = ["tree", "eval"] + [f"link{l}" for l in range(key.arity - 2)] + ["final"]
    for name, expected, actual in zip(names, errors, inst.E):
        if not ec_eq(expected, actual):
            raise VerificationFailure(f"결함 {name} 불일치")

    for level in range(key.arity - 1):
        pairs = [(inst.C[level], key.V)]
        pairs += [(ec_neg(d), v) for d, v in zip(wit.D[level], key.V_levels[level])]
        if not pairing_product_is_one(pairs):
            raise VerificationFailure(f"단계 {level} 페어링 검사 실패")


def decide(acc_key, acc):
    """누적자를 직접 확인한다 (회로 밖, 체인 끝에서 한 번).

    Returns:
        bool
    """
    try:
        check_accumulator(acc_key, acc)
    except (TranscriptError, VerificationFailure) as exc:
        logger.debug("accumulator rejected: %s", exc)
        return False
    return True
