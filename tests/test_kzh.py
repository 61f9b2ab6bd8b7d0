"""
KZH Polynomial Commitment Tests
===============================

KZH-2/3/4 커밋, 열기, 검증을 테스트한다.

테스트 범위:
  - 키 구조: 블록 분해, H/V 길이, seed 캐시
  - 완전성: 단계 수별 임의 점 열기
  - 시나리오: [1..8] 을 (0,0,0), (1,1,1) 에서 열기, 값 비트 뒤집기
  - 건전성: n = 2, 3 에서 p로 만들 수 있는 모든 증명이 틀린 값을 거부
  - 준동형성, n = 0, 오류 분류 (ShapeError, ParameterError)
  - 행 커밋먼트 MSM 의 프로세스 풀 계산
"""

import itertools

import pytest

from kzhfold import config
from kzhfold.errors import ParameterError, ShapeError
from kzhfold.field import FR, G1, ec_eq, ec_mul, msm_rows
from kzhfold.pcs import (
    Commitment, OpeningProof, block_dims, check_opening, commit, open, setup,
    split_point, verify,
)
from kzhfold.polynomial import MultilinearPolynomial

from conftest import sample_point


def _table(num_vars, offset=1):
    return MultilinearPolynomial(
        [FR(offset + 3 * i + i * i) for i in range(1 << num_vars)]
    )


def _boolean_points(num_vars):
    return [
        [FR(b) for b in bits]
        for bits in itertools.product((0, 1), repeat=num_vars)
    ]


# ─────────────────────────────────────────────────────────────────────
# 키
# ─────────────────────────────────────────────────────────────────────

class TestSetup:
    """setup과 키 구조."""

    def test_block_dims(self):
        assert block_dims(3, 2) == (1, 2)
        assert block_dims(4, 2) == (2, 2)
        assert block_dims(10, 4) == (2, 2, 3, 3)
        assert block_dims(5, 3) == (1, 2, 2)

    def test_key_lengths(self, key3):
        assert key3.dims == (1, 2)
        assert len(key3.H[0]) == 8
        assert len(key3.H[1]) == 4
        assert len(key3.V_levels) == 1
        assert len(key3.V_levels[0]) == 2

    def test_kzh4_key_lengths(self):
        key = setup(4, arity=4, seed=5)
        assert key.dims == (1, 1, 1, 1)
        assert [len(h) for h in key.H] == [16, 8, 4, 2]
        assert [len(v) for v in key.V_levels] == [2, 2, 2]

    def test_seeded_setup_is_cached(self):
        assert setup(3, arity=2, seed=42) is setup(3, arity=2, seed=42)

    def test_split_point(self, key3):
        blocks = split_point(key3, [FR(1), FR(2), FR(3)])
        assert blocks == [[FR(1)], [FR(2), FR(3)]]

    def test_unsupported_arity(self):
        with pytest.raises(ParameterError):
            setup(4, arity=5, seed=1)

    def test_negative_num_vars(self):
        with pytest.raises(ParameterError):
            setup(-1, seed=1)

    def test_num_vars_above_maximum(self):
        with pytest.raises(ParameterError):
            setup(config.MAX_NUM_VARS + 1, seed=1)

    def test_kzh3_needs_three_variables(self):
        with pytest.raises(ParameterError):
            setup(2, arity=3, seed=1)

    def test_parameter_error_is_value_error(self):
        with pytest.raises(ValueError):
            setup(4, arity=1, seed=1)


# ─────────────────────────────────────────────────────────────────────
# 시나리오
# ─────────────────────────────────────────────────────────────────────

class TestScenarios:
    """[1, 2, ..., 8] 다항식 열기."""

    def test_open_at_origin(self, key3, poly8):
        point = [FR(0), FR(0), FR(0)]
        C = commit(key3, poly8)
        value, proof = open(key3, poly8, point)
        assert value == FR(1)
        assert verify(key3, C, point, value, proof) is True

    def test_open_at_all_ones(self, key3, poly8):
        point = [FR(1), FR(1), FR(1)]
        C = commit(key3, poly8)
        value, proof = open(key3, poly8, point)
        assert value == FR(8)
        assert verify(key3, C, point, value, proof) is True

    def test_flipped_value_bit_rejected(self, key3, poly8):
        point = [FR(1), FR(1), FR(1)]
        C = commit(key3, poly8)
        value, proof = open(key3, poly8, point)
        flipped = FR(int(value) ^ 1)
        assert verify(key3, C, point, flipped, proof) is False

    def test_commit_accepts_raw_table(self, key3, poly8):
        assert commit(key3, poly8.evals) == commit(key3, poly8)


# ─────────────────────────────────────────────────────────────────────
# 완전성
# ─────────────────────────────────────────────────────────────────────

class TestCompleteness:
    """임의 점에서의 열기는 항상 통과한다."""

    @pytest.mark.parametrize("num_vars,arity", [
        (1, 2), (3, 2), (4, 2), (3, 3), (5, 3), (4, 4),
    ])
    def test_random_point(self, num_vars, arity):
        key = setup(num_vars, arity=arity, seed=100 + num_vars)
        poly = _table(num_vars)
        point = sample_point(num_vars)
        C = commit(key, poly)
        value, proof = open(key, poly, point)
        assert value == poly.evaluate(point)
        assert len(proof.D) == arity - 1
        assert verify(key, C, point, value, proof) is True

    @pytest.mark.parametrize("arity", [2, 3, 4])
    def test_proof_shape(self, arity):
        key = setup(4, arity=arity, seed=8)
        _, proof = open(key, _table(4), sample_point(4))
        for level, rows in enumerate(proof.D):
            assert len(rows) == key.level_size(level)
        assert len(proof.f_star) == key.level_size(arity - 1)
        assert len(proof.sumcheck) == key.dims[-1]

    def test_zero_variables(self):
        """n = 0: 빈 증명, C == value · H0[0]."""
        key = setup(0, seed=3)
        poly = MultilinearPolynomial([FR(7)])
        C = commit(key, poly)
        value, proof = open(key, poly, [])
        assert value == FR(7)
        assert proof.is_empty()
        assert verify(key, C, [], value, proof) is True
        assert verify(key, C, [], FR(8), proof) is False


# ─────────────────────────────────────────────────────────────────────
# 건전성
# ─────────────────────────────────────────────────────────────────────

class TestSoundness:
    """틀린 값은 어떤 증명으로도 통과하지 못한다."""

    @pytest.mark.parametrize("num_vars", [2, 3])
    def test_brute_force_wrong_values(self, num_vars):
        """p의 모든 불리언 점 열기 증명을 모든 점의 틀린 값과 조합한다."""
        key = setup(num_vars, arity=2, seed=77)
        poly = _table(num_vars)
        C = commit(key, poly)
        points = _boolean_points(num_vars)
        proofs = [open(key, poly, y)[1] for y in points]
        for x in points:
            wrong = poly.evaluate(x) + FR(1)
            for proof in proofs:
                assert verify(key, C, x, wrong, proof) is False

    @pytest.mark.parametrize("num_vars", [2, 3])
    def test_substituted_rows_rejected(self, num_vars):
        """f*를 p의 다른 행으로 바꾼 증명은 거부된다."""
        key = setup(num_vars, arity=2, seed=77)
        poly = _table(num_vars)
        C = commit(key, poly)
        x = sample_point(num_vars)
        value, proof = open(key, poly, x)
        for row in poly.rows(key.dims[0]):
            forged = OpeningProof(proof.D, row, proof.sumcheck)
            assert verify(key, C, x, value, forged) is False

    def test_proof_for_other_polynomial(self, key3, poly8):
        other = _table(3, offset=50)
        point = sample_point(3)
        C = commit(key3, poly8)
        value, _ = open(key3, poly8, point)
        _, proof = open(key3, other, point)
        assert verify(key3, C, point, value, proof) is False

    def test_wrong_commitment(self, key3, poly8):
        point = sample_point(3)
        value, proof = open(key3, poly8, point)
        assert verify(key3, Commitment(ec_mul(G1, 5)), point, value, proof) is False

    def test_malformed_proof_is_false_not_exception(self, key3, poly8):
        point = sample_point(3)
        C = commit(key3, poly8)
        value, proof = open(key3, poly8, point)
        truncated = OpeningProof(proof.D[:0], proof.f_star, proof.sumcheck)
        assert verify(key3, C, point, value, truncated) is False
        short_row = OpeningProof([proof.D[0][:1]], proof.f_star, proof.sumcheck)
        assert verify(key3, C, point, value, short_row) is False


# ─────────────────────────────────────────────────────────────────────
# 준동형성과 오류
# ─────────────────────────────────────────────────────────────────────

class TestHomomorphism:
    """커밋의 선형성."""

    def test_sum(self, key3, poly8):
        other = _table(3, offset=9)
        assert commit(key3, poly8) + commit(key3, other) == commit(key3, poly8 + other)

    def test_scale(self, key3, poly8):
        assert commit(key3, poly8).scale(FR(3)) == commit(key3, poly8.scale(3))

    def test_combined_opening(self, key3, poly8):
        """C1 + C2 는 p1 + p2 의 열기로 검증된다."""
        other = _table(3, offset=9)
        point = sample_point(3)
        value, proof = open(key3, poly8 + other, point)
        C = commit(key3, poly8) + commit(key3, other)
        assert verify(key3, C, point, value, proof) is True


class TestErrors:
    """ShapeError 전파."""

    def test_open_wrong_point_dimension(self, key3, poly8):
        with pytest.raises(ShapeError):
            open(key3, poly8, [FR(1), FR(2)])

    def test_verify_wrong_point_dimension(self, key3, poly8):
        C = commit(key3, poly8)
        _, proof = open(key3, poly8, sample_point(3))
        with pytest.raises(ShapeError):
            verify(key3, C, [FR(1)], FR(1), proof)

    def test_commit_wrong_table_length(self, key3):
        with pytest.raises(ShapeError):
            commit(key3, [FR(1)] * 4)

    def test_check_opening_raises_on_failure(self, key3, poly8):
        from kzhfold.errors import VerificationFailure
        point = sample_point(3)
        C = commit(key3, poly8)
        value, proof = open(key3, poly8, point)
        with pytest.raises(VerificationFailure):
            check_opening(key3, C, point, value + FR(1), proof)


# ─────────────────────────────────────────────────────────────────────
# 행 커밋먼트 병렬 계산
# ─────────────────────────────────────────────────────────────────────

class TestParallelRows:
    """프로세스 풀로 나눠 계산한 행 MSM이 직렬 결과와 같다."""

    def test_msm_rows_matches_serial(self):
        points = [ec_mul(G1, i + 1) for i in range(4)]
        rows = [[FR(i * 4 + j + 1) for j in range(4)] for i in range(3)]
        serial = msm_rows(points, rows, workers=1)
        parallel = msm_rows(points, rows, workers=2)
        assert all(ec_eq(a, b) for a, b in zip(serial, parallel))
        assert ec_eq(serial[0], ec_mul(G1, 1 + 4 + 9 + 16))

    def test_open_with_workers(self, key3, poly8, monkeypatch):
        point = sample_point(3)
        value, serial = open(key3, poly8, point)
        monkeypatch.setattr(config, "WORKERS", 2)
        value_p, parallel = open(key3, poly8, point)
        assert value_p == value
        assert all(ec_eq(a, b) for a, b in zip(serial.D[0], parallel.D[0]))
        assert verify(key3, commit(key3, poly8), point, value_p, parallel) is True
