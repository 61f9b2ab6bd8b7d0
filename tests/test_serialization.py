"""
Tests for the 32-byte word wire format.

Covers:
- word counts as functions of (n, arity)
- encoded lengths match the size functions
- decoded proofs and instances still verify / compare equal
- decoded accumulators and aggregates still pass decide / verify_aggregate
- malformed input (length, scalar range, off-curve point) raises TranscriptError
"""

import pytest

from kzhfold.accumulation import (
    AccKey, FoldProof, accumulator_init, decide, instance_from_opening, prove_fold,
)
from kzhfold.aggregation import aggregate, verify_aggregate
from kzhfold.errors import TranscriptError
from kzhfold.field import CURVE_ORDER, FR, G1, G2, Z1, ec_eq, ec_mul, is_identity
from kzhfold.pcs import commit, open, setup, verify
from kzhfold.polynomial import MultilinearPolynomial
from kzhfold.serialization import (
    WORD_SIZE, accumulator_size, aggregate_size, commitment_size,
    decode_accumulator, decode_aggregate, decode_commitment, decode_fold_proof,
    decode_fr, decode_g1, decode_g2, decode_instance, decode_opening_proof,
    decode_witness, encode_accumulator, encode_aggregate, encode_commitment,
    encode_fold_proof, encode_fr, encode_g1, encode_g2, encode_instance,
    encode_opening_proof, encode_witness, fold_proof_size, instance_size,
    opening_proof_size, witness_size,
)

from conftest import sample_point


def _opening(num_vars, arity, offset=1):
    key = setup(num_vars, arity=arity, seed=51)
    poly = MultilinearPolynomial([FR(offset + 2 * i) for i in range(1 << num_vars)])
    point = sample_point(num_vars)
    value, proof = open(key, poly, point)
    return key, commit(key, poly), point, value, proof


class TestSizes:
    """워드 개수."""

    def test_commitment_size(self):
        assert commitment_size(3, 2) == 2
        assert commitment_size(8, 4) == 2

    def test_opening_proof_size(self):
        """n = 3, L = 2: D_0 2개(4워드) + f* 4 + sumcheck 2×3."""
        assert opening_proof_size(3, 2) == 14
        assert opening_proof_size(0, 2) == 0

    def test_kzh4_opening_proof_size(self):
        """n = 4, L = 4: D 3단계 × 2개 (12워드) + f* 2 + sumcheck 1×3."""
        assert opening_proof_size(4, 4) == 17

    def test_instance_size(self):
        assert instance_size(4, 2) == 2 * 5 + 4 + 1
        assert instance_size(4, 3) == 2 * 7 + 4 + 1

    @pytest.mark.parametrize("num_vars,arity", [(3, 2), (4, 2), (5, 3), (4, 4)])
    def test_encoded_length_matches(self, num_vars, arity):
        key, C, _, _, proof = _opening(num_vars, arity)
        assert len(encode_commitment(C)) == commitment_size(num_vars, arity) * WORD_SIZE
        assert len(encode_opening_proof(key, proof)) == (
            opening_proof_size(num_vars, arity) * WORD_SIZE
        )

    def test_size_independent_of_polynomial(self):
        key, _, _, _, p1 = _opening(4, 2, offset=1)
        _, _, _, _, p2 = _opening(4, 2, offset=1000)
        assert len(encode_opening_proof(key, p1)) == len(encode_opening_proof(key, p2))


class TestEncoding:
    """인코딩/디코딩."""

    def test_scalar(self):
        assert decode_fr(encode_fr(FR(12345))) == FR(12345)

    def test_identity_is_zeros(self):
        assert encode_g1(Z1) == bytes(2 * WORD_SIZE)
        assert is_identity(decode_g1(bytes(2 * WORD_SIZE)))

    def test_g1(self):
        P = ec_mul(G1, 77)
        assert ec_eq(decode_g1(encode_g1(P)), P)

    def test_g2(self):
        Q = ec_mul(G2, 5)
        assert len(encode_g2(Q)) == 4 * WORD_SIZE
        assert ec_eq(decode_g2(encode_g2(Q)), Q)

    def test_decoded_opening_proof_verifies(self):
        key, C, point, value, proof = _opening(5, 3)
        decoded_C = decode_commitment(encode_commitment(C))
        decoded = decode_opening_proof(key, encode_opening_proof(key, proof))
        assert decoded_C == C
        assert verify(key, decoded_C, point, value, decoded) is True

    def test_zero_variable_proof(self):
        key, C, point, value, proof = _opening(0, 2)
        assert encode_opening_proof(key, proof) == b""
        assert verify(key, C, point, value, decode_opening_proof(key, b"")) is True

    def test_instance(self):
        key, C, point, value, proof = _opening(4, 2)
        acc_key = AccKey.generate(key, seed=51)
        instance = instance_from_opening(acc_key, C, point, value, proof).instance
        data = encode_instance(instance)
        assert len(data) == instance_size(4, 2) * WORD_SIZE
        assert decode_instance(key, data) == instance


class TestMalformed:
    """잘못된 바이트열은 TranscriptError."""

    def test_wrong_length(self):
        key, _, _, _, proof = _opening(3, 2)
        data = encode_opening_proof(key, proof)
        with pytest.raises(TranscriptError):
            decode_opening_proof(key, data[:-1])
        with pytest.raises(TranscriptError):
            decode_opening_proof(key, data + bytes(WORD_SIZE))

    def test_scalar_out_of_range(self):
        with pytest.raises(TranscriptError):
            decode_fr(CURVE_ORDER.to_bytes(WORD_SIZE, "big"))

    def test_point_not_on_curve(self):
        data = (1).to_bytes(WORD_SIZE, "big") + (1).to_bytes(WORD_SIZE, "big")
        with pytest.raises(TranscriptError):
            decode_g1(data)

    def test_proof_layout_mismatch(self):
        key, _, _, _, proof = _opening(3, 2)
        other_key = setup(4, arity=2, seed=51)
        with pytest.raises(TranscriptError):
            encode_opening_proof(other_key, proof)


class TestAccumulatorEncoding:
    """누적자, 접기 증명, 일괄 누적 결과의 와이어 형식."""

    def test_sizes(self):
        """n = 3, L = 2: D_0 2개(4) + 트리 3 + 7 + f* 4 = 18워드."""
        assert witness_size(3, 2) == 18
        assert accumulator_size(3, 2) == instance_size(3, 2) + 18
        assert fold_proof_size(3, 2) == 6
        assert fold_proof_size(4, 4) == 10
        assert aggregate_size(3, 2, 2) == accumulator_size(3, 2) + 12

    @pytest.mark.parametrize("num_vars,arity", [(3, 2), (5, 3), (4, 4)])
    def test_folded_accumulator_decides_after_decoding(self, num_vars, arity):
        key, C, point, value, proof = _opening(num_vars, arity)
        acc_key = AccKey.generate(key, seed=51)
        current = instance_from_opening(acc_key, C, point, value, proof)
        folded, fold_proof, _ = prove_fold(acc_key, accumulator_init(acc_key), current)

        data = encode_accumulator(key, folded)
        assert len(data) == accumulator_size(num_vars, arity) * WORD_SIZE
        decoded = decode_accumulator(key, data)
        assert decoded.instance == folded.instance
        assert decide(acc_key, decoded) is True

        proof_data = encode_fold_proof(key, fold_proof)
        assert len(proof_data) == fold_proof_size(num_vars, arity) * WORD_SIZE
        decoded_proof = decode_fold_proof(key, proof_data)
        assert all(ec_eq(a, b) for a, b in zip(decoded_proof.Q, fold_proof.Q))

    def test_witness_round_trip(self):
        key, C, point, value, proof = _opening(4, 2)
        acc_key = AccKey.generate(key, seed=51)
        witness = instance_from_opening(acc_key, C, point, value, proof).witness
        decoded = decode_witness(key, encode_witness(key, witness))
        assert decoded.trees == witness.trees
        assert decoded.f_star == witness.f_star

    def test_tampered_accumulator_fails_decide(self):
        key, C, point, value, proof = _opening(3, 2)
        acc_key = AccKey.generate(key, seed=51)
        acc = instance_from_opening(acc_key, C, point, value, proof)
        data = bytearray(encode_accumulator(key, acc))
        # 마지막 워드는 f*의 마지막 스칼라
        data[-1] ^= 1
        assert decide(acc_key, decode_accumulator(key, bytes(data))) is False

    def test_zero_variable_accumulator(self):
        key = setup(0, arity=2, seed=51)
        acc_key = AccKey.generate(key, seed=51)
        acc = accumulator_init(acc_key)
        data = encode_accumulator(key, acc)
        assert len(data) == accumulator_size(0, 2) * WORD_SIZE
        assert decide(acc_key, decode_accumulator(key, data)) is True

    def test_aggregate_handed_to_separate_decider(self):
        """직렬화한 일괄 누적 결과만으로 검증할 수 있다."""
        key = setup(3, arity=2, seed=51)
        acc_key = AccKey.generate(key, seed=51)
        claims = []
        for i in range(2):
            poly = MultilinearPolynomial([FR(i + 3 * j) for j in range(8)])
            point = sample_point(3, start=4 + i)
            value, proof = open(key, poly, point)
            claims.append((commit(key, poly), point, value, proof))
        result = aggregate(acc_key, claims)

        data = encode_aggregate(key, result)
        assert len(data) == aggregate_size(3, 2, 2) * WORD_SIZE
        decoded = decode_aggregate(key, data, 2)
        assert len(decoded) == 2
        assert verify_aggregate(acc_key, claims, decoded) is True

    def test_wrong_length_rejected(self):
        key = setup(3, arity=2, seed=51)
        acc_key = AccKey.generate(key, seed=51)
        data = encode_accumulator(key, accumulator_init(acc_key))
        with pytest.raises(TranscriptError):
            decode_accumulator(key, data[:-WORD_SIZE])
        with pytest.raises(TranscriptError):
            decode_fold_proof(key, bytes(WORD_SIZE))

    def test_fold_proof_layout_mismatch(self):
        key = setup(3, arity=2, seed=51)
        with pytest.raises(TranscriptError):
            encode_fold_proof(key, FoldProof([Z1] * 4))
