"""
Constraint System and Gadget Tests
==================================

증강 회로의 구성 요소를 테스트한다.

테스트 범위:
  - FieldVar 산술: 선형 결합은 제약 없음, 변수끼리 곱은 제약 1개
  - namespace 레이블, which_is_unsatisfied
  - 군 관계: enforce_group_combination, enforce_group_equal, 좌표 관계
  - 가젯이 네이티브 검증자와 같은 챌린지/결과를 내는지
    (sumcheck, Spartan 부분 검증, 누적 검증, 행렬 누적)
"""

import pytest

from kzhfold import config
from kzhfold.accumulation import AccKey, instance_from_opening, prove_fold
from kzhfold.circuit.accumulation_gadget import AccInstanceVar, verify_fold_var
from kzhfold.circuit.constraint_system import ConstraintSystem, GroupVar
from kzhfold.circuit.matrix_gadget import MatrixStateVar, accumulate_var, alloc_q_polys
from kzhfold.circuit.partial_verifier_gadget import SpartanProofVar, verify_partial
from kzhfold.circuit.sumcheck_gadget import alloc_round_polys, verify_sumcheck
from kzhfold.circuit.transcript_var import TranscriptVar
from kzhfold.errors import TranscriptError
from kzhfold.field import FR, G1, ec_mul
from kzhfold import matrix_accumulator
from kzhfold.matrix_accumulator import MatrixAccState
from kzhfold.pcs import commit, open, setup
from kzhfold.polynomial import MultilinearPolynomial
from kzhfold.r1cs import CubicStepCircuit, R1CSShape
from kzhfold import spartan
from kzhfold import sumcheck
from kzhfold.transcript import Transcript


def _index(var):
    return next(iter(var.lc))


# ─────────────────────────────────────────────────────────────────────
# ConstraintSystem
# ─────────────────────────────────────────────────────────────────────

class TestConstraintSystem:
    """R1CS 빌더."""

    def test_multiplication_adds_constraint(self):
        cs = ConstraintSystem()
        a = cs.alloc_witness(FR(3))
        b = cs.alloc_witness(FR(4))
        c = a * b
        assert c.value == FR(12)
        assert cs.num_constraints == 1
        assert cs.is_satisfied()

    def test_linear_ops_are_free(self):
        cs = ConstraintSystem()
        a = cs.alloc_witness(FR(3))
        b = cs.alloc_witness(FR(4))
        d = (a + b) * 5 - a + 2
        assert d.value == FR(34)
        assert cs.num_constraints == 0
        assert cs.eval(d) == FR(34)

    def test_constant_times_var_is_free(self):
        cs = ConstraintSystem()
        a = cs.alloc_witness(FR(3))
        assert (cs.constant(6) * a).value == FR(18)
        assert cs.num_constraints == 0

    def test_public_inputs(self):
        cs = ConstraintSystem()
        cs.alloc_witness(FR(1))
        cs.alloc_input(FR(7))
        cs.alloc_input(FR(9))
        assert cs.public_inputs == [FR(7), FR(9)]

    def test_namespace_label(self):
        cs = ConstraintSystem()
        a = cs.alloc_witness(FR(3))
        b = cs.alloc_witness(FR(4))
        with cs.namespace("outer"):
            with cs.namespace("inner"):
                cs.enforce_equal(a, b, "a == b")
        assert cs.which_is_unsatisfied() == "outer/inner/a == b"

    def test_tampered_value_detected(self):
        cs = ConstraintSystem()
        a = cs.alloc_witness(FR(3))
        b = cs.alloc_witness(FR(4))
        c = a * b
        cs.values[_index(c)] = FR(13)
        assert cs.which_is_unsatisfied() == "mul"

    def test_enforce_with_constant_side(self):
        cs = ConstraintSystem()
        a = cs.alloc_witness(FR(5))
        cs.enforce_equal(5, a, "a == 5")
        assert cs.is_satisfied()
        cs.enforce_equal(a, 6, "a == 6")
        assert cs.which_is_unsatisfied() == "a == 6"


class TestGroupRelations:
    """보조 곡선 대신 네이티브로 확인하는 군 관계."""

    def test_combination_satisfied(self):
        cs = ConstraintSystem()
        P = GroupVar.alloc(cs, ec_mul(G1, 2), "P")
        Q = GroupVar.alloc(cs, ec_mul(G1, 3), "Q")
        out = GroupVar.alloc(cs, ec_mul(G1, 7), "out")
        s = cs.alloc_witness(FR(2))
        cs.enforce_group_combination(out, [(P, s), (Q, FR(1))], "2P + Q")
        assert cs.is_satisfied()

    def test_combination_uses_current_scalar_value(self):
        cs = ConstraintSystem()
        P = GroupVar.alloc(cs, ec_mul(G1, 2), "P")
        out = GroupVar.alloc(cs, ec_mul(G1, 4), "out")
        s = cs.alloc_witness(FR(2))
        cs.enforce_group_combination(out, [(P, s)], "2P")
        cs.values[_index(s)] = FR(3)
        assert cs.which_is_unsatisfied() == "2P"

    def test_group_equal(self):
        cs = ConstraintSystem()
        a = GroupVar.alloc(cs, ec_mul(G1, 5), "a")
        b = GroupVar.alloc(cs, ec_mul(G1, 5), "b")
        c = GroupVar.alloc(cs, ec_mul(G1, 6), "c")
        cs.enforce_group_equal(a, b, "a == b")
        assert cs.is_satisfied()
        cs.enforce_group_equal(a, c, "a == c")
        assert cs.which_is_unsatisfied().startswith("a == c")

    def test_coordinate_relation(self):
        cs = ConstraintSystem()
        P = GroupVar.alloc(cs, ec_mul(G1, 5), "P")
        cs.values[_index(P.coords[0])] = FR(1)
        assert cs.which_is_unsatisfied() == "P coords"


# ─────────────────────────────────────────────────────────────────────
# 가젯과 네이티브 검증자의 일치
# ─────────────────────────────────────────────────────────────────────

def _sumcheck_proof():
    f = MultilinearPolynomial([FR(v) for v in range(1, 9)])
    g = MultilinearPolynomial([FR(v * v) for v in range(8)])
    claim = FR(0)
    for a, b in zip(f.evals, g.evals):
        claim = claim + a * b
    proof, challenges, _, _ = sumcheck.prove(
        [f, g], lambda v: v[0] * v[1], 2, Transcript.new(b"gadget"), b"sc"
    )
    return proof, challenges, claim


class TestSumcheckGadget:
    """회로 sumcheck."""

    def test_matches_native(self):
        proof, challenges, claim = _sumcheck_proof()
        cs = ConstraintSystem()
        rounds = alloc_round_polys(cs, proof)
        final, r, _ = verify_sumcheck(
            cs, rounds, cs.alloc_witness(claim), 3, 2, TranscriptVar.new(cs, b"gadget"), b"sc"
        )
        assert [v.value for v in r] == challenges
        native_final, _, _ = sumcheck.verify(proof, claim, 3, 2, Transcript.new(b"gadget"), label=b"sc")
        assert final.value == native_final
        assert cs.is_satisfied()

    @pytest.mark.parametrize("round_index", range(3))
    def test_mutated_round_unsatisfied(self, round_index):
        proof, _, claim = _sumcheck_proof()
        cs = ConstraintSystem()
        rounds = alloc_round_polys(cs, proof)
        cs.values[_index(rounds[round_index][0])] += FR(1)
        verify_sumcheck(
            cs, rounds, cs.alloc_witness(claim), 3, 2, TranscriptVar.new(cs, b"gadget"), b"sc"
        )
        assert not cs.is_satisfied()

    def test_wrong_round_count(self):
        proof, _, claim = _sumcheck_proof()
        cs = ConstraintSystem()
        rounds = alloc_round_polys(cs, proof)[:2]
        with pytest.raises(TranscriptError):
            verify_sumcheck(cs, rounds, cs.constant(claim), 3, 2, TranscriptVar.new(cs))


@pytest.fixture(scope="module")
def proved():
    circuit = CubicStepCircuit()
    key = setup(circuit.shape.num_witness_vars, seed=31)
    vars, io = circuit.witness(FR(4))
    instance, proof, _, _ = spartan.prove(
        circuit.shape, key, vars, io, Transcript.new(config.IVC_LABEL)
    )
    return circuit.shape, instance, proof


def _synthesize_partial(shape, instance, proof):
    cs = ConstraintSystem()
    comm_W = GroupVar.alloc(cs, instance.comm_W.point, "comm_W")
    io = [cs.alloc_witness(v) for v in instance.io]
    proof_var = SpartanProofVar.alloc(cs, proof)
    result, transcript = verify_partial(
        cs, shape, comm_W, io, proof_var, TranscriptVar.new(cs, config.IVC_LABEL)
    )
    return cs, result, transcript


def _assert_matches_native(shape, instance, proof):
    cs, result, transcript = _synthesize_partial(shape, instance, proof)
    native, native_t = spartan.partial_verify(
        shape, instance, proof, Transcript.new(config.IVC_LABEL)
    )
    assert [v.value for v in result.rx] == native.rx
    assert [v.value for v in result.ry] == native.ry
    assert [v.value for v in transcript.state] == list(native_t.state)
    assert cs.is_satisfied()


class TestPartialVerifierGadget:
    """회로 Spartan 부분 검증."""

    def test_matches_native(self, proved):
        _assert_matches_native(*proved)

    @pytest.mark.parametrize("num_cons,num_vars,num_io", [(8, 4, 1), (2, 8, 3), (1, 2, 1)])
    def test_synthetic_shapes_match_native(self, num_cons, num_vars, num_io):
        """제약 수와 변수 수가 다른 형태에서도 네이티브와 같다."""
        shape, vars, io = R1CSShape.synthetic(num_cons, num_vars, num_io, seed=31)
        key = setup(shape.num_witness_vars, seed=31)
        instance, proof, _, _ = spartan.prove(
            shape, key, vars, io, Transcript.new(config.IVC_LABEL)
        )
        _assert_matches_native(shape, instance, proof)

    def test_unsatisfying_witness(self):
        circuit = CubicStepCircuit()
        key = setup(circuit.shape.num_witness_vars, seed=31)
        vars, io = circuit.witness(FR(4))
        bad = [vars[0] + FR(1)] + vars[1:]
        instance, proof, _, _ = spartan.prove(
            circuit.shape, key, bad, io, Transcript.new(config.IVC_LABEL)
        )
        cs, _, _ = _synthesize_partial(circuit.shape, instance, proof)
        assert cs.which_is_unsatisfied() == "phase1/sumcheck round 0"


class TestAccumulationGadget:
    """회로 접기 검증."""

    def test_matches_native(self):
        key = setup(2, seed=41)
        acc_key = AccKey.generate(key, seed=41)
        accs = []
        for offset, point in ((1, [FR(3), FR(5)]), (7, [FR(2), FR(9)])):
            poly = MultilinearPolynomial([FR(offset + i) for i in range(4)])
            value, proof = open(key, poly, point)
            accs.append(instance_from_opening(acc_key, commit(key, poly), point, value, proof))
        folded, fold_proof, native_t = prove_fold(acc_key, accs[0], accs[1])

        cs = ConstraintSystem()
        running = AccInstanceVar.alloc(cs, accs[0].instance, "running")
        current = AccInstanceVar.alloc(cs, accs[1].instance, "current")
        Q = [GroupVar.alloc(cs, q, f"Q{k}") for k, q in enumerate(fold_proof.Q)]
        folded_var, beta, transcript = verify_fold_var(
            cs, running, current, Q, TranscriptVar.new(cs)
        )
        assert folded_var.value() == folded.instance
        assert [v.value for v in transcript.state] == list(native_t.state)
        assert cs.is_satisfied()

        # 교차항을 바꾸면 접힌 E 관계가 깨진다
        cs.values[_index(Q[0].coords[0])] += FR(1)
        assert not cs.is_satisfied()


class TestMatrixGadget:
    """회로 행렬 누적."""

    def test_matches_native(self):
        shape = CubicStepCircuit().shape
        running = matrix_accumulator.genesis(shape)
        point = [FR(2 + i) for i in range(5)]
        current = MatrixAccState(point, shape.evaluate_matrices_at(point))
        new_state, proof, native_t = matrix_accumulator.prove_accumulate(shape, running, current)

        cs = ConstraintSystem()
        state_var, transcript = accumulate_var(
            cs,
            MatrixStateVar.alloc(cs, running),
            MatrixStateVar.alloc(cs, current),
            alloc_q_polys(cs, proof),
            TranscriptVar.new(cs),
        )
        assert [v.value for v in state_var.point] == new_state.point
        assert tuple(v.value for v in state_var.evals) == new_state.evals
        assert cs.is_satisfied()

    def test_wrong_current_eval_unsatisfied(self):
        shape = CubicStepCircuit().shape
        running = matrix_accumulator.genesis(shape)
        point = [FR(2 + i) for i in range(5)]
        current = MatrixAccState(point, shape.evaluate_matrices_at(point))
        _, proof, _ = matrix_accumulator.prove_accumulate(shape, running, current)
        wrong = MatrixAccState(point, (current.evals[0] + FR(1),) + current.evals[1:])

        cs = ConstraintSystem()
        accumulate_var(
            cs, MatrixStateVar.alloc(cs, running), MatrixStateVar.alloc(cs, wrong),
            alloc_q_polys(cs, proof), TranscriptVar.new(cs),
        )
        assert cs.which_is_unsatisfied() == "q_A(0)"
