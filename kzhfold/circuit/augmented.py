"""
증강 회로 (Augmented Circuit)
=============================

IVC 한 단계에서 증명되는 회로. 공개 입력은 h_in, h_out 두 개뿐이다.

  ┌───────────────────────────────────────────────────────────────┐
  │ h_in == H(i, z_i, 누적자 인스턴스, 행렬 누적 상태)             │
  ├───────────────────────────────────────────────────────────────┤
  │ 트랜스크립트 ← h_in                                           │
  │ (1) Spartan 부분 검증: io[0] == z_i,  comm_W, rx, ry, 행렬 평가 │
  │ (2) 새 누적자 인스턴스가 Spartan 출력과 일치:                   │
  │       C_0 == comm_W,  x == ry[1:],  z == W(ry[1:]),  E == 0     │
  │ (3) KZH-fold 접기 검증 → 접힌 인스턴스                         │
  │ (4) 행렬 누적 검증 → 새 행렬 상태                              │
  ├───────────────────────────────────────────────────────────────┤
  │ h_out == H(i + 1, io[-1], 접힌 인스턴스, 새 행렬 상태)          │
  └───────────────────────────────────────────────────────────────┘

회로는 커밋먼트를 처음부터 다시 계산하지 않는다. 비싼 검사는 전부
체인 끝의 두 decider로 미뤄진다.
"""

from kzhfold import config
from kzhfold.circuit.accumulation_gadget import AccInstanceVar, verify_fold_var
from kzhfold.circuit.constraint_system import GroupVar
from kzhfold.circuit.matrix_gadget import (
    MatrixStateVar, accumulate_var, alloc_q_polys,
)
from kzhfold.circuit.partial_verifier_gadget import SpartanProofVar, verify_partial
from kzhfold.circuit.transcript_var import TranscriptVar, digest_var
from kzhfold.field import Z1


class StepWitness:
    """증강 회로 합성에 필요한 한 단계의 모든 값 (네이티브)."""

    def __init__(self, step, z, running, matrix_running, h_in, spartan_instance,
                 spartan_proof, current, fold_proof, matrix_proof):
        self.step = step
        self.z = z
        self.running = running
        self.matrix_running = matrix_running
        self.h_in = h_in
        self.spartan_instance = spartan_instance
        self.spartan_proof = spartan_proof
        self.current = current
        self.fold_proof = fold_proof
        self.matrix_proof = matrix_proof


def synthesize(cs, shape, witness):
    """증강 회로 제약을 cs에 추가한다.

    Args:
        cs: ConstraintSystem
        shape: 단계 함수의 R1CSShape
        witness: StepWitness

    Returns:
        (h_in, h_out): 공개 입력 FieldVar
    """
    h_in = cs.alloc_input(witness.h_in, "h_in")

    with cs.namespace("state"):
        step = cs.alloc_witness(witness.step)
        z = cs.alloc_witness(witness.z)
        running = AccInstanceVar.alloc(cs, witness.running, "running")
        matrix_running = MatrixStateVar.alloc(cs, witness.matrix_running)
        expected_h_in = digest_var(
            cs, [step, z] + running.to_scalars() + matrix_running.to_scalars()
        )
        cs.enforce_equal(h_in, expected_h_in, "h_in")

    transcript = TranscriptVar.new(cs, config.IVC_LABEL).append_scalar(b"h_in", h_in)

    with cs.namespace("spartan"):
        comm_W = GroupVar.alloc(cs, witness.spartan_instance.comm_W.point, "comm_W")
        io = [cs.alloc_witness(v) for v in witness.spartan_instance.io]
        cs.enforce_equal(io[0], z, "io[0] == z_i")
        proof = SpartanProofVar.alloc(cs, witness.spartan_proof)
        result, transcript = verify_partial(cs, shape, comm_W, io, proof, transcript)

    with cs.namespace("fold"):
        current = AccInstanceVar.alloc(cs, witness.current, "current")
        cs.enforce_group_equal(current.C[0], comm_W, "C_0 == comm_W")
        for k, (xv, rv) in enumerate(zip(current.x, result.ry[1:])):
            cs.enforce_equal(xv, rv, f"x[{k}] == ry[{k + 1}]")
        cs.enforce_equal(current.z, result.eval_vars_at_ry, "z == W(ry)")
        identity = GroupVar.constant(cs, Z1)
        for k, e in enumerate(current.E):
            cs.enforce_group_equal(e, identity, f"E{k} == 0")
        Q = [GroupVar.alloc(cs, q, f"Q{k}") for k, q in enumerate(witness.fold_proof.Q)]
        folded, _, transcript = verify_fold_var(cs, running, current, Q, transcript)

    with cs.namespace("matrix"):
        matrix_current = MatrixStateVar(result.matrix_point, result.matrix_evals)
        q_polys = alloc_q_polys(cs, witness.matrix_proof)
        matrix_next, transcript = accumulate_var(
            cs, matrix_running, matrix_current, q_polys, transcript
        )

    with cs.namespace("output"):
        h_out_value = digest_var(
            cs, [step + 1, io[-1]] + folded.to_scalars() + matrix_next.to_scalars()
        )
        h_out = cs.alloc_input(h_out_value.value, "h_out")
        cs.enforce_equal(h_out, h_out_value, "h_out")

    return h_in, h_out
