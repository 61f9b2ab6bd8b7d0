"""
KZH-fold IVC 드라이버
=====================

단계 함수 F (R1CS)를 반복 적용하는 계산 z_0 → z_1 → ... → z_k 를
단계마다 상수 크기의 상태로 증명한다.

  ┌─────────────────────────────────────────────────────────────┐
  │  setup(step_circuit)   PCS 키, 누적 키                       │
  │  genesis(params, z0)   항등 누적자 + 행렬 누적 genesis       │
  ├─────────────────────────────────────────────────────────────┤
  │  prove_step(params, state):                                  │
  │    1. 증인 (vars, io) ← F(z_i)                               │
  │    2. Spartan 증명, W의 KZH 열기 → 새 누적자 인스턴스         │
  │    3. KZH-fold 접기 (running ⊕ current)                      │
  │    4. 행렬 평가 누적                                         │
  │    5. 증강 회로 합성 및 만족성 확인                          │
  │    → 새 상태 (i + 1, z_{i+1}, 누적자, 행렬 상태, h)           │
  ├─────────────────────────────────────────────────────────────┤
  │  decide(params, state)  누적자 decide + 행렬 decide + 해시   │
  └─────────────────────────────────────────────────────────────┘

네이티브 쪽 트랜스크립트 흡수 순서는 증강 회로와 정확히 같다:
  h_in → Spartan(comm_W, io, ...) → 접기(running, current, Q) → 행렬(q)

증강 회로 자체를 외부 SNARK로 증명하는 일은 이 패키지의 범위 밖이며,
여기서는 회로를 합성하고 만족성을 확인한다.

사용 예시:
    >>> params = setup(CubicStepCircuit(), seed=1)
    >>> state = genesis(params, FR(2))
    >>> for _ in range(3):
    ...     state, _ = prove_step(params, state)
    >>> decide(params, state)   # True
"""

import logging

from kzhfold import config
from kzhfold.accumulation.accumulator import (
    AccKey, accumulator_init, instance_from_opening, prove_fold, decide as decide_accumulator,
)
from kzhfold.circuit.augmented import StepWitness, synthesize
from kzhfold.circuit.constraint_system import ConstraintSystem
from kzhfold.errors import VerificationFailure
from kzhfold.field import FR
from kzhfold import matrix_accumulator
from kzhfold.matrix_accumulator import MatrixAccState
from kzhfold.pcs.srs import setup as pcs_setup
from kzhfold import spartan
from kzhfold.transcript import Transcript, digest

logger = logging.getLogger(__name__)


class IVCParams:
    """단계 회로와 키 (모든 단계가 공유, 불변)."""

    def __init__(self, step_circuit, pcs_key, acc_key):
        self.step_circuit = step_circuit
        self.pcs_key = pcs_key
        self.acc_key = acc_key

    @property
    def shape(self):
        return self.step_circuit.shape


class IVCState:
    """i번째 단계 이후의 상태.

    속성:
        step: 단계 번호 i
        z0, z: 초기 입력과 현재 값
        accumulator: KZH-fold Accumulator
        matrix_state: MatrixAccState
        h: 공개 입력 H(i, z, 누적자 인스턴스, 행렬 상태)
    """

    def __init__(self, step, z0, z, accumulator, matrix_state, h):
        self.step = step
        self.z0 = z0
        self.z = z
        self.accumulator = accumulator
        self.matrix_state = matrix_state
        self.h = h


def state_digest(step, z, instance, matrix_state):
    """IVC 공개 입력: Poseidon(i, z, 인스턴스, 행렬 상태)."""
    return digest(
        [FR(step), z] + instance.to_scalars() + matrix_state.to_scalars()
    )


def setup(step_circuit, arity=config.DEFAULT_ARITY, seed=None):
    """단계 회로용 PCS 키와 누적 키를 만든다."""
    pcs_key = pcs_setup(step_circuit.shape.num_witness_vars, arity, seed)
    return IVCParams(step_circuit, pcs_key, AccKey.generate(pcs_key, seed))


def genesis(params, z0):
    """0번째 상태: 항등 누적자와 원점의 행렬 누적 상태."""
    z0 = z0 if isinstance(z0, FR) else FR(z0)
    acc = accumulator_init(params.acc_key)
    matrix_state = matrix_accumulator.genesis(params.shape)
    h = state_digest(0, z0, acc.instance, matrix_state)
    return IVCState(0, z0, z0, acc, matrix_state, h)


def synthesize_step(params, state, vars=None):
    """한 단계를 네이티브로 계산하고 증강 회로를 합성한다.

    Args:
        vars: 단계 증인을 직접 지정할 때 사용 (기본값: 단계 함수로 계산)

    Returns:
        (ConstraintSystem, IVCState): 합성된 회로와 다음 상태
    """
    shape = params.shape
    honest_vars, io = params.step_circuit.witness(state.z)
    vars = honest_vars if vars is None else vars

    transcript = Transcript.new(config.IVC_LABEL).append_scalar(b"h_in", state.h)
    instance, proof, opening, transcript = spartan.prove(
        shape, params.pcs_key, vars, io, transcript
    )

    current = instance_from_opening(
        params.acc_key, instance.comm_W, opening.point, opening.value, opening.proof
    )
    folded, fold_proof, transcript = prove_fold(
        params.acc_key, state.accumulator, current, transcript
    )

    matrix_current = MatrixAccState(opening.matrix_point, proof.matrix_evals)
    matrix_next, matrix_proof, transcript = matrix_accumulator.prove_accumulate(
        shape, state.matrix_state, matrix_current, transcript
    )

    witness = StepWitness(
        step=state.step,
        z=state.z,
        running=state.accumulator.instance,
        matrix_running=state.matrix_state,
        h_in=state.h,
        spartan_instance=instance,
        spartan_proof=proof,
        current=current.instance,
        fold_proof=fold_proof,
        matrix_proof=matrix_proof,
    )
    cs = ConstraintSystem()
    synthesize(cs, shape, witness)

    z_next = params.step_circuit.output(io)
    h_next = state_digest(state.step + 1, z_next, folded.instance, matrix_next)
    next_state = IVCState(state.step + 1, state.z0, z_next, folded, matrix_next, h_next)
    return cs, next_state


def prove_step(params, state, vars=None):
    """한 단계를 진행한다.

    vars를 주면 단계 함수 대신 그 증인을 사용한다 (synthesize_step 참고).

    Returns:
        (IVCState, ConstraintSystem)

    Raises:
        VerificationFailure: 증강 회로가 만족되지 않을 때
    """
    cs, next_state = synthesize_step(params, state, vars)
    failed = cs.which_is_unsatisfied()
    if failed is not None:
        raise VerificationFailure(f"단계 {state.step}: 증강 회로 제약 불만족 ({failed})")
    logger.info(
        "IVC step %d proved (%d constraints, %d group relations)",
        state.step, cs.num_constraints, len(cs.group_relations),
    )
    return next_state, cs


def decide(params, state):
    """체인 끝의 최종 검사.

    누적자 decide, 행렬 누적자 decide, 그리고 상태 해시가 공개 입력 h와
    일치하는지 확인한다.
    """
    if state.h != state_digest(state.step, state.z, state.accumulator.instance,
                               state.matrix_state):
        logger.debug("IVC state rejected: digest mismatch")
        return False
    if not decide_accumulator(params.acc_key, state.accumulator):
        return False
    return matrix_accumulator.decide(params.shape, state.matrix_state)


def run(params, z0, num_steps):
    """genesis부터 num_steps 단계를 진행한 상태를 반환한다."""
    state = genesis(params, z0)
    for _ in range(num_steps):
        state, _ = prove_step(params, state)
    return state
