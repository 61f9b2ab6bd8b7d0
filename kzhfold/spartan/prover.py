"""
Spartan Prover
==============

R1CS 만족성 (A·z) ∘ (B·z) = C·z 를 두 번의 sumcheck로 환원한다.

  ┌─────────────────────────────────────────────────────────────┐
  │  0. 증인 커밋: comm_W = KZH.commit(W),  흡수: comm_W, io     │
  │     τ ← 트랜스크립트 (log m 개)                              │
  ├─────────────────────────────────────────────────────────────┤
  │  1. Σ_x eq(τ, x) · (Az(x)·Bz(x) - Cz(x)) = 0   (3차 sumcheck) │
  │     → 점 rx, 주장 Az(rx), Bz(rx), Cz(rx)                     │
  │     r_A, r_B, r_C ← 트랜스크립트                             │
  ├─────────────────────────────────────────────────────────────┤
  │  2. Σ_y (r_A·A~(rx,y) + r_B·B~(rx,y) + r_C·C~(rx,y)) · Z(y)  │
  │        = r_A·Az(rx) + r_B·Bz(rx) + r_C·Cz(rx)  (2차 sumcheck) │
  │     → 점 ry, 주장 W(ry[1:])                                  │
  ├─────────────────────────────────────────────────────────────┤
  │  3. 행렬 평가 (A~, B~, C~)(rx, ry) 와                        │
  │     W의 ry[1:] 에서의 KZH 열기를 함께 내보낸다               │
  └─────────────────────────────────────────────────────────────┘

행렬 평가는 검증자가 직접 확인하지 않고 행렬 누적자로 넘긴다.
W의 열기는 KZH-fold 누적자의 새 인스턴스가 된다.
"""

from kzhfold.errors import ShapeError
from kzhfold.field import FR
from kzhfold.pcs import kzh
from kzhfold.polynomial import MultilinearPolynomial, eq_table
from kzhfold import sumcheck


class SpartanInstance:
    """공개 인스턴스: 증인 커밋먼트와 공개 입력."""

    def __init__(self, comm_W, io):
        self.comm_W = comm_W
        self.io = list(io)


class SpartanProof:
    """Spartan 증명.

    속성:
        phase1: SumcheckProof (3차, log num_cons 라운드)
        claims: (Az(rx), Bz(rx), Cz(rx))
        phase2: SumcheckProof (2차, log 2·num_vars 라운드)
        eval_vars_at_ry: W(ry[1:])
        matrix_evals: (A~, B~, C~)(rx, ry)  (행렬 누적자로 넘어감)
    """

    def __init__(self, phase1, claims, phase2, eval_vars_at_ry, matrix_evals):
        self.phase1 = phase1
        self.claims = tuple(claims)
        self.phase2 = phase2
        self.eval_vars_at_ry = eval_vars_at_ry
        self.matrix_evals = tuple(matrix_evals)


class WitnessOpening:
    """W의 ry[1:] 에서의 KZH 열기 (누적자 인스턴스의 재료).

    속성:
        point, value, proof: KZH 열기 주장
        matrix_point: 행렬 평가가 가리키는 점 rx ‖ ry
    """

    def __init__(self, point, value, proof, matrix_point):
        self.point = list(point)
        self.value = value
        self.proof = proof
        self.matrix_point = list(matrix_point)


def absorb_instance(transcript, instance):
    transcript = transcript.append_point(b"comm_W", instance.comm_W.point)
    return transcript.append_scalars(b"io", instance.io)


def _combined_rows(shape, rx, r_abc):
    """ABC(y) = Σ_x eq(rx, x)·(r_A·A[x][y] + r_B·B[x][y] + r_C·C[x][y])."""
    ex = eq_table(rx)
    out = [FR(0)] * (2 * shape.num_vars)
    for weight, entries in zip(r_abc, (shape.A, shape.B, shape.C)):
        for row, col, value in entries:
            out[col] = out[col] + weight * value * ex[row]
    return out


def prove(shape, pcs_key, vars, io, transcript):
    """Spartan 증명을 생성한다.

    만족하지 않는 증인을 넣어도 예외 없이 증명을 만들며,
    그 증명은 부분 검증자(또는 회로)의 첫 라운드 검사에서 거부된다.

    Args:
        shape: R1CSShape
        pcs_key: log2(num_vars) 변수용 KZHKey
        vars, io: 증인과 공개 입력
        transcript: Transcript

    Returns:
        (SpartanInstance, SpartanProof, WitnessOpening, transcript)
    """
    if pcs_key.num_vars != shape.num_witness_vars:
        raise ShapeError(
            f"PCS 키 변수 개수 {pcs_key.num_vars} != {shape.num_witness_vars}"
        )
    W = MultilinearPolynomial(vars)
    instance = SpartanInstance(kzh.commit(pcs_key, W), io)
    transcript = absorb_instance(transcript, instance)
    transcript, tau = transcript.challenge_scalars(b"tau", shape.num_x_vars)

    z = shape.z_vector(vars, io)
    az, bz, cz = shape.multiply_vec(z)

    # phase 1
    phase1, rx, finals, transcript = sumcheck.prove(
        [MultilinearPolynomial(eq_table(tau)), MultilinearPolynomial(az),
         MultilinearPolynomial(bz), MultilinearPolynomial(cz)],
        lambda v: v[0] * (v[1] * v[2] - v[3]),
        3, transcript, b"phase1",
    )
    claims = finals[1:]
    transcript = transcript.append_scalars(b"claims", claims)
    transcript, r_abc = transcript.challenge_scalars(b"r_abc", 3)

    # phase 2
    phase2, ry, _, transcript = sumcheck.prove(
        [MultilinearPolynomial(_combined_rows(shape, rx, r_abc)), MultilinearPolynomial(z)],
        lambda v: v[0] * v[1],
        2, transcript, b"phase2",
    )
    value, opening = kzh.open(pcs_key, W, ry[1:])
    transcript = transcript.append_scalar(b"eval_vars_at_ry", value)

    proof = SpartanProof(
        phase1, claims, phase2, value, shape.evaluate_matrices(rx, ry)
    )
    return instance, proof, WitnessOpening(ry[1:], value, opening, rx + ry), transcript
