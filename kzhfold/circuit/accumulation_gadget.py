"""
누적 검증자 가젯 (Accumulation Verifier Gadget)
===============================================

KZH-fold의 접기 검증을 회로로 옮긴다. 증인이 아니라 인스턴스만 다룬다.

  1. 트랜스크립트에 running, current 인스턴스와 교차항 Q를 흡수해 β 변수를 얻는다
     (네이티브 fold_challenge 와 같은 순서)
  2. 스칼라 성분:  x'' = β·x + (1-β)·x',  z'' = β·z + (1-β)·z'  (곱셈 제약)
  3. 군 성분:      C'', T'', E'' 를 새 GroupVar로 할당하고
                   C'' = β·C + (1-β)·C',  E'' = β·E + (1-β)·E' + β(1-β)·Q
                   를 군 관계로 기록한다
"""

from kzhfold.accumulation.accumulator import AccInstance, fold_instances
from kzhfold.circuit.constraint_system import GroupVar


class AccInstanceVar:
    """회로 변수로 할당된 AccInstance."""

    def __init__(self, C, T, E, x, z):
        self.C = list(C)
        self.T = T
        self.E = list(E)
        self.x = list(x)
        self.z = z

    @classmethod
    def alloc(cls, cs, instance, label="acc"):
        return cls(
            C=[GroupVar.alloc(cs, c, f"{label} C{i}") for i, c in enumerate(instance.C)],
            T=GroupVar.alloc(cs, instance.T, f"{label} T"),
            E=[GroupVar.alloc(cs, e, f"{label} E{i}") for i, e in enumerate(instance.E)],
            x=[cs.alloc_witness(v) for v in instance.x],
            z=cs.alloc_witness(instance.z),
        )

    def points(self):
        return self.C + [self.T] + self.E

    def to_scalars(self):
        out = []
        for point in self.points():
            out.extend(point.coords)
        return out + self.x + [self.z]

    def append_to(self, transcript, label):
        transcript = transcript.append_points(label, self.points())
        transcript = transcript.append_scalars(label, self.x)
        return transcript.append_scalar(label, self.z)

    def value(self):
        """합성 시점의 네이티브 AccInstance."""
        return AccInstance(
            C=[c.point for c in self.C],
            T=self.T.point,
            E=[e.point for e in self.E],
            x=[v.value for v in self.x],
            z=self.z.value,
        )


def verify_fold_var(cs, running, current, Q, transcript):
    """접기 검증 제약을 추가하고 접힌 인스턴스 변수를 반환한다.

    Args:
        running, current: AccInstanceVar
        Q: 교차항 GroupVar 리스트
        transcript: TranscriptVar

    Returns:
        (AccInstanceVar, beta, transcript)
    """
    transcript = running.append_to(transcript, b"running")
    transcript = current.append_to(transcript, b"current")
    transcript = transcript.append_points(b"Q", Q)
    transcript, beta = transcript.challenge_scalar(b"beta")

    one_minus = beta * (-1) + 1
    cross = beta * one_minus

    native = fold_instances(
        running.value(), current.value(), [q.point for q in Q], beta.value
    )

    C = []
    for i, (c1, c2, out) in enumerate(zip(running.C, current.C, native.C)):
        var = GroupVar.alloc(cs, out, f"folded C{i}")
        cs.enforce_group_combination(var, [(c1, beta), (c2, one_minus)], f"fold C{i}")
        C.append(var)

    T = GroupVar.alloc(cs, native.T, "folded T")
    cs.enforce_group_combination(T, [(running.T, beta), (current.T, one_minus)], "fold T")

    E = []
    for i, (e1, e2, q, out) in enumerate(zip(running.E, current.E, Q, native.E)):
        var = GroupVar.alloc(cs, out, f"folded E{i}")
        cs.enforce_group_combination(
            var, [(e1, beta), (e2, one_minus), (q, cross)], f"fold E{i}"
        )
        E.append(var)

    x = [a * beta + b * one_minus for a, b in zip(running.x, current.x)]
    z = running.z * beta + current.z * one_minus
    return AccInstanceVar(C, T, E, x, z), beta, transcript
