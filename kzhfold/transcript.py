"""
KZH-fold Fiat-Shamir Transcript
================================

비대화식 변환을 위한 Poseidon 듀플렉스 스펀지(duplex sponge) 트랜스크립트.

**불변(immutable) 값으로서의 트랜스크립트**:
  트랜스크립트는 숨은 전역 상태가 아니라 명시적으로 전달되는 값이다.
  모든 메서드는 새 Transcript를 반환하고, 챌린지 메서드는
  (새 트랜스크립트, 챌린지) 쌍을 반환한다.

      t = Transcript.new(b"kzh-fold")
      t = t.append_point(b"C", commitment)
      t, beta = t.challenge_scalar(b"beta")

  같은 순서로 같은 원소를 흡수하면 Prover와 Verifier가 같은 챌린지를 얻는다.

**스펀지 구성**:
  상태 [capacity, rate_0, rate_1]. 프로토콜 레이블은 생성 시 capacity 칸에
  한 번 들어간다. 흡수한 원소 두 개가 모일 때마다 rate 칸에 더하고 순열을
  적용한다. 챌린지는 남은 원소 뒤에 패딩 원소 1을 붙인 마지막 블록을
  넣고 순열을 적용한 뒤 rate_0 값이다. 패딩 덕분에 끝에 붙은 0도
  챌린지를 바꾼다.
  메시지 레이블은 읽는 사람을 위한 이름이며 스펀지에 들어가지 않는다.

**점 흡수**:
  G1 점은 아핀 좌표 (x mod r, y mod r) 두 원소로 흡수한다.
  항등원은 (0, 0).

**회로 안에서의 재사용**:
  순열과 흡수 로직은 + 와 * 만 쓰므로 상태가 FieldVar여도 같은 코드가
  동작한다 (kzhfold.circuit.transcript_var 참고).
"""

from kzhfold import config
from kzhfold.field import FR, CURVE_ORDER, point_to_scalars
from kzhfold.poseidon import permute


def label_to_scalar(label):
    """바이트열 레이블을 FR 원소로 변환한다."""
    return FR(int.from_bytes(label, "big") % CURVE_ORDER)


class Transcript:
    """Poseidon 기반 불변 Fiat-Shamir 트랜스크립트.

    속성:
        state: 길이 3의 스펀지 상태 튜플
        pending: 아직 순열에 들어가지 않은 흡수 원소 (최대 1개)
    """

    rate = config.POSEIDON_RATE

    def __init__(self, state, pending=()):
        self.state = tuple(state)
        self.pending = tuple(pending)

    @classmethod
    def new(cls, label=config.FOLD_LABEL):
        """프로토콜 레이블로 도메인이 분리된 새 트랜스크립트."""
        return cls((label_to_scalar(label), FR(0), FR(0)))

    # ── 형 변환 훅 (회로 버전에서 재정의) ──

    def _coerce(self, element):
        if isinstance(element, FR):
            return element
        return FR(int(element) % CURVE_ORDER)

    def _point_elements(self, point):
        return list(point_to_scalars(point))

    # ── 흡수 ──

    def _absorb(self, elements):
        state = list(self.state)
        pending = list(self.pending)
        for element in elements:
            pending.append(self._coerce(element))
            if len(pending) == self.rate:
                state = permute([state[0], state[1] + pending[0], state[2] + pending[1]])
                pending = []
        return type(self)(state, pending)

    def append_scalar(self, label, scalar):
        """스칼라 한 개를 흡수한 트랜스크립트를 반환한다."""
        return self._absorb([scalar])

    def append_scalars(self, label, scalars):
        """스칼라 리스트를 순서대로 흡수한다."""
        return self._absorb(list(scalars))

    def append_point(self, label, point):
        """G1 점을 두 좌표 원소로 흡수한다."""
        return self._absorb(self._point_elements(point))

    def append_points(self, label, points):
        elements = []
        for point in points:
            elements.extend(self._point_elements(point))
        return self._absorb(elements)

    # ── 챌린지 ──

    def challenge_scalar(self, label):
        """챌린지 스칼라를 짜낸다(squeeze).

        Returns:
            (Transcript, challenge): 갱신된 트랜스크립트와 챌린지
        """
        # 10* 패딩: 남은 원소 뒤에 1을 붙여 마지막 블록을 채운다
        state = list(self.state)
        if self.pending:
            state[1] = state[1] + self.pending[0]
            state[2] = state[2] + 1
        else:
            state[1] = state[1] + 1
        state = permute(state)
        return type(self)(state), state[1]

    def challenge_scalars(self, label, count):
        """챌린지 count개를 차례로 짜낸다."""
        transcript = self
        challenges = []
        for _ in range(count):
            transcript, c = transcript.challenge_scalar(label)
            challenges.append(c)
        return transcript, challenges


def digest(elements, label=config.STATE_DIGEST_LABEL):
    """FR 원소 리스트의 Poseidon 해시."""
    transcript = Transcript.new(label).append_scalars(b"elements", elements)
    _, value = transcript.challenge_scalar(b"digest")
    return value
