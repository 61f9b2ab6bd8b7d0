"""
열기 주장 일괄 누적 (Batch Aggregation)
=======================================

같은 키로 만든 KZH 열기 주장 여러 개를 하나의 누적자로 접는다.
검증자는 주장마다 페어링을 하지 않고, 인스턴스만으로 접기를 재현한 뒤
decide를 한 번 실행한다.

  acc_0 = 항등 누적자
  acc_i = fold(acc_{i-1}, claim_i)       (i = 1, ..., k)
  검증:  인스턴스 접기 재현 → 마지막 인스턴스 비교 → decide(acc_k)

트랜스크립트는 모든 접기에 걸쳐 이어지므로 주장의 순서도 결과에 묶인다.
"""

import logging

from kzhfold import config
from kzhfold.accumulation.accumulator import (
    accumulator_init, instance_from_opening, prove_fold, fold_challenge,
    fold_instances, decide,
)
from kzhfold.transcript import Transcript

logger = logging.getLogger(__name__)


class Aggregate:
    """누적 결과.

    속성:
        accumulator: 모든 주장을 접은 Accumulator
        fold_proofs: 주장별 FoldProof
    """

    def __init__(self, accumulator, fold_proofs):
        self.accumulator = accumulator
        self.fold_proofs = list(fold_proofs)

    def __len__(self):
        return len(self.fold_proofs)


def aggregate(acc_key, claims):
    """(commitment, point, value, proof) 주장 리스트를 하나로 접는다.

    주장 자체는 검증하지 않는다. 틀린 주장이 섞이면 decide가 실패한다.

    Returns:
        Aggregate
    """
    transcript = Transcript.new(config.FOLD_LABEL)
    acc = accumulator_init(acc_key)
    proofs = []
    for commitment, point, value, proof in claims:
        current = instance_from_opening(acc_key, commitment, point, value, proof)
        acc, fold_proof, transcript = prove_fold(acc_key, acc, current, transcript)
        proofs.append(fold_proof)
    logger.debug("aggregated %d opening claims", len(proofs))
    return Aggregate(acc, proofs)


def verify_aggregate(acc_key, claims, result):
    """aggregate 결과를 확인한다.

    Returns:
        bool

    Raises:
        ShapeError: 주장의 평가점 차원이 키와 다를 때
    """
    claims = list(claims)
    if len(claims) != len(result.fold_proofs):
        logger.debug("aggregate rejected: %d claims, %d fold proofs",
                     len(claims), len(result.fold_proofs))
        return False

    transcript = Transcript.new(config.FOLD_LABEL)
    running = accumulator_init(acc_key).instance
    for (commitment, point, value, proof), fold_proof in zip(claims, result.fold_proofs):
        current = instance_from_opening(acc_key, commitment, point, value, proof)
        if len(fold_proof.Q) != acc_key.num_errors:
            logger.debug("aggregate rejected: Q length %d", len(fold_proof.Q))
            return False
        transcript, beta = fold_challenge(running, current.instance, fold_proof.Q, transcript)
        running = fold_instances(running, current.instance, fold_proof.Q, beta)

    if running != result.accumulator.instance:
        logger.debug("aggregate rejected: folded instance mismatch")
        return False
    return decide(acc_key, result.accumulator)
