"""
KZH-fold 누적 스킴과 eq 트리
"""

from kzhfold.accumulation.eq_tree import EqTree, tree_size
from kzhfold.accumulation.accumulator import (
    AccKey, AccInstance, AccWitness, Accumulator, FoldProof,
    accumulator_init, instance_from_opening, prove_fold, fold, verify_fold,
    fold_instances, fold_challenge, compute_errors, decide,
)
