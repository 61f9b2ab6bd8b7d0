"""
KZH 다항식 커밋먼트 스킴 (KZH-2 / KZH-3 / KZH-4)
"""

from kzhfold.pcs.srs import KZHKey, setup, block_dims
from kzhfold.pcs.kzh import (
    Commitment, OpeningProof, commit, open, verify, check_opening,
    split_point, fold_commitments, empty_proof, commitment_point,
)
