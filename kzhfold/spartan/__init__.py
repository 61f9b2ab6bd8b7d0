"""
Spartan: sumcheck 기반 R1CS 인자 (부분 검증자 포함)
"""

from kzhfold.spartan.prover import SpartanInstance, SpartanProof, WitnessOpening, prove
from kzhfold.spartan.partial_verifier import (
    PartialVerifierResult, partial_verify, verify,
)
