"""
증강 회로 계층: 제약 시스템, 회로 변수, 검증자 가젯
"""

from kzhfold.circuit.constraint_system import ConstraintSystem, FieldVar, GroupVar
from kzhfold.circuit.transcript_var import TranscriptVar, digest_var
from kzhfold.circuit.augmented import StepWitness, synthesize
