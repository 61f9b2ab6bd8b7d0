import sys
import os
import pytest

# 프로젝트 루트를 sys.path에 추가
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from kzhfold.field import FR
from kzhfold.polynomial import MultilinearPolynomial
from kzhfold.pcs import setup


# ── 테스트 상수 ──
TABLE_1_TO_8 = list(range(1, 9))
KEY_SEED = 42


def sample_point(num_vars, start=3):
    """불리언이 아닌 결정론적 평가점."""
    return [FR(start + 7 * i) for i in range(num_vars)]


@pytest.fixture(scope="session")
def poly8():
    """평가표 [1, 2, ..., 8] 의 3변수 다항식."""
    return MultilinearPolynomial([FR(v) for v in TABLE_1_TO_8])


@pytest.fixture(scope="session")
def key3():
    """n = 3, KZH-2 키."""
    return setup(3, arity=2, seed=KEY_SEED)
