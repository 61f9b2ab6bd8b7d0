"""
eq 트리 (누적자의 평가점 증인)
==============================

점 x ∈ F^d 에 대해 eq(x, ·)의 모든 부분곱을 완전 이진 트리로 저장한다.

    레벨 0:  [1]
    레벨 1:  [1 - x_0, x_0]
    레벨 2:  [(1-x_0)(1-x_1), (1-x_0)x_1, x_0(1-x_1), x_0 x_1]
    ...

노드는 레벨 순서로 평탄화된다. 레벨 i는 인덱스 [2^i - 1, 2^{i+1} - 1)을
차지하고 노드 (i, j)의 자식은 (i+1, 2j), (i+1, 2j+1)이다.
잎(leaves)은 eq_table(x)와 같다. 전체 노드 수는 2^{d+1} - 1.

**트리 결함(error)**:
  관계식 root = 1,  left = parent·(1 - x_i),  right = parent·x_i 의 좌변-우변.
  접기(folding)를 하면 이차 항 parent·x_i 때문에 교차항이 생긴다:
      left:  -Δparent·Δx_i,   right: +Δparent·Δx_i,   root: 0
"""

from kzhfold.field import FR


def tree_size(depth):
    """깊이 d 트리의 노드 수 2^{d+1} - 1."""
    return (1 << (depth + 1)) - 1


def _children(depth):
    """(레벨, 부모 인덱스, 왼쪽 자식 인덱스) 를 순서대로 생성한다."""
    for level in range(depth):
        start = (1 << level) - 1
        child_start = (1 << (level + 1)) - 1
        for j in range(1 << level):
            yield level, start + j, child_start + 2 * j


class EqTree:
    """eq(x, ·) 부분곱 트리.

    속성:
        nodes: 평탄화된 FR 리스트 (길이 2^{d+1} - 1)
        depth: 변수 개수 d
    """

    def __init__(self, nodes, depth):
        self.nodes = nodes
        self.depth = depth

    @classmethod
    def build(cls, point):
        nodes = [FR(1)]
        for level, parent, _ in _children(len(point)):
            xi = point[level]
            value = nodes[parent]
            nodes.append(value * (FR(1) - xi))
            nodes.append(value * xi)
        return cls(nodes, len(point))

    def leaves(self):
        return leaves(self.nodes, self.depth)


def leaves(nodes, depth):
    """평탄화된 노드 리스트의 마지막 레벨."""
    return nodes[(1 << depth) - 1:]


def tree_errors(nodes, point):
    """노드별 결함 벡터. 올바른 트리면 모두 0이다."""
    errors = [nodes[0] - FR(1)] + [FR(0)] * (len(nodes) - 1)
    for level, parent, left in _children(len(point)):
        xi = point[level]
        p = nodes[parent]
        errors[left] = nodes[left] - p + p * xi
        errors[left + 1] = nodes[left + 1] - p * xi
    return errors


def tree_cross_terms(delta_nodes, delta_point):
    """두 트리의 차이 (Δnodes, Δx)에 대한 노드별 교차항."""
    cross = [FR(0)] * len(delta_nodes)
    for level, parent, left in _children(len(delta_point)):
        term = delta_nodes[parent] * delta_point[level]
        cross[left] = FR(0) - term
        cross[left + 1] = term
    return cross
