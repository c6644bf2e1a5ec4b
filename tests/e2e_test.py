# -*- coding: utf-8 -*-

"""
End-to-end tests: exact inference on small models built only from factor
products, marginalizations and normalizations.
"""


# Imports
# -----------------------------------------------------------------------------

# builtins
import itertools

# 3rd party
import numpy as np

# Local
from .context import factor as pf


# Helpers
# -----------------------------------------------------------------------------

def joint_of(factors):
    """
    Args:
        factors ([pf.Factor])

    Returns:
        pf.Factor product of all factors
    """
    joint = factors[0]
    for f in factors[1:]:
        joint = joint * f
    return joint


def marginal(joint, var):
    """
    Sums every other variable out of joint and normalizes.

    Args:
        joint (pf.Factor)
        var (int)

    Returns:
        pf.Factor over just var
    """
    m = joint
    for other in joint.scope:
        if other != var:
            m = m.marginalize(other)
    return m.normalize()


def compare_marginals_to_ref(factors, ref):
    """
    Computes the marginal of every variable by brute-force elimination and
    asserts that the results are equal (close) to the reference values.

    Args:
        factors ([pf.Factor])
        ref ({int: [float]})
    """
    joint = joint_of(factors)
    assert set(joint.scope) == set(ref)
    for var, values in ref.items():
        m = marginal(joint, var)
        assert m.scope == (var,)
        assert np.allclose(m.get_values(), values)


def brute_force_best(factors, cardinalities):
    """
    Tries every full assignment.

    Args:
        factors ([pf.Factor])
        cardinalities ({int: int})

    Returns:
        ({int: int}, float)
    """
    names = sorted(cardinalities)
    best_a, best_r = None, None
    for values in itertools.product(*[range(cardinalities[n]) for n in names]):
        x = dict(zip(names, values))
        r = 1.0
        for f in factors:
            r *= f.eval(x)
        if best_r is None or r > best_r:
            best_a, best_r = x, r
    return best_a, best_r


# Tests
# -----------------------------------------------------------------------------

def test_message_passing_scenario():
    """
    Two pairwise factors sharing variable 5; sum out 2, pull in psi, and
    normalize, with unit scalars sprinkled in as messages would be.
    """
    phi = pf.create([2, 5], [2, 2], [10, 1, 1, 10])
    psi = pf.create([4, 5], [2, 2], [10, 1, 1, 10])

    message = (phi * 1.0 * 1.0 * 1.0).marginalize(2)
    assert message.scope == (5,)

    result = (message * psi * 1.0).normalize()
    assert result.scope == (5, 4)
    assert abs(result.get_by_assignment([1, 1]) - 0.4545) < 0.001
    assert np.isclose(result.get_values().sum(), 1.0)


def test_toygraph():
    """
    ToyGraph from pyfac (https://github.com/rdlester/pyfac/blob/master/graphTests.py).
    """
    a, b = 0, 1
    f_b = pf.Factor.from_potential([b], np.array([0.3, 0.7]))
    f_ab = pf.Factor.from_potential(
        [a, b], np.array([[0.2, 0.8], [0.4, 0.6], [0.1, 0.9]])
    )
    factors = [f_b, f_ab]
    joint = joint_of(factors)

    # quick sanity check: make sure a couple joints are correct:
    assert np.isclose(joint.eval({a: 0, b: 0}), 0.06)
    assert np.isclose(joint.eval({a: 2, b: 1}), 0.63)

    # the joint's argmax agrees with trying everything by hand
    bf_assignment, bf_score = brute_force_best(factors, {a: 3, b: 2})
    best = dict(zip(joint.scope, joint.argmax()))
    assert best == bf_assignment
    assert np.isclose(joint.eval(best), bf_score)

    ref = {
        a: [0.34065934, 0.2967033, 0.36263736],
        b: [0.11538462, 0.88461538],
    }
    compare_marginals_to_ref(factors, ref)


def test_testgraph():
    """
    TestGraph from pyfac (https://github.com/rdlester/pyfac/blob/master/graphTests.py).
    """
    a, b, c, d = 0, 1, 2, 3
    factors = [
        pf.Factor.from_potential([a], np.array([0.3, 0.7])),
        pf.Factor.from_potential([b, a], np.array([
            [0.2, 0.8],
            [0.4, 0.6],
            [0.1, 0.9],
        ])),
        pf.Factor.from_potential([d, c, a], np.array([
            [
                [3., 1.],
                [1.2, 0.4],
                [0.1, 0.9],
                [0.1, 0.9],
            ],
            [
                [11., 9.],
                [8.8, 9.4],
                [6.4, 0.1],
                [8.8, 9.4],
            ],
            [
                [3., 2.],
                [2., 2.],
                [2., 2.],
                [3., 2.],
            ],
            [
                [0.3, 0.7],
                [0.44, 0.56],
                [0.37, 0.63],
                [0.44, 0.56],
            ],
            [
                [0.2, 0.1],
                [0.64, 0.44],
                [0.37, 0.63],
                [0.2, 0.1],
            ],
        ])),
    ]
    joint = joint_of(factors)
    assert joint.cardinalities == (2, 3, 5, 4)

    # quick sanity check: make sure a couple joints are correct:
    assert np.isclose(joint.eval({a: 0, b: 0, c: 0, d: 0}), 0.18)
    assert np.isclose(joint.eval({a: 1, b: 2, c: 3, d: 4}), 0.063)

    bf_assignment, bf_score = brute_force_best(factors, {a: 2, b: 3, c: 4, d: 5})
    assert np.isclose(joint.eval(dict(zip(joint.scope, joint.argmax()))), bf_score)

    ref = {
        a: [0.13755539, 0.86244461],
        b: [0.33928227, 0.30358863, 0.3571291],
        c: [0.30378128, 0.29216947, 0.11007584, 0.29397341],
        d: [0.076011, 0.65388724, 0.18740039, 0.05341787, 0.0292835],
    }
    compare_marginals_to_ref(factors, ref)
