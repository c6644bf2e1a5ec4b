"""
Implementation of a dense discrete factor and its algebra.

A factor is the building block that inference algorithms (belief
propagation, variable elimination, ...) pass around: it maps every joint
assignment of a handful of discrete random variables to a real number (a
potential, an unnormalized probability, or a message).

Usage (order matters only for construction):
-   (1) create a factor over a scope, optionally with its values
-   (2) fill in / read values by assignment or by flat index
-   (3) combine factors (product, marginalization, normalization, scaling)
-   (4) read off the most likely assignment (argmax)

Notation used throughout:

Variable vars:
    X_i     random variable with integer id i
    v_i     cardinality of X_i (number of values it can take)
    x_i     a value for X_i (0 <= x_i < v_i)

Factor vars:
    phi     a factor
    S       phi's scope: ordered ids (s_0, ..., s_{n-1})
    a       an assignment to S: (a_0, ..., a_{n-1}) with a_k a value of X_{s_k}
    d_k     stride of position k: d_0 = 1, d_k = d_{k-1} * v_{s_{k-1}}

Layout:
    idx(a) = sum_k a_k * d_k

    This is mixed-radix numbering where s_0 is the least significant digit.
    It's a bijection between assignments and 0 .. count - 1. Note that this
    is the *opposite* of numpy's default (C) order: a potential array of shape
    (v_{s_0}, ..., v_{s_{n-1}}) flattens to our layout in Fortran order.

Product and marginalization never compute idx(a) from scratch per cell.
Instead they walk an Odometer: a multi-radix counter that keeps one cursor
per operand and nudges it by a stride every time a digit ticks over.
"""

import logging
import numbers

import numpy as np


logger = logging.getLogger(__name__)

# Use this to turn all debugging on or off. Debug mode adds internal
# consistency asserts. Input validation (the exceptions below) always runs.
# Can also specify when creating each instance, but this global switch is
# provided for convenience.
DEBUG_DEFAULT = True

# Storage type for factor values.
DTYPE = np.float64


# Errors
# -----------------------------------------------------------------------------


class FactorError(Exception):
    """Base class for everything a factor raises."""


class ConstructionError(FactorError, ValueError):
    """A factor couldn't be built from the given scope / cardinalities / values."""


class ScopeCardinalityMismatch(ConstructionError):
    pass


class ValueCountMismatch(ConstructionError):
    pass


class InvalidCardinality(ConstructionError):
    pass


class DuplicateVariable(ConstructionError):
    pass


class AccessError(FactorError, IndexError):
    """A value was addressed with a bad assignment or flat index."""


class ArityMismatch(AccessError):
    pass


class OutOfRangeAssignment(AccessError):
    pass


class OutOfRangeIndex(AccessError):
    pass


class MissingVariable(FactorError, KeyError):
    pass


# Helpers
# -----------------------------------------------------------------------------


def compute_strides(cardinalities):
    """
    Prefix products of cardinalities: d_0 = 1, d_k = d_{k-1} * v_{k-1}.

    Args:
        cardinalities ([int])

    Returns:
        (int)
    """
    strides = []
    stride = 1
    for card in cardinalities:
        strides.append(stride)
        stride *= card
    return tuple(strides)


def _is_scalar(x):
    return isinstance(x, numbers.Real)


class Odometer(object):
    """
    Mixed-radix counter with strided cursors into one or more flat tables.

    Digit l counts 0 .. cardinalities[l] - 1 and digit 0 is the least
    significant. Each operand o has a cursor and a stride per digit
    (strides[o][l]); a stride of 0 means operand o doesn't depend on digit l,
    so its cursor stays put while that digit cycles (broadcasting).

    Invariant: cursors[o] == sum_l digits[l] * strides[o][l].
    """

    def __init__(self, cardinalities, strides):
        """
        Args:
            cardinalities ([int])   radix of each digit
            strides ([[int]])       one list per operand, len == n digits
        """
        self.cardinalities = tuple(cardinalities)
        self.strides = [tuple(s) for s in strides]
        self.digits = [0] * len(self.cardinalities)
        self.cursors = [0] * len(self.strides)

    def advance(self):
        """
        Moves to the next assignment. After the last assignment, wraps back
        around to all zeros.
        """
        for l, card in enumerate(self.cardinalities):
            self.digits[l] += 1
            if self.digits[l] == card:
                # Overflow: reset this digit, undo everything it contributed
                # to the cursors, and carry into the next one.
                self.digits[l] = 0
                for o, strides in enumerate(self.strides):
                    self.cursors[o] -= (card - 1) * strides[l]
            else:
                for o, strides in enumerate(self.strides):
                    self.cursors[o] += strides[l]
                break


# Classes
# -----------------------------------------------------------------------------


class Factor(object):
    """
    Dense table over an ordered scope of discrete variables.

    Invariant: len(scope) == len(cardinalities) == len(strides), every
    cardinality is >= 1, scope ids are distinct, and len(values) == count ==
    product(cardinalities). An empty scope makes a scalar factor (count 1).

    The scope and cardinalities are fixed for the life of the factor. Values
    can be set in place (to fill in a table); every algebraic operation
    returns a new factor with its own storage.
    """

    def __init__(self, scope, cardinalities, values=None, debug=DEBUG_DEFAULT):
        """
        Args:
            scope ([int])                   variable ids, order defines layout
            cardinalities ([int])           len == len(scope)
            values ([float], opt)           len == product(cardinalities).
                                            Copied. Zeros if not provided.
            debug (bool, opt)               a gazillion asserts
        """
        scope = tuple(scope)
        cardinalities = tuple(cardinalities)
        if len(scope) != len(cardinalities):
            raise ScopeCardinalityMismatch(
                "scope %r has %d variables but %d cardinalities were given"
                % (scope, len(scope), len(cardinalities))
            )

        count = 1
        for card in cardinalities:
            count *= card

        if values is not None:
            values = np.array(values, dtype=DTYPE).reshape(-1)
            if values.size != count:
                raise ValueCountMismatch(
                    "cardinalities %r need %d values but %d were given"
                    % (cardinalities, count, values.size)
                )

        for i, card in enumerate(cardinalities):
            if card < 1:
                raise InvalidCardinality(
                    "variable %r has cardinality %r (must be >= 1)" % (scope[i], card)
                )
        if len(set(scope)) != len(scope):
            raise DuplicateVariable("scope %r repeats a variable" % (scope,))

        if values is None:
            values = np.zeros(count, dtype=DTYPE)

        self.scope = scope
        self.cardinalities = cardinalities
        self.count = count
        self.debug = debug
        self._strides = compute_strides(cardinalities)
        self._values = values

        if self.debug:
            assert len(self._strides) == len(self.scope)
            assert self._values.shape == (self.count,)
            if len(self.scope) > 0:
                assert self._strides[-1] * self.cardinalities[-1] == self.count

    @classmethod
    def from_potential(cls, scope, potential, debug=DEBUG_DEFAULT):
        """
        Builds a factor from an n-d potential whose axis k indexes variable
        scope[k] (the way a numpy potential is usually written down).

        Args:
            scope ([int])
            potential (np.ndarray)      ndim == len(scope)
            debug (bool, opt)

        Returns:
            Factor
        """
        p = np.asarray(potential, dtype=DTYPE)
        scope = tuple(scope)
        if p.ndim != len(scope):
            raise ScopeCardinalityMismatch(
                "potential has %d dims but scope %r has %d variables"
                % (p.ndim, scope, len(scope))
            )
        # Our layout has scope[0] varying fastest, which is Fortran order.
        return cls(scope, p.shape, p.reshape(-1, order="F"), debug)

    def to_potential(self):
        """
        Inverse of from_potential.

        Returns:
            np.ndarray of shape self.cardinalities (a copy)
        """
        return self._values.reshape(self.cardinalities, order="F").copy()

    def __repr__(self):
        return "Factor(scope=%r, cardinalities=%r)" % (self.scope, self.cardinalities)

    def __eq__(self, other):
        if not isinstance(other, Factor):
            return NotImplemented
        return (
            self.scope == other.scope
            and self.cardinalities == other.cardinalities
            and np.array_equal(self._values, other._values)
        )

    # Values are mutable, so no hashing.
    __hash__ = None

    def isclose(self, other, atol=1e-8):
        """
        Like ==, but values only need to match within atol.

        Args:
            other (Factor)
            atol (float, opt)

        Returns:
            bool
        """
        return (
            self.scope == other.scope
            and self.cardinalities == other.cardinalities
            and bool(np.allclose(self._values, other._values, rtol=0.0, atol=atol))
        )

    def get_values(self):
        """
        Returns COPY of the flat table, in flat-index order.

        Returns:
            np.ndarray of length self.count
        """
        return self._values.copy()

    def get_strides(self):
        """
        Returns:
            (int)
        """
        return self._strides

    # Index mapping
    # -------------------------------------------------------------------------

    def get_index(self, assignment):
        """
        Flat index of an assignment: idx(a) = sum_k a_k * d_k.

        Args:
            assignment ([int])      one value per scope variable, scope order

        Returns:
            int
        """
        if len(assignment) != len(self.scope):
            raise ArityMismatch(
                "assignment %r has %d values but scope %r has %d variables"
                % (assignment, len(assignment), self.scope, len(self.scope))
            )
        index = 0
        for k, value in enumerate(assignment):
            if not 0 <= value < self.cardinalities[k]:
                raise OutOfRangeAssignment(
                    "value %r for variable %r is outside [0, %d)"
                    % (value, self.scope[k], self.cardinalities[k])
                )
            index += int(value) * self._strides[k]
        return index

    def get_assignment(self, index):
        """
        Inverse of get_index: a_k = (index / d_k) % v_k.

        Args:
            index (int)

        Returns:
            [int]
        """
        self._check_index(index)
        return [
            (index // stride) % card
            for stride, card in zip(self._strides, self.cardinalities)
        ]

    def _check_index(self, index):
        if not 0 <= index < self.count:
            raise OutOfRangeIndex(
                "flat index %r is outside [0, %d)" % (index, self.count)
            )

    # Element access
    # -------------------------------------------------------------------------

    def get_by_assignment(self, assignment):
        """
        Args:
            assignment ([int])

        Returns:
            float
        """
        return float(self._values[self.get_index(assignment)])

    def set_by_assignment(self, assignment, value):
        """
        Args:
            assignment ([int])
            value (float)
        """
        self._values[self.get_index(assignment)] = value

    def get_by_index(self, index):
        """
        Args:
            index (int)     0 <= index < self.count

        Returns:
            float
        """
        self._check_index(index)
        return float(self._values[index])

    def set_by_index(self, index, value):
        """
        Args:
            index (int)     0 <= index < self.count
            value (float)
        """
        self._check_index(index)
        self._values[index] = value

    def eval(self, x):
        """
        Returns a single cell of this factor for a (possibly larger) joint
        assignment. Only the variables in our scope are looked at.

        Args:
            x ({int: int})  variable id -> value

        Returns:
            float
        """
        assignment = []
        for var in self.scope:
            if var not in x:
                raise MissingVariable(var)
            assignment.append(x[var])
        return self.get_by_assignment(assignment)

    # Algebra
    # -------------------------------------------------------------------------

    def argmax(self):
        """
        Assignment with the largest value. Ties go to the lowest flat index.

        Returns:
            [int]
        """
        # Seed with the first entry so all-negative (or all-zero) tables
        # still answer with a real cell.
        best_i, best = 0, self._values[0]
        for i in range(1, self.count):
            if self._values[i] > best:
                best_i, best = i, self._values[i]
        return self.get_assignment(best_i)

    def marginalize(self, var):
        """
        Sums var out of this factor.

        If var isn't in scope this returns self: there's nothing to sum.

        Args:
            var (int)   variable id

        Returns:
            Factor
        """
        if var not in self.scope:
            logger.debug("marginalize: %r not in scope %r; no-op", var, self.scope)
            return self

        pos = self.scope.index(var)
        margin_stride = self._strides[pos]
        margin_card = self.cardinalities[pos]
        kept = [k for k in range(len(self.scope)) if k != pos]

        result = Factor(
            [self.scope[k] for k in kept],
            [self.cardinalities[k] for k in kept],
            debug=self.debug,
        )

        # Walk the kept variables in result order; the single cursor points
        # at the first of the margin_card source cells that sum into the
        # current result cell.
        odo = Odometer(result.cardinalities, [[self._strides[k] for k in kept]])
        span = margin_card * margin_stride
        for i in range(result.count):
            start = odo.cursors[0]
            result._values[i] = self._values[start : start + span : margin_stride].sum()
            odo.advance()

        if self.debug:
            assert odo.cursors[0] == 0, "odometer didn't wrap around"

        logger.debug("marginalize: %r over %r -> %r", self, var, result)
        return result

    def normalize(self):
        """
        Rescales values to sum to 1.

        A table that sums to exactly 0 can't be normalized; it's returned as
        is (self) so iterative algorithms don't have to special-case it.

        Returns:
            Factor
        """
        z = self._values.sum()
        if z == 0.0:
            logger.debug("normalize: %r sums to 0; no-op", self)
            return self
        return Factor(self.scope, self.cardinalities, self._values / z, self.debug)

    def __mul__(self, other):
        if isinstance(other, Factor) or _is_scalar(other):
            return multiply(self, other)
        return NotImplemented

    def __rmul__(self, other):
        if _is_scalar(other):
            return scale(self, other)
        return NotImplemented

    # Debugging
    # -------------------------------------------------------------------------

    def print_table(self):
        """
        Displays every assignment and its value, in flat-index order.
        """
        print(repr(self))
        for i in range(self.count):
            print("\t", tuple(self.get_assignment(i)), "\t", self._values[i])

    def debug_stats(self):
        logger.debug("Factor stats:")
        logger.debug("\tscope %r", self.scope)
        logger.debug("\tcardinalities %r", self.cardinalities)
        logger.debug("\t%d values", self.count)


# Functions
# -----------------------------------------------------------------------------


def create(scope, cardinalities, values=None, debug=DEBUG_DEFAULT):
    """
    Creates a factor. Convenience function.

    Args:
        scope ([int])
        cardinalities ([int])
        values ([float], opt)
        debug (bool, opt)

    Returns:
        Factor
    """
    return Factor(scope, cardinalities, values, debug)


def scale(factor, scalar):
    """
    Args:
        factor (Factor)
        scalar (float)

    Returns:
        Factor with every value multiplied by scalar
    """
    return Factor(
        factor.scope, factor.cardinalities, factor._values * scalar, factor.debug
    )


def _union_scope(x, y):
    """
    Result scope of x * y: x's scope, then y's variables that x lacks.

    Returns tuple(
        scope ([int]),
        cardinalities ([int]),
        x_map ([int|None])  per result position, position in x.scope or None,
        y_map ([int|None])  same for y,
    )
    """
    scope = list(x.scope)
    cardinalities = list(x.cardinalities)
    x_map = list(range(len(x.scope)))
    y_map = [None] * len(x.scope)
    lookup = {var: i for i, var in enumerate(x.scope)}

    for i, var in enumerate(y.scope):
        if var in lookup:
            y_map[lookup[var]] = i
            if x.debug:
                assert cardinalities[lookup[var]] == y.cardinalities[i], (
                    "variable %r has cardinality %d in %r but %d in %r"
                    % (var, cardinalities[lookup[var]], x, y.cardinalities[i], y)
                )
        else:
            scope.append(var)
            cardinalities.append(y.cardinalities[i])
            x_map.append(None)
            y_map.append(i)

    return scope, cardinalities, x_map, y_map


def multiply(x, y):
    """
    Factor product: for every assignment a to the union of both scopes,

        (x * y)(a) = x(a restricted to x's scope) * y(a restricted to y's scope)

    A plain number on either side scales the factor instead.

    Args:
        x (Factor|float)
        y (Factor|float)

    Returns:
        Factor
    """
    if isinstance(x, Factor) and _is_scalar(y):
        return scale(x, y)
    if _is_scalar(x) and isinstance(y, Factor):
        return scale(y, x)
    if not (isinstance(x, Factor) and isinstance(y, Factor)):
        raise TypeError(
            "can't multiply %s by %s" % (type(x).__name__, type(y).__name__)
        )

    scope, cardinalities, x_map, y_map = _union_scope(x, y)
    result = Factor(scope, cardinalities, debug=x.debug)

    # A variable missing from an operand gets stride 0 there, so that
    # operand's cursor holds still while the variable cycles.
    x_strides = [0 if m is None else x._strides[m] for m in x_map]
    y_strides = [0 if m is None else y._strides[m] for m in y_map]
    odo = Odometer(cardinalities, [x_strides, y_strides])

    for i in range(result.count):
        j, k = odo.cursors
        result._values[i] = x._values[j] * y._values[k]
        odo.advance()

    if x.debug:
        assert odo.cursors == [0, 0], "odometer didn't wrap around"

    logger.debug("multiply: %r * %r -> %r", x, y, result)
    return result
