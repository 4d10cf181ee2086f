#!/usr/bin/env python3
"""
Tagged physical quantities for the planet simulator.

Each quantity wraps either a scalar (Mass, Radius, Time) or a 3-vector
(Moment, Velocity, Force, Acceleration, Momentum). Same-typed quantities add
and subtract; cross-type products and quotients exist only where they are
physically meaningful:

    Mass * Vec3           -> Moment
    Moment / Mass         -> Vec3
    Force / Mass          -> Acceleration
    Mass * Acceleration   -> Force
    Momentum / Mass       -> Velocity
    Mass * Velocity       -> Momentum   (either order)
    Acceleration * Time   -> Velocity   (either order)
    Force * Time          -> Momentum   (either order)
    Velocity * Time       -> Vec3

Scalars also multiply and divide by their own type, and vectors scale by plain
numbers. Everything else raises TypeError, so adding a Force to a Velocity is
rejected instead of silently producing nonsense.
"""
import functools
import operator
from typing import Callable, Dict, Iterable, Tuple, Type

from .vector_utils import Vec3, ZERO3, vec_add, vec_neg, vec_scale, vec_sub, as_vec3

_Number = (int, float)


def _is_number(x) -> bool:
    return isinstance(x, _Number) and not isinstance(x, bool)


class Quantity:
    """Base class for tagged quantities."""
    __slots__ = ()

    ZERO: "Quantity"

    @classmethod
    def sum(cls, items: Iterable["Quantity"]):
        """Sum same-typed quantities starting from ZERO."""
        return functools.reduce(operator.add, items, cls.ZERO)

    def __radd__(self, other):
        # Lets the builtin sum() start from 0.
        if _is_number(other) and other == 0:
            return self
        return NotImplemented

    def __mul__(self, other):
        fn = _MUL.get((type(self), type(other)))
        if fn is not None:
            return fn(self, other)
        return self._mul_plain(other)

    def __truediv__(self, other):
        fn = _DIV.get((type(self), type(other)))
        if fn is not None:
            return fn(self, other)
        return self._div_plain(other)

    def _mul_plain(self, other):
        return NotImplemented

    def _div_plain(self, other):
        return NotImplemented


class Scalar(Quantity):
    __slots__ = ("value",)

    def __init__(self, value: float = 0.0):
        self.value = float(value)

    def __add__(self, other):
        if type(other) is not type(self):
            return NotImplemented
        return type(self)(self.value + other.value)

    def __sub__(self, other):
        if type(other) is not type(self):
            return NotImplemented
        return type(self)(self.value - other.value)

    def _mul_plain(self, other):
        if type(other) is type(self):
            return type(self)(self.value * other.value)
        return NotImplemented

    def _div_plain(self, other):
        if type(other) is type(self):
            return type(self)(self.value / other.value)
        return NotImplemented

    def __eq__(self, other):
        if type(other) is not type(self):
            return NotImplemented
        return self.value == other.value

    def __hash__(self):
        return hash((type(self).__name__, self.value))

    def __repr__(self):
        return f"{type(self).__name__}({self.value!r})"


class Vector(Quantity):
    __slots__ = ("vec",)

    def __init__(self, vec: Vec3 = ZERO3):
        self.vec = as_vec3(vec)

    def __add__(self, other):
        if type(other) is not type(self):
            return NotImplemented
        return type(self)(vec_add(self.vec, other.vec))

    def __sub__(self, other):
        if type(other) is not type(self):
            return NotImplemented
        return type(self)(vec_sub(self.vec, other.vec))

    def __neg__(self):
        return type(self)(vec_neg(self.vec))

    def _mul_plain(self, other):
        if _is_number(other):
            return type(self)(vec_scale(self.vec, other))
        return NotImplemented

    def __rmul__(self, other):
        if _is_number(other):
            return type(self)(vec_scale(self.vec, other))
        return NotImplemented

    def _div_plain(self, other):
        if _is_number(other):
            return type(self)(vec_scale(self.vec, 1.0 / other))
        return NotImplemented

    def __eq__(self, other):
        if type(other) is not type(self):
            return NotImplemented
        return self.vec == other.vec

    def __hash__(self):
        return hash((type(self).__name__, self.vec))

    def __iter__(self):
        return iter(self.vec)

    def __repr__(self):
        return f"{type(self).__name__}({self.vec!r})"


class Mass(Scalar):
    __slots__ = ()


class Radius(Scalar):
    __slots__ = ()


class Time(Scalar):
    __slots__ = ()


class Moment(Vector):
    """Mass-weighted position, summed to find a center of mass."""
    __slots__ = ()


class Velocity(Vector):
    __slots__ = ()


class Force(Vector):
    __slots__ = ()


class Acceleration(Vector):
    __slots__ = ()


class Momentum(Vector):
    __slots__ = ()


for _cls in (Mass, Radius, Time):
    _cls.ZERO = _cls(0.0)
for _cls in (Moment, Velocity, Force, Acceleration, Momentum):
    _cls.ZERO = _cls(ZERO3)

_Op = Callable[[Quantity, object], object]
_MUL: Dict[Tuple[Type, Type], _Op] = {}
_DIV: Dict[Tuple[Type, Type], _Op] = {}


def _scalar_times_vector(out: Type[Vector]) -> _Op:
    return lambda s, v: out(vec_scale(v.vec, s.value))


def _vector_times_scalar(out: Type[Vector]) -> _Op:
    return lambda v, s: out(vec_scale(v.vec, s.value))


def _vector_over_scalar(out: Type[Vector]) -> _Op:
    return lambda v, s: out(vec_scale(v.vec, 1.0 / s.value))


_MUL[(Mass, tuple)] = lambda m, v: Moment(vec_scale(as_vec3(v), m.value))
_DIV[(Moment, Mass)] = lambda mo, m: vec_scale(mo.vec, 1.0 / m.value)

_DIV[(Force, Mass)] = _vector_over_scalar(Acceleration)
_MUL[(Mass, Acceleration)] = _scalar_times_vector(Force)

_DIV[(Momentum, Mass)] = _vector_over_scalar(Velocity)
_MUL[(Mass, Velocity)] = _scalar_times_vector(Momentum)
_MUL[(Velocity, Mass)] = _vector_times_scalar(Momentum)

_MUL[(Acceleration, Time)] = _vector_times_scalar(Velocity)
_MUL[(Time, Acceleration)] = _scalar_times_vector(Velocity)

_MUL[(Force, Time)] = _vector_times_scalar(Momentum)
_MUL[(Time, Force)] = _scalar_times_vector(Momentum)

_MUL[(Velocity, Time)] = lambda v, t: vec_scale(v.vec, t.value)
