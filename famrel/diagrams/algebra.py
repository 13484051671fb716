"""Algebraic decision diagrams over feature variables.

An ADD is a function from feature assignments to numbers. Boolean structure
is handled by the `dd` BDD manager: a numeric diagram keeps, for each nonzero
terminal value, the BDD of the assignments that reach it. The zero terminal is
implicit (whatever no region covers). Regions are disjoint and merged by value,
so with a fixed manager this form is canonical and equality of two diagrams is
equality of the functions they denote.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Callable, Iterator, Mapping
from typing import Union

from dd.autoref import BDD, Function

from famrel.exceptions import FormatError
from famrel.settings import AnalysisSettings, analysis_settings

logger = logging.getLogger(__name__)

Operand = Union["ADD", int, float]

_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_ILLEGAL_FORMULA_CHAR = re.compile(r"[^A-Za-z0-9_\s()&|!~/\\<>=^,-]")
_BOOLEAN_CONSTANT = re.compile(r"\b(?:true|false)\b", re.IGNORECASE)
_FORMULA_KEYWORDS = frozenset({"ite", "TRUE", "FALSE"})


def _check_parentheses(text: str) -> None:
    depth = 0
    for ch in text:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth < 0:
                raise FormatError(text, "unbalanced parentheses")
    if depth:
        raise FormatError(text, "unbalanced parentheses")


def normalize_formula(text: str) -> str:
    """Rewrite a boolean formula into the syntax accepted by the `dd` parser.

    Java-style operators (``&&``, ``||``, ``!``) and lowercase constants are
    mapped onto their `dd` spelling. Empty text, characters outside the
    formula alphabet and unbalanced parentheses are rejected up front.

    Args:
        text (str): The formula as written by the user.

    Returns:
        normalized (str): The formula in `dd` syntax.

    Raises:
        FormatError: If the text cannot be a boolean formula.
    """
    stripped = text.strip()
    if not stripped:
        raise FormatError(text, "empty formula")
    illegal = _ILLEGAL_FORMULA_CHAR.search(stripped)
    if illegal is not None:
        raise FormatError(text, f"illegal character {illegal.group()!r}")
    _check_parentheses(stripped)
    normalized = " ".join(stripped.split())
    normalized = normalized.replace("&&", "&").replace("||", "|").replace("!", "~")
    return _BOOLEAN_CONSTANT.sub(lambda m: m.group().upper(), normalized)


def formula_variables(text: str) -> list[str]:
    """Feature names referenced by a normalized formula, in order of first appearance."""
    names: list[str] = []
    for match in _IDENTIFIER.finditer(text):
        name = match.group()
        if name not in _FORMULA_KEYWORDS and name not in names:
            names.append(name)
    return names


def _divide(a: float, b: float) -> float:
    if b == 0:
        if a == 0:
            return 0.0
        msg = f"Division of {a} by a zero terminal."
        raise ZeroDivisionError(msg)
    return a / b


def _power(a: float, b: float) -> float:
    if a == 0 and b < 0:
        msg = f"Zero terminal raised to negative power {b}."
        raise ZeroDivisionError(msg)
    if a < 0 and not b.is_integer():
        msg = f"Negative terminal {a} raised to fractional power {b}."
        raise ValueError(msg)
    return math.pow(a, b)


class DiagramManager:
    """Owns the BDD manager that every diagram of an analysis session lives in.

    Diagrams from two managers cannot be combined; a manager is created per
    session and discarded with it.
    """

    def __init__(self, settings: AnalysisSettings | None = None):
        """Create an empty manager, declaring the configured variable order."""
        self.settings = settings or analysis_settings
        self.bdd = BDD()
        self.bdd.configure(reordering=self.settings.dynamic_reordering)
        if self.settings.variable_order:
            self.bdd.declare(*self.settings.variable_order)

    def __repr__(self) -> str:
        return f"DiagramManager(features={list(self.features)})"

    @property
    def features(self) -> tuple[str, ...]:
        """Declared feature variables, in level order."""
        levels = self.bdd.vars
        return tuple(sorted(levels, key=levels.__getitem__))

    def declare(self, *names: str) -> None:
        """Declare feature variables, appending new ones below the existing levels."""
        new = [name for name in names if name not in self.bdd.vars]
        if new:
            logger.debug(f"Declaring feature variables {new}")
            self.bdd.declare(*new)

    def normalize(self, value: float) -> float:
        """Canonical float for a terminal value."""
        value = float(value)
        if self.settings.terminal_precision is not None:
            value = round(value, self.settings.terminal_precision)
        # collapses -0.0 as well
        if value == 0:
            return 0.0
        return value

    def constant(self, value: float) -> ADD:
        """The diagram with the same value at every assignment."""
        value = self.normalize(value)
        if value == 0:
            return ADD(self, {})
        return ADD(self, {value: self.bdd.true})

    @property
    def zero(self) -> ADD:
        """The constant 0 diagram."""
        return self.constant(0)

    @property
    def one(self) -> ADD:
        """The constant 1 diagram."""
        return self.constant(1)

    def from_bdd(self, u: Function) -> ADD:
        """Lift a BDD of this manager to a {0, 1} diagram."""
        if u == self.bdd.false:
            return ADD(self, {})
        return ADD(self, {1.0: u})

    def var(self, name: str) -> ADD:
        """The {0, 1} diagram of a single feature variable."""
        self.declare(name)
        return self.from_bdd(self.bdd.var(name))

    def encode_bdd(self, text: str) -> Function:
        """Parse a boolean formula into a BDD, declaring its features on the way."""
        normalized = normalize_formula(text)
        self.declare(*formula_variables(normalized))
        try:
            return self.bdd.add_expr(normalized)
        except Exception as e:
            raise FormatError(text, str(e)) from e

    def encode_formula(self, text: str) -> ADD:
        """Encode a boolean formula as a diagram whose terminals are exactly 0 and 1.

        Args:
            text (str): Conjunction/disjunction/negation of feature literals.

        Returns:
            diagram (ADD): 1 where the formula holds, 0 elsewhere.

        Raises:
            FormatError: If the formula is malformed.
        """
        return self.from_bdd(self.encode_bdd(text))

    def coerce(self, operand: Operand) -> ADD:
        """Turn numbers into constant diagrams and check diagrams belong here."""
        if isinstance(operand, ADD):
            if operand.manager is not self:
                msg = "Cannot combine diagrams from different managers."
                raise ValueError(msg)
            return operand
        if isinstance(operand, bool) or not isinstance(operand, (int, float)):
            msg = f"Cannot use {type(operand).__name__} as a diagram operand."
            raise TypeError(msg)
        return self.constant(operand)

    def _accumulate(
        self, result: dict[float, Function], value: float, region: Function
    ) -> None:
        value = self.normalize(value)
        if value == 0:
            return
        if value in result:
            result[value] = result[value] | region
        else:
            result[value] = region


class ADD:
    """An immutable function from feature assignments to numbers.

    Instances are created by a `DiagramManager` (constants, variables,
    formulas) and by the pointwise operators ``*``, ``+``, ``-``, ``/`` and
    ``**``. Plain numbers on either side are lifted to constants.
    """

    __slots__ = ("_regions", "manager")

    def __init__(self, manager: DiagramManager, regions: Mapping[float, Function]):
        """Wrap disjoint, nonempty regions keyed by nonzero normalized values."""
        self.manager = manager
        self._regions = dict(sorted(regions.items()))

    def __repr__(self) -> str:
        terms = ", ".join(
            f"{value:g}: {self.manager.bdd.to_expr(region)}"
            for value, region in self._regions.items()
        )
        return f"ADD({{{terms}}})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ADD):
            return NotImplemented
        if other.manager is not self.manager:
            return False
        if self._regions.keys() != other._regions.keys():
            return False
        return all(region == other._regions[v] for v, region in self._regions.items())

    def __hash__(self) -> int:
        return hash(tuple((value, int(region)) for value, region in self._regions.items()))

    @property
    def nonzero_region(self) -> Function:
        """BDD of the assignments where the function is not 0."""
        union = self.manager.bdd.false
        for region in self._regions.values():
            union = union | region
        return union

    def regions(self) -> Iterator[tuple[float, Function]]:
        """Yield (value, BDD) pairs covering every assignment, the zero region last."""
        yield from self._regions.items()
        zero = ~self.nonzero_region
        if zero != self.manager.bdd.false:
            yield 0.0, zero

    @property
    def terminals(self) -> tuple[float, ...]:
        """Distinct values the function takes, in ascending order."""
        return tuple(sorted(value for value, _ in self.regions()))

    @property
    def support(self) -> set[str]:
        """Feature variables the function depends on."""
        names: set[str] = set()
        for region in self._regions.values():
            names |= region.support
        return names

    @property
    def is_boolean(self) -> bool:
        """Whether every terminal is 0 or 1."""
        return all(value == 1.0 for value in self._regions)

    @property
    def is_constant(self) -> bool:
        """Whether the function takes a single value."""
        return len(self.terminals) == 1

    def evaluate(self, assignment: Mapping[str, bool | int]) -> float:
        """Value of the function at an assignment.

        Features missing from the assignment read as false; names the
        manager never declared are ignored.
        """
        bdd = self.manager.bdd
        for value, region in self._regions.items():
            values = {var: bool(assignment.get(var, False)) for var in region.support}
            point = bdd.let(values, region) if values else region
            if point == bdd.true:
                return value
        return 0.0

    def apply(self, op: Callable[[float, float], float], other: Operand) -> ADD:
        """Pointwise combination ``f(x) = op(self(x), other(x))``."""
        other = self.manager.coerce(other)
        false = self.manager.bdd.false
        result: dict[float, Function] = {}
        for v1, r1 in self.regions():
            for v2, r2 in other.regions():
                region = r1 & r2
                if region == false:
                    continue
                self.manager._accumulate(result, op(v1, v2), region)
        return ADD(self.manager, result)

    def __mul__(self, other: Operand) -> ADD:
        other = self.manager.coerce(other)
        false = self.manager.bdd.false
        result: dict[float, Function] = {}
        # 0 * x is 0, so only nonzero regions meet
        for v1, r1 in self._regions.items():
            for v2, r2 in other._regions.items():
                region = r1 & r2
                if region == false:
                    continue
                self.manager._accumulate(result, v1 * v2, region)
        return ADD(self.manager, result)

    def __rmul__(self, other: Operand) -> ADD:
        return self.__mul__(other)

    def __add__(self, other: Operand) -> ADD:
        return self.apply(lambda a, b: a + b, other)

    def __radd__(self, other: Operand) -> ADD:
        return self.__add__(other)

    def __sub__(self, other: Operand) -> ADD:
        return self.apply(lambda a, b: a - b, other)

    def __rsub__(self, other: Operand) -> ADD:
        return self.manager.coerce(other).__sub__(self)

    def __truediv__(self, other: Operand) -> ADD:
        return self.apply(_divide, other)

    def __rtruediv__(self, other: Operand) -> ADD:
        return self.manager.coerce(other).__truediv__(self)

    def __pow__(self, other: Operand) -> ADD:
        """Pointwise power.

        Raises:
            ZeroDivisionError: If a zero terminal meets a negative exponent.
            ValueError: If a negative terminal meets a fractional exponent.
        """
        return self.apply(_power, other)

    def __rpow__(self, other: Operand) -> ADD:
        return self.manager.coerce(other).__pow__(self)

    def __neg__(self) -> ADD:
        return ADD(
            self.manager,
            {self.manager.normalize(-value): region for value, region in self._regions.items()},
        )

    def __pos__(self) -> ADD:
        return self


def multiply(a: ADD, b: ADD) -> ADD:
    """Pointwise product of two diagrams over the union of their variables."""
    return a * b
