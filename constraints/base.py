"""Rank-1 constraint system over the BN254 scalar field.

A relation is a list of constraints A(w) * B(w) = C(w), where A, B and C are
linear combinations of the witness vector w and w[0] = 1. Gadgets are plain
functions that take a ConstraintSystem and linear combinations and return
new linear combinations; they never branch on values, since values only
exist once a witness is generated.

Witness generation runs the hints registered during construction, in
creation order. Because a hint can only read signals that already exist
when it is registered, creation order is a topological order of the
dependency graph.

Example:
    cs = ConstraintSystem()
    a = cs.input("a")
    b = cs.input("b")
    c = cs.mul(a, b)
    cs.expose("c", c)

    witness = cs.generate_witness({"a": 3, "b": 5})
    assert cs.is_satisfied(witness)
    assert cs.value(witness, "c") == 15
"""

from contextlib import contextmanager
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from primitives.field import BN254_PRIME

ONE = 0
"""Index of the constant-one wire."""

P = BN254_PRIME


# --- Linear Combinations ---

class LinearCombination:
    """Sparse linear combination sum_i c_i * w[i] with coefficients in [0, p)."""

    __slots__ = ("terms",)

    def __init__(self, terms: Optional[Dict[int, int]] = None):
        self.terms = terms if terms is not None else {}

    @classmethod
    def constant(cls, value: int) -> "LinearCombination":
        value %= P
        return cls({ONE: value} if value else {})

    @classmethod
    def signal(cls, index: int) -> "LinearCombination":
        return cls({index: 1})

    def is_constant(self) -> bool:
        return all(k == ONE for k in self.terms)

    def constant_value(self) -> Optional[int]:
        """The value if this combination is constant, else None."""
        if not self.is_constant():
            return None
        return self.terms.get(ONE, 0)

    def evaluate(self, witness: Sequence[int]) -> int:
        return sum(witness[k] * c for k, c in self.terms.items()) % P

    def __add__(self, other: "LC") -> "LinearCombination":
        other = as_lc(other)
        terms = dict(self.terms)
        for k, c in other.terms.items():
            s = (terms.get(k, 0) + c) % P
            if s:
                terms[k] = s
            else:
                terms.pop(k, None)
        return LinearCombination(terms)

    __radd__ = __add__

    def __neg__(self) -> "LinearCombination":
        return LinearCombination({k: (-c) % P for k, c in self.terms.items()})

    def __sub__(self, other: "LC") -> "LinearCombination":
        return self + (-as_lc(other))

    def __rsub__(self, other: "LC") -> "LinearCombination":
        return as_lc(other) + (-self)

    def __mul__(self, scalar: int) -> "LinearCombination":
        if isinstance(scalar, LinearCombination):
            const = scalar.constant_value()
            if const is None:
                raise TypeError("Product of two signals needs a constraint; use ConstraintSystem.mul")
            scalar = const
        scalar %= P
        if scalar == 0:
            return LinearCombination()
        return LinearCombination({k: (c * scalar) % P for k, c in self.terms.items()})

    __rmul__ = __mul__

    def __repr__(self) -> str:
        return f"LinearCombination({self.terms})"


LC = Union[LinearCombination, int]


def as_lc(value: LC) -> LinearCombination:
    if isinstance(value, LinearCombination):
        return value
    if isinstance(value, int):
        return LinearCombination.constant(value)
    raise TypeError(f"Cannot use {type(value).__name__} as a linear combination")


def lc_sum(items: Iterable[LC]) -> LinearCombination:
    """Sum many linear combinations in one pass."""
    terms: Dict[int, int] = {}
    for item in items:
        for k, c in as_lc(item).terms.items():
            terms[k] = terms.get(k, 0) + c
    return LinearCombination({k: c % P for k, c in terms.items() if c % P})


def inner_product(coeffs: Sequence[int], items: Sequence[LC]) -> LinearCombination:
    """sum_i coeffs[i] * items[i] for constant coefficients."""
    terms: Dict[int, int] = {}
    for coeff, item in zip(coeffs, items):
        if coeff % P == 0:
            continue
        for k, c in as_lc(item).terms.items():
            terms[k] = terms.get(k, 0) + coeff * c
    return LinearCombination({k: c % P for k, c in terms.items() if c % P})


def _product(a: int, b: int) -> List[int]:
    return [a * b]


def _identity(v: int) -> List[int]:
    return [v]


# --- Constraint System ---

class ConstraintSystem:
    """Builder and checker for a single rank-1 relation.

    Attributes:
        constraints: (A, B, C, scope, tag) tuples with A, B, C as term dicts
        booleans: (signal index, scope) pairs constrained to {0, 1}
    """

    def __init__(self, name: str = "circuit"):
        self.name = name
        self.n_signals = 1
        self.constraints: List[Tuple[Dict[int, int], Dict[int, int], Dict[int, int], str, Optional[str]]] = []
        self.booleans: List[Tuple[int, str]] = []
        self._hints: List[Tuple[List[int], List[LinearCombination], Callable]] = []
        self._inputs: Dict[str, Tuple[List[int], bool, bool]] = {}
        self._exposed: Dict[str, Union[LinearCombination, List[LinearCombination]]] = {}
        self._signal_scope: List[str] = [name]
        self._scope_stack: List[str] = [name]

    # --- Construction ---

    @property
    def current_scope(self) -> str:
        return self._scope_stack[-1]

    @contextmanager
    def scope(self, label: str):
        """Prefix constraint labels created inside the block with label."""
        self._scope_stack.append(f"{self.current_scope}/{label}")
        try:
            yield
        finally:
            self._scope_stack.pop()

    def _new_signals(self, n: int) -> List[int]:
        start = self.n_signals
        self.n_signals += n
        self._signal_scope.extend([self.current_scope] * n)
        return list(range(start, start + n))

    def input(self, name: str, size: Optional[int] = None, public: bool = False):
        """Declare a named input; a list of signals when size is given."""
        if name in self._inputs:
            raise ValueError(f"Input '{name}' declared twice")
        indices = self._new_signals(1 if size is None else size)
        self._inputs[name] = (indices, public, size is not None)
        signals = [LinearCombination.signal(i) for i in indices]
        return signals if size is not None else signals[0]

    def hint(self, fn: Callable[..., Sequence[int]], deps: Sequence[LC], n_out: int) -> List[LinearCombination]:
        """Create n_out signals whose witness values are fn(*dep_values).

        fn receives the dependency values as ints in [0, p) and must return
        n_out ints. It must not raise on unexpected values: constraints, not
        hints, decide whether an assignment is valid.
        """
        outputs = self._new_signals(n_out)
        self._hints.append((outputs, [as_lc(d) for d in deps], fn))
        return [LinearCombination.signal(i) for i in outputs]

    def constrain(self, a: LC, b: LC, c: LC, tag: Optional[str] = None) -> None:
        """Add the constraint a * b = c."""
        self.constraints.append(
            (as_lc(a).terms, as_lc(b).terms, as_lc(c).terms, self.current_scope, tag)
        )

    def assert_equal(self, a: LC, b: LC, tag: Optional[str] = None) -> None:
        self.constrain(as_lc(a) - as_lc(b), 1, 0, tag)

    def assert_zero(self, x: LC, enabled: LC = 1, tag: Optional[str] = None) -> None:
        """enabled * x = 0."""
        self.constrain(enabled, x, 0, tag)

    def assert_true(self, flag: LC, enabled: LC = 1, tag: Optional[str] = None) -> None:
        """enabled * (1 - flag) = 0 for a boolean flag."""
        self.constrain(enabled, 1 - as_lc(flag), 0, tag)

    def assert_bool(self, x: LC, tag: Optional[str] = None) -> None:
        x = as_lc(x)
        if len(x.terms) == 1:
            ((idx, coeff),) = x.terms.items()
            if idx != ONE and coeff == 1:
                self.booleans.append((idx, self.current_scope))
                return
        self.constrain(x, x - 1, 0, tag or "bool")

    def mul(self, a: LC, b: LC, tag: Optional[str] = None) -> LinearCombination:
        """Product of two combinations; constant-folded when either is constant."""
        a, b = as_lc(a), as_lc(b)
        ca, cb = a.constant_value(), b.constant_value()
        if ca is not None:
            return b * ca
        if cb is not None:
            return a * cb
        (out,) = self.hint(_product, [a, b], 1)
        self.constrain(a, b, out, tag)
        return out

    def select(self, cond: LC, if_true: LC, if_false: LC) -> LinearCombination:
        """cond * if_true + (1 - cond) * if_false for a boolean cond."""
        return self.mul(cond, as_lc(if_true) - as_lc(if_false)) + if_false

    def materialize(self, x: LC) -> LinearCombination:
        """Bind a linear combination to a fresh signal (one linear constraint)."""
        x = as_lc(x)
        if len(x.terms) == 1 and next(iter(x.terms.values())) == 1 and ONE not in x.terms:
            return x
        (out,) = self.hint(_identity, [x], 1)
        self.assert_equal(out, x, "materialize")
        return out

    def expose(self, name: str, value) -> None:
        """Record a named value (or list of values) readable from a witness."""
        self._exposed[name] = value

    # --- Witness ---

    @property
    def input_names(self) -> List[str]:
        return list(self._inputs)

    def input_size(self, name: str) -> Optional[int]:
        indices, _, is_array = self._inputs[name]
        return len(indices) if is_array else None

    def generate_witness(self, assignment: Mapping[str, Union[int, Sequence[int]]]) -> List[int]:
        """Assign inputs, then run every hint in creation order.

        Raises:
            KeyError: If an input is missing
            ValueError: If an array input has the wrong length or a signal
                is left without a value
        """
        witness: List[Optional[int]] = [None] * self.n_signals
        witness[ONE] = 1
        for name, (indices, _, is_array) in self._inputs.items():
            if name not in assignment:
                raise KeyError(f"Missing input '{name}'")
            raw = assignment[name]
            values = list(raw) if is_array else [raw]
            if len(values) != len(indices):
                raise ValueError(f"Input '{name}' expects {len(indices)} values, got {len(values)}")
            for idx, v in zip(indices, values):
                witness[idx] = int(v) % P

        for outputs, deps, fn in self._hints:
            dep_values = [d.evaluate(witness) for d in deps]
            results = fn(*dep_values)
            for idx, r in zip(outputs, results):
                witness[idx] = int(r) % P

        missing = [i for i, v in enumerate(witness) if v is None]
        if missing:
            raise ValueError(
                f"{len(missing)} signals have no witness value "
                f"(first: #{missing[0]} in {self._signal_scope[missing[0]]})"
            )
        return witness

    # --- Checking ---

    def unsatisfied(self, witness: Sequence[int], limit: Optional[int] = None) -> List[str]:
        """Describe violated constraints, up to limit of them."""
        failures = []
        for a, b, c, scope, tag in self.constraints:
            va = sum(witness[k] * v for k, v in a.items())
            vb = sum(witness[k] * v for k, v in b.items())
            vc = sum(witness[k] * v for k, v in c.items())
            if (va * vb - vc) % P:
                failures.append(f"{scope}: {tag}" if tag else scope)
                if limit is not None and len(failures) >= limit:
                    return failures
        for idx, scope in self.booleans:
            if witness[idx] not in (0, 1):
                failures.append(f"{scope}: signal #{idx} is not boolean")
                if limit is not None and len(failures) >= limit:
                    return failures
        return failures

    def is_satisfied(self, witness: Sequence[int]) -> bool:
        return not self.unsatisfied(witness, limit=1)

    def assert_satisfied(self, witness: Sequence[int], max_report: int = 5) -> None:
        failures = self.unsatisfied(witness, limit=max_report)
        if failures:
            raise ValueError(f"Relation not satisfied: {failures}")

    def public_values(self, witness: Sequence[int]) -> Dict[str, Union[int, List[int]]]:
        """Values of the inputs declared public."""
        result = {}
        for name, (indices, public, is_array) in self._inputs.items():
            if public:
                values = [witness[i] for i in indices]
                result[name] = values if is_array else values[0]
        return result

    def value(self, witness: Sequence[int], name: str) -> Union[int, List[int]]:
        """Value of an exposed combination (or list of combinations)."""
        exposed = self._exposed[name]
        if isinstance(exposed, list):
            return [as_lc(x).evaluate(witness) for x in exposed]
        return as_lc(exposed).evaluate(witness)

    def stats(self) -> Dict[str, int]:
        return {
            "signals": self.n_signals,
            "constraints": len(self.constraints),
            "booleans": len(self.booleans),
            "hints": len(self._hints),
            "inputs": sum(len(ix) for ix, _, _ in self._inputs.values()),
        }
