"""Tests for the rank-1 constraint system and linear combinations."""

import pytest

from constraints.base import ConstraintSystem, LinearCombination, as_lc, inner_product, lc_sum
from primitives.field import BN254_PRIME


class TestLinearCombination:
    """Arithmetic on linear combinations."""

    def test_constant_arithmetic_folds(self) -> None:
        """Sums and scalar products of constants stay constant."""
        x = as_lc(3) + 4 - as_lc(2) * 5
        assert x.constant_value() == (3 + 4 - 10) % BN254_PRIME

    def test_cancellation_removes_terms(self) -> None:
        """x - x has no terms."""
        x = LinearCombination.signal(1)
        assert (x - x).terms == {}

    def test_product_of_signals_is_rejected(self) -> None:
        """Multiplying two signals needs a constraint."""
        x = LinearCombination.signal(1)
        y = LinearCombination.signal(2)
        with pytest.raises(TypeError):
            x * y

    def test_inner_product_and_sum(self) -> None:
        """inner_product and lc_sum agree with repeated addition."""
        xs = [LinearCombination.signal(i) for i in range(1, 4)]
        expected = xs[0] * 2 + xs[1] * 3 + xs[2] * 4
        assert inner_product([2, 3, 4], xs).terms == expected.terms
        assert lc_sum(xs).terms == (xs[0] + xs[1] + xs[2]).terms

    def test_evaluate(self) -> None:
        """Evaluation uses w[0] = 1 for the constant term."""
        x = LinearCombination.signal(1) * 3 + 7
        assert x.evaluate([1, 5]) == 22

    def test_non_integer_operand_is_rejected(self) -> None:
        """Only ints and combinations convert."""
        with pytest.raises(TypeError):
            as_lc(1.5)


class TestConstraintSystem:
    """Construction, witness generation and checking."""

    def test_product_witness(self) -> None:
        """mul creates one constraint and the witness satisfies it."""
        cs = ConstraintSystem()
        a = cs.input("a")
        b = cs.input("b")
        c = cs.mul(a, b)
        cs.expose("c", c)
        assert len(cs.constraints) == 1

        witness = cs.generate_witness({"a": 3, "b": 5})
        assert cs.is_satisfied(witness)
        assert cs.value(witness, "c") == 15

    def test_mul_by_constant_adds_no_constraint(self) -> None:
        """Constant operands fold into the combination."""
        cs = ConstraintSystem()
        a = cs.input("a")
        cs.mul(a, 7)
        cs.mul(2, 3)
        assert cs.constraints == []

    def test_missing_input_raises_key_error(self) -> None:
        """Every declared input must be assigned."""
        cs = ConstraintSystem()
        cs.input("a")
        with pytest.raises(KeyError):
            cs.generate_witness({})

    def test_wrong_array_size_raises_value_error(self) -> None:
        """Array inputs must match their declared size."""
        cs = ConstraintSystem()
        cs.input("xs", 3)
        with pytest.raises(ValueError):
            cs.generate_witness({"xs": [1, 2]})

    def test_duplicate_input_raises(self) -> None:
        """Input names are unique."""
        cs = ConstraintSystem()
        cs.input("a")
        with pytest.raises(ValueError):
            cs.input("a")

    def test_unsatisfied_reports_scope_and_tag(self) -> None:
        """Violations are labelled with the scope they were created in."""
        cs = ConstraintSystem("demo")
        a = cs.input("a")
        with cs.scope("check"):
            cs.assert_equal(a, 1, "a is one")
        witness = cs.generate_witness({"a": 2})
        assert cs.unsatisfied(witness) == ["demo/check: a is one"]
        with pytest.raises(ValueError):
            cs.assert_satisfied(witness)

    def test_masked_assertion(self) -> None:
        """assert_zero only binds when enabled."""
        cs = ConstraintSystem()
        x = cs.input("x")
        enabled = cs.input("enabled")
        cs.assert_zero(x, enabled)
        assert cs.is_satisfied(cs.generate_witness({"x": 9, "enabled": 0}))
        assert not cs.is_satisfied(cs.generate_witness({"x": 9, "enabled": 1}))

    def test_select(self) -> None:
        """select picks between two values with a boolean condition."""
        cs = ConstraintSystem()
        cond = cs.input("cond")
        cs.expose("out", cs.select(cond, 10, 20))
        assert cs.value(cs.generate_witness({"cond": 1}), "out") == 10
        assert cs.value(cs.generate_witness({"cond": 0}), "out") == 20

    def test_boolean_constraints(self) -> None:
        """assert_bool rejects non-boolean values."""
        cs = ConstraintSystem()
        b = cs.input("b")
        cs.assert_bool(b)
        assert cs.is_satisfied(cs.generate_witness({"b": 1}))
        failures = cs.unsatisfied(cs.generate_witness({"b": 2}))
        assert len(failures) == 1
        assert "not boolean" in failures[0]

    def test_public_values_and_stats(self) -> None:
        """Only public inputs are reported; stats count everything."""
        cs = ConstraintSystem()
        cs.input("secret")
        h = cs.input("h", public=True)
        cs.materialize(h + 1)
        witness = cs.generate_witness({"secret": 4, "h": 11})
        assert cs.public_values(witness) == {"h": 11}
        stats = cs.stats()
        assert stats["inputs"] == 2
        assert stats["constraints"] == 1
        assert stats["signals"] == 4

    def test_hints_run_in_creation_order(self) -> None:
        """A chain of products is evaluated front to back."""
        cs = ConstraintSystem()
        x = cs.input("x")
        acc = x
        for _ in range(5):
            acc = cs.mul(acc, x)
        cs.expose("x6", acc)
        witness = cs.generate_witness({"x": 3})
        assert cs.value(witness, "x6") == 3 ** 6
        assert cs.is_satisfied(witness)
