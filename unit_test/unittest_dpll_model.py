# *************************************************************************
# SPDX-License-Identifier: Apache-2.0
# Licensed under the Apache License, Version 2.0.
# See the LICENSE file in the project root for the full license text.
# *************************************************************************
"""
Unit tests for literals, clauses and formulas.
"""
import unittest

from py_dpll.dpll import (Clause, Formula, build, complement, is_positive, lit_from_dimacs,
                          lit_to_dimacs, mkLit, sign, var, var_to_dimacs)
from py_dpll.errors import EmptyClause, InvalidLiteral


def L(number: int) -> int:
    return lit_from_dimacs(number)


class TestLiterals(unittest.TestCase):
    def test_encoding(self):
        self.assertEqual(L(3), mkLit(2, False))
        self.assertEqual(L(-3), mkLit(2, True))
        self.assertEqual(var(L(-3)), 2)
        self.assertEqual(var_to_dimacs(var(L(-3))), 3)
        self.assertTrue(sign(L(-3)))
        self.assertFalse(is_positive(L(-3)))
        self.assertTrue(is_positive(L(3)))

    def test_complement(self):
        for number in (1, -1, 7, -42):
            with self.subTest(number=number):
                lit = L(number)
                self.assertEqual(complement(lit), L(-number))
                self.assertEqual(complement(complement(lit)), lit)
                self.assertNotEqual(complement(lit), lit)
                self.assertEqual(lit_to_dimacs(lit), number)

    def test_literals_are_hashable_and_ordered(self):
        self.assertEqual(len({L(1), L(1), L(-1)}), 2)
        self.assertLess(L(1), L(2))

    def test_zero_is_invalid(self):
        with self.assertRaises(InvalidLiteral) as ctx:
            lit_from_dimacs(0)
        self.assertIsInstance(ctx.exception, ValueError)
        self.assertEqual(ctx.exception.number, 0)


class TestClause(unittest.TestCase):
    def test_empty_clause_is_rejected(self):
        with self.assertRaises(EmptyClause):
            Clause([])

    def test_unit_clause_watches_its_literal(self):
        c = Clause([L(-4)])
        self.assertEqual(c.size(), 1)
        self.assertEqual(c.watched_literals(), (L(-4),))

    def test_watch_positions_move_literals_do_not(self):
        c = Clause([L(1), L(-2), L(3)])
        self.assertEqual(c.watched_literals(), (L(1), L(-2)))

        c.replace_watch(0, 2)
        self.assertEqual(c.watched_literals(), (L(3), L(-2)))
        self.assertEqual(c.literals(), (L(1), L(-2), L(3)))

        with self.assertRaises(ValueError):
            c.replace_watch(1, 2)

    def test_copy_resets_watches(self):
        c = Clause([L(1), L(2), L(3)])
        c.replace_watch(1, 2)
        fresh = c.copy()
        self.assertEqual(fresh.watch, [0, 1])
        self.assertEqual(fresh.literals(), c.literals())
        self.assertEqual(c.watch, [0, 2])

    def test_evaluate(self):
        c = Clause([L(1), L(-2)])
        self.assertTrue(c.evaluate({1: True}))
        self.assertTrue(c.evaluate({2: False}))
        self.assertFalse(c.evaluate({1: False, 2: True}))
        self.assertIsNone(c.evaluate({1: False}))
        self.assertEqual(c.to_dimacs(), [1, -2])


class TestFormula(unittest.TestCase):
    def test_add_clause_tracks_variables(self):
        f = Formula()
        f.add_clause([1, -2])
        self.assertEqual(f.variables(), frozenset({1, 2}))
        f.add_clause([5])
        self.assertEqual(f.variables(), frozenset({1, 2, 5}))
        self.assertEqual(f.nVars(), 5)
        self.assertEqual([c.to_dimacs() for c in f.clauses()], [[1, -2], [5]])

    def test_zero_literal_leaves_formula_unchanged(self):
        f = build([[1, 2]])
        with self.assertRaises(InvalidLiteral):
            f.add_clause([3, 0, 4])
        self.assertEqual(f.nClauses(), 1)
        self.assertEqual(f.variables(), frozenset({1, 2}))

    def test_build_rejects_zero(self):
        with self.assertRaises(InvalidLiteral):
            build([[1, 2], [0]])

    def test_empty_clause_marks_formula_unsat(self):
        f = build([[1, 2], [], [3]])
        self.assertFalse(f.ok)
        self.assertEqual(f.nClauses(), 2)
        self.assertFalse(f.evaluate({1: True, 3: True}))

    def test_evaluate(self):
        f = build([[1, 2], [-1]])
        self.assertTrue(f.evaluate({1: False, 2: True}))
        self.assertFalse(f.evaluate({1: True}))
        self.assertIsNone(f.evaluate({1: False}))

    def test_empty_formula(self):
        f = build([])
        self.assertTrue(f.ok)
        self.assertEqual(f.variables(), frozenset())
        self.assertTrue(f.evaluate({}))


if __name__ == '__main__':
    unittest.main()
