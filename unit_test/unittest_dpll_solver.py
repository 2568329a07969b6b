# *************************************************************************
# SPDX-License-Identifier: Apache-2.0
# Licensed under the Apache License, Version 2.0.
# See the LICENSE file in the project root for the full license text.
# *************************************************************************
"""
Unit test for the DPLL search: verdicts are checked against brute-force
enumeration on small formulas and against pysat's Minisat22.
"""
import io
import itertools
import random
import unittest
from contextlib import redirect_stdout

import numpy as np
from pysat.solvers import Minisat22

from generate_dataset.gen_cnf_buckets import generate_sat_problem, generate_uniform_problem
from py_dpll.dpll import DPLLSolver, Lbool, Verdict, build, solve


def brute_force_sat(formula) -> bool:
    variables = sorted(formula.variables())
    for values in itertools.product([False, True], repeat=len(variables)):
        if formula.evaluate(dict(zip(variables, values))) is True:
            return True
    return False


def random_formulas(count: int, seed: int):
    """Small uniform random formulas with clause sizes 1 to 3."""
    random.seed(seed)
    np.random.seed(seed)
    for _ in range(count):
        num_vars = random.randint(3, 8)
        clause_size = random.randint(1, 3)
        num_clauses = random.randint(1, 5 * num_vars)
        yield generate_uniform_problem(num_vars, num_clauses, clause_size)


class TestScenarios(unittest.TestCase):
    def assertSatisfies(self, formula, verdict: Verdict):
        self.assertTrue(verdict.is_sat)
        self.assertEqual(set(verdict.model), set(formula.variables()))
        self.assertIs(formula.evaluate(verdict.model), True)

    def test_two_exclusive_pairs(self):
        f = build([[1, 2], [3, 4], [-1, -2], [-3, -4], [-1, -3], [-2, -4]])
        self.assertSatisfies(f, solve(f))

    def test_contradicting_units(self):
        self.assertTrue(solve(build([[1], [-1]])).is_unsat)

    def test_all_polarity_combinations(self):
        self.assertTrue(solve(build([[1, 2], [1, -2], [-1, 2], [-1, -2]])).is_unsat)

    def test_single_unit(self):
        f = build([[1]])
        solver = DPLLSolver(f)
        self.assertEqual(solver.solve_(), Lbool.TRUE)
        self.assertEqual(solver.model, {1: True})
        self.assertEqual(solver.decisions, 0)

    def test_single_wide_clause(self):
        f = build([[1, 2, 3]])
        self.assertSatisfies(f, solve(f))
        self.assertSatisfies(f, solve(f, pure_literals=False))

    def test_empty_formula(self):
        verdict = solve(build([]))
        self.assertTrue(verdict.is_sat)
        self.assertEqual(verdict.model, {})

    def test_empty_clause_is_unsat(self):
        f = build([[1, 2], [], [3]])
        solver = DPLLSolver(f)
        self.assertEqual(solver.solve_(), Lbool.FALSE)
        self.assertEqual(solver.decisions, 0)
        self.assertEqual(solver.propagations, 0)

    def test_unmentioned_variables_are_absent(self):
        verdict = solve(build([[1, 5], [-5]]))
        self.assertEqual(verdict.model, {1: True, 5: False})
        self.assertEqual(verdict.to_dimacs(), [1, -5])

    def test_duplicate_and_tautological_literals(self):
        self.assertTrue(solve(build([[1, 1], [-1, 2], [-2, -2]])).is_unsat)
        f = build([[1, -1], [2, 2, -3], [3]])
        self.assertSatisfies(f, solve(f, pure_literals=False))

    def test_unsat_needs_backtracking_over_levels(self):
        # pigeonhole: 3 pigeons, 2 holes
        p = lambda i, h: 2 * i + h + 1
        clauses = [[p(i, 0), p(i, 1)] for i in range(3)]
        for h in range(2):
            for i, j in itertools.combinations(range(3), 2):
                clauses.append([-p(i, h), -p(j, h)])
        self.assertTrue(solve(build(clauses)).is_unsat)
        self.assertTrue(solve(build(clauses), pure_literals=False).is_unsat)


class TestAgainstBruteForce(unittest.TestCase):
    def test_random_formulas(self):
        for index, clauses in enumerate(random_formulas(150, seed=7)):
            formula = build(clauses)
            expected = brute_force_sat(formula)
            for pure, branching in itertools.product((True, False), (0, 1)):
                with self.subTest(index=index, pure=pure, branching=branching):
                    solver = DPLLSolver(formula)
                    solver.pure = pure
                    solver.branching = branching
                    status = solver.solve_()
                    self.assertEqual(status == Lbool.TRUE, expected, f"clauses: {clauses}")
                    if expected:
                        self.assertIs(formula.evaluate(solver.model), True)

    def test_planted_formulas_are_sat(self):
        random.seed(3)
        np.random.seed(3)
        for index in range(20):
            with self.subTest(index=index):
                formula = build(generate_sat_problem(12, 50, 3))
                verdict = solve(formula)
                self.assertTrue(verdict.is_sat)
                self.assertIs(formula.evaluate(verdict.model), True)


class TestAgainstMinisat(unittest.TestCase):
    def test_random_3sat(self):
        random.seed(11)
        np.random.seed(11)
        for index in range(30):
            clauses = generate_uniform_problem(20, 86, 3)
            with self.subTest(index=index):
                with Minisat22(bootstrap_with=clauses) as oracle:
                    expected = oracle.solve()
                verdict = solve(build(clauses))
                self.assertEqual(verdict.is_sat, expected)
                self.assertNotEqual(verdict.is_unsat, expected)


class TestSolverProperties(unittest.TestCase):
    def test_idempotent(self):
        for index, clauses in enumerate(random_formulas(30, seed=5)):
            formula = build(clauses)
            with self.subTest(index=index):
                first = solve(formula)
                second = solve(formula)
                self.assertEqual(first.status, second.status)
                self.assertEqual(first.model, second.model)

    def test_pure_literal_elimination_keeps_verdict(self):
        for index, clauses in enumerate(random_formulas(60, seed=9)):
            formula = build(clauses)
            with self.subTest(index=index):
                self.assertEqual(solve(formula).status,
                                 solve(formula, pure_literals=False).status)

    def test_formula_clauses_are_not_mutated(self):
        formula = build([[1, 2, 3], [-1, -2], [-3, 2]])
        before = [list(c.watch) for c in formula.clauses()]
        solve(formula)
        self.assertEqual([list(c.watch) for c in formula.clauses()], before)


class TestBudgets(unittest.TestCase):
    clauses = [[1, 2], [-1, -2], [2, 3], [-2, -3]]

    def test_decision_budget_stops_undecided(self):
        solver = DPLLSolver(build(self.clauses))
        solver.decision_budget = 0
        self.assertEqual(solver.solve_(), Lbool.UNDEF)
        self.assertTrue(Verdict(Lbool.UNDEF, solver.model).is_unknown)
        self.assertEqual(solver.model, {})

        solver.decision_budget = -1
        self.assertEqual(solver.solve_(), Lbool.TRUE)

    def test_interrupt(self):
        solver = DPLLSolver(build(self.clauses))
        solver.interrupt()
        self.assertEqual(solver.solve_(), Lbool.UNDEF)
        self.assertEqual(solver.decisions, 0)

    def test_conflict_budget(self):
        # deciding -1 fails, its flip 1 holds; the budget is checked before deciding 2
        solver = DPLLSolver(build([[1, 2], [1, -2], [3, 4]]))
        solver.pure = False
        solver.phase = False
        solver.conflict_budget = 1
        self.assertEqual(solver.solve_(), Lbool.UNDEF)
        self.assertEqual(solver.conflicts, 1)

    def test_unknown_branching_mode(self):
        solver = DPLLSolver(build(self.clauses))
        solver.branching = 5
        with self.assertRaises(ValueError):
            solver.solve_()


class TestVerbosity(unittest.TestCase):
    def test_silent_by_default(self):
        out = io.StringIO()
        with redirect_stdout(out):
            solve(build([[1, 2], [-1, -2]]))
        self.assertEqual(out.getvalue(), "")

    def test_events_printed(self):
        solver = DPLLSolver(build([[1, 2], [-1, -2]]))
        solver.verbosity = 2
        out = io.StringIO()
        with redirect_stdout(out):
            solver.solve_()
        self.assertIn("Search Statistics", out.getvalue())
        self.assertIn("D 1 L 1", out.getvalue())


if __name__ == '__main__':
    unittest.main()
