# *************************************************************************
# SPDX-License-Identifier: Apache-2.0
# Licensed under the Apache License, Version 2.0.
# See the LICENSE file in the project root for the full license text.
# *************************************************************************
"""
Unit tests for the trace helpers, the CNF helpers, the dataset generator
and the command-line front end.
"""
import io
import os
import random
import tempfile
import unittest
from contextlib import redirect_stdout, redirect_stderr
from pathlib import Path

import numpy as np
from pysat.formula import CNF

from generate_dataset.extract_trace import _solve_and_trace
from generate_dataset.gen_cnf_buckets import (generate_sat_problem, generate_uniform_problem,
                                              to_dimacs_like_format, write_bucket)
from py_dpll.run_dpll import main as run_dpll_main
from utils.trace_utils import convert_trace_to_str, extract_numbers_in_order, simplify_trace
from utils.utils import (cnf_line_2_CNF_class, formula_from_cnf, get_cnf_files,
                         read_sat_problems_lines, write_temp_cnf_file)


class TestTraceUtils(unittest.TestCase):
    events = [("A", 3, 0), ("D", 1, 1), ("P", -4, 1), ("BT", -1, 1), ("A", 2, 1)]

    def test_convert(self):
        self.assertEqual(convert_trace_to_str(self.events), "A 3 D 1 L 1 P -4 BT -1 L 1 A 2")

    def test_convert_rejects_unknown_kind(self):
        with self.assertRaises(ValueError):
            convert_trace_to_str([("X", 1, 0)])

    def test_simplify(self):
        self.assertEqual(simplify_trace("D -1 L 1 BT 1 L 1 A 9 P 10"), "D -1 D 1 9 10")

    def test_decisions_in_order(self):
        trace = convert_trace_to_str(self.events)
        self.assertEqual(extract_numbers_in_order(trace), [1, -1])


class TestCnfUtils(unittest.TestCase):
    def test_line_to_cnf(self):
        cnf = cnf_line_2_CNF_class("1 -2 0 3 0 -1 2 -3 0")
        self.assertEqual(cnf.clauses, [[1, -2], [3], [-1, 2, -3]])
        formula = formula_from_cnf(cnf)
        self.assertEqual(formula.nClauses(), 3)
        self.assertEqual(formula.variables(), frozenset({1, 2, 3}))

    def test_files(self):
        with tempfile.TemporaryDirectory() as tmp:
            write_temp_cnf_file(CNF(from_clauses=[[1, 2]]), os.path.join(tmp, "b.cnf"))
            write_temp_cnf_file(CNF(from_clauses=[[-1]]), os.path.join(tmp, "a.cnf"))
            Path(tmp, "notes.txt").write_text("x\n")

            files = get_cnf_files(tmp)

            self.assertEqual([os.path.basename(f) for f in files], ["a.cnf", "b.cnf"])
            self.assertEqual(CNF(from_file=files[1]).clauses, [[1, 2]])


class TestGenerator(unittest.TestCase):
    def setUp(self):
        random.seed(1)
        np.random.seed(1)

    def test_planted_uses_every_variable(self):
        clauses = generate_sat_problem(10, 45, 3)
        self.assertEqual(len(clauses), 45)
        self.assertTrue(all(len(c) == 3 for c in clauses))
        self.assertEqual({abs(lit) for c in clauses for lit in c}, set(range(1, 11)))

    def test_uniform_clauses_have_distinct_variables(self):
        clauses = generate_uniform_problem(6, 30, 3)
        for clause in clauses:
            self.assertEqual(len({abs(lit) for lit in clause}), 3)
            self.assertTrue(all(1 <= abs(lit) <= 6 for lit in clause))

    def test_uniform_rejects_wide_clauses(self):
        with self.assertRaises(ValueError):
            generate_uniform_problem(2, 5, 3)

    def test_bucket_roundtrip(self):
        self.assertEqual(to_dimacs_like_format([[1, -3], [2]]), "1 -3 0 2 0")
        with tempfile.TemporaryDirectory() as tmp, redirect_stderr(io.StringIO()):
            path = write_bucket(5, 8, 4, 4.0, 4.5, 3, Path(tmp), mode="uniform")
            lines = read_sat_problems_lines(str(path))
        self.assertEqual(path.name, "rand_5_8.txt")
        self.assertEqual(len(lines), 4)
        for line in lines:
            self.assertTrue(line.endswith(" 0"))


class TestExtractTrace(unittest.TestCase):
    def test_record(self):
        record = _solve_and_trace("1 2 0 -1 -2 0 2 3 0\n")
        self.assertEqual(record["verdict"], "SAT")
        self.assertEqual(record["n_v"], 3)
        self.assertEqual(record["n_c"], 3)
        self.assertEqual(record["decisions"], 1)
        # 3 is pure at level 0, deciding 1 then forces -2
        self.assertEqual(record["trace"], "P 3 D 1 L 1 A -2")

    def test_record_keeps_decision_levels(self):
        record = _solve_and_trace("1 2 0 -1 -2 0 2 3 0 -2 -3 0")
        self.assertEqual(record["verdict"], "SAT")
        self.assertEqual(record["decisions"], 1)
        self.assertEqual(record["trace"], "D 1 L 1 A -2 A 3")

    def test_unsat_record(self):
        record = _solve_and_trace("1 0 -1 0")
        self.assertEqual(record["verdict"], "UNSAT")
        self.assertEqual(record["decisions"], 0)


class TestRunDpll(unittest.TestCase):
    def run_cli(self, clauses, *extra):
        with tempfile.TemporaryDirectory() as tmp:
            cnf_path = os.path.join(tmp, "problem.cnf")
            out_path = os.path.join(tmp, "result.txt")
            write_temp_cnf_file(CNF(from_clauses=clauses), cnf_path)
            with redirect_stdout(io.StringIO()):
                code = run_dpll_main(["-i", cnf_path, "-o", out_path, "-v", "0", *extra])
            with open(out_path) as f:
                return code, f.read().splitlines()

    def test_sat(self):
        code, lines = self.run_cli([[1, 2], [-1], [2, 3]])
        self.assertEqual(code, 10)
        self.assertEqual(lines[0], "SAT")
        model = [int(tok) for tok in lines[1].split()]
        self.assertEqual(model[-1], 0)
        self.assertIn(-1, model)
        self.assertIn(2, model)

    def test_unsat(self):
        code, lines = self.run_cli([[1, 2], [1, -2], [-1, 2], [-1, -2]], "--no-pure")
        self.assertEqual(code, 20)
        self.assertEqual(lines, ["UNSAT"])

    def test_budget_exhausted(self):
        code, lines = self.run_cli([[1, 2], [-1, -2]], "--decision-budget", "0")
        self.assertEqual(code, 0)
        self.assertEqual(lines, ["INDET"])

    def test_missing_input(self):
        with redirect_stdout(io.StringIO()), redirect_stderr(io.StringIO()) as err:
            code = run_dpll_main(["-i", "/nonexistent/problem.cnf", "-v", "0"])
        self.assertEqual(code, 1)
        self.assertIn("PARSE ERROR", err.getvalue())


if __name__ == '__main__':
    unittest.main()
