# *************************************************************************
# SPDX-License-Identifier: Apache-2.0
# Licensed under the Apache License, Version 2.0.
# See the LICENSE file in the project root for the full license text.
# *************************************************************************
"""
Unit tests for the trail, the watch index, propagation, pure literal
elimination and backtracking.
"""
import unittest

from py_dpll.dpll import CRef, DPLLSolver, Lbool, Trail, build, lit_from_dimacs, var
from py_dpll.errors import AlreadyAssigned


def L(number: int) -> int:
    return lit_from_dimacs(number)


def make_solver(clauses, pure=True):
    solver = DPLLSolver(build(clauses))
    solver.pure = pure
    solver.rebuildOrderHeap()
    return solver


class TestTrail(unittest.TestCase):
    def setUp(self):
        self.trail = Trail(4)

    def test_assign_and_value(self):
        self.assertEqual(self.trail.value_of(0), Lbool.UNDEF)
        self.assertTrue(self.trail.assign(0, True))
        self.assertTrue(self.trail.enqueue(L(-2), 7))
        self.assertEqual(self.trail.value_of(0), Lbool.TRUE)
        self.assertEqual(self.trail.value_of(1), Lbool.FALSE)
        self.assertEqual(self.trail.value_lit(L(-1)), Lbool.FALSE)
        self.assertEqual(self.trail.value_lit(L(-2)), Lbool.TRUE)
        self.assertEqual(self.trail.value_lit(L(3)), Lbool.UNDEF)
        self.assertEqual(self.trail.reason(1), 7)
        self.assertEqual(self.trail.trail, [L(1), L(-2)])

    def test_redundant_assign_is_noop(self):
        self.trail.assign(2, False)
        self.assertFalse(self.trail.assign(2, False, CRef.PURE))
        self.assertEqual(self.trail.nAssigns(), 1)
        self.assertEqual(self.trail.reason(2), CRef.UNDEF)

    def test_conflicting_assign_raises(self):
        self.trail.assign(2, False)
        with self.assertRaises(AlreadyAssigned):
            self.trail.assign(2, True)

    def test_levels_and_undo(self):
        self.trail.enqueue(L(1))
        self.trail.push_decision_marker()
        self.trail.enqueue(L(2))
        self.trail.enqueue(L(-3), 0)
        self.trail.push_decision_marker()
        self.trail.enqueue(L(4))
        self.assertEqual(self.trail.current_level(), 2)
        self.assertEqual(self.trail.level(2), 1)
        self.trail.qhead = self.trail.nAssigns()

        removed = self.trail.undo_to(0)

        self.assertEqual(removed, [L(4), L(-3), L(2)])
        self.assertEqual(self.trail.current_level(), 0)
        self.assertEqual(self.trail.trail, [L(1)])
        self.assertEqual(self.trail.qhead, 1)
        for x in (1, 2, 3):
            self.assertEqual(self.trail.value_of(x), Lbool.UNDEF)
        self.assertEqual(self.trail.value_of(0), Lbool.TRUE)

    def test_undo_to_current_level_is_noop(self):
        self.trail.push_decision_marker()
        self.trail.enqueue(L(1))
        self.assertEqual(self.trail.undo_to(1), [])
        self.assertEqual(self.trail.nAssigns(), 1)

    def test_undo_restores_earlier_state(self):
        self.trail.enqueue(L(1))
        snapshot = list(self.trail.assigns)
        self.trail.push_decision_marker()
        self.trail.enqueue(L(2))
        self.trail.enqueue(L(3))
        self.trail.undo_to(0)
        self.assertEqual(self.trail.assigns, snapshot)


class TestWatches(unittest.TestCase):
    def test_register(self):
        solver = make_solver([[1, 2, 3], [-4]])
        watches = solver.watches
        self.assertEqual([w.cref for w in watches[L(-1)]], [0])
        self.assertEqual([w.cref for w in watches[L(-2)]], [0])
        self.assertEqual(watches[L(-3)], [])
        self.assertEqual([w.cref for w in watches[L(4)]], [1])

    def test_watch_moves_to_unassigned_literal(self):
        solver = make_solver([[1, 2, 3]])
        trail, watches = solver.trail, solver.watches
        trail.enqueue(L(-1))

        confl = watches.on_literal_true(L(-1), trail)

        self.assertEqual(confl, CRef.UNDEF)
        self.assertEqual(solver.ca[0].watched_literals(), (L(3), L(2)))
        self.assertEqual(watches[L(-1)], [])
        self.assertEqual([w.cref for w in watches[L(-3)]], [0])
        self.assertEqual(trail.nAssigns(), 1)

    def test_unit_clause_is_enqueued(self):
        solver = make_solver([[1, 2, 3]])
        trail, watches = solver.trail, solver.watches
        trail.enqueue(L(-1))
        watches.on_literal_true(L(-1), trail)
        trail.enqueue(L(-3))

        confl = watches.on_literal_true(L(-3), trail)

        self.assertEqual(confl, CRef.UNDEF)
        self.assertEqual(trail.value_lit(L(2)), Lbool.TRUE)
        self.assertEqual(trail.reason(var(L(2))), 0)

    def test_conflict_when_all_literals_false(self):
        solver = make_solver([[1, 2], [1, 3]])
        trail, watches = solver.trail, solver.watches
        trail.enqueue(L(-2))
        trail.enqueue(L(-1))

        confl = watches.on_literal_true(L(-1), trail)

        self.assertEqual(confl, 0)
        # the remaining watcher is kept even though the scan stopped early
        self.assertEqual(len(watches[L(-1)]), 2)

    def test_satisfied_clause_keeps_watching(self):
        solver = make_solver([[1, 2, 3]])
        trail, watches = solver.trail, solver.watches
        trail.enqueue(L(3))
        trail.enqueue(L(-1))

        confl = watches.on_literal_true(L(-1), trail)

        self.assertEqual(confl, CRef.UNDEF)
        self.assertEqual(solver.ca[0].watched_literals(), (L(1), L(2)))
        self.assertEqual([(w.cref, w.blocker) for w in watches[L(-1)]], [(0, L(3))])
        self.assertEqual(watches[L(-3)], [])
        self.assertEqual(trail.nAssigns(), 2)

    def test_satisfied_clause_becomes_unit_after_backtrack(self):
        solver = make_solver([[1, 2, 3]])
        trail, watches = solver.trail, solver.watches
        trail.push_decision_marker()
        trail.enqueue(L(3))
        trail.enqueue(L(-1))
        watches.on_literal_true(L(-1), trail)
        trail.undo_to(0)

        trail.enqueue(L(-3))
        trail.enqueue(L(-1))
        self.assertEqual(watches.on_literal_true(L(-3), trail), CRef.UNDEF)
        self.assertEqual(watches.on_literal_true(L(-1), trail), CRef.UNDEF)

        self.assertEqual(trail.value_lit(L(2)), Lbool.TRUE)
        self.assertEqual(trail.reason(var(L(2))), 0)

    def test_duplicate_literals(self):
        solver = make_solver([[1, 1, 2]])
        trail = solver.trail
        solver.trail.enqueue(L(-1))

        self.assertEqual(solver.propagate(), CRef.UNDEF)
        self.assertEqual(trail.value_lit(L(2)), Lbool.TRUE)


class TestPropagation(unittest.TestCase):
    def test_chain_saturates(self):
        solver = make_solver([[-1, 2], [-2, 3], [-3, 4]])
        solver.trail.push_decision_marker()
        solver.trail.enqueue(L(1))

        confl = solver.propagate()

        self.assertEqual(confl, CRef.UNDEF)
        self.assertEqual(solver.trail.trail, [L(1), L(2), L(3), L(4)])
        self.assertEqual([solver.trail.reason(x) for x in (1, 2, 3)], [0, 1, 2])
        self.assertEqual([solver.trail.level(x) for x in range(4)], [1, 1, 1, 1])
        self.assertEqual(solver.propagations, 4)
        self.assertEqual(solver.trail.qhead, solver.trail.nAssigns())

    def test_conflict_is_reported(self):
        solver = make_solver([[-1, 2], [-1, -2]])
        solver.trail.push_decision_marker()
        solver.trail.enqueue(L(1))

        self.assertNotEqual(solver.propagate(), CRef.UNDEF)
        self.assertEqual(solver.trail.qhead, solver.trail.nAssigns())

    def test_unit_clauses_at_level_zero(self):
        solver = make_solver([[1], [-1, 2]])
        self.assertTrue(solver.enqueueUnits())
        self.assertEqual(solver.propagate(), CRef.UNDEF)
        self.assertEqual(solver.trail.value_lit(L(2)), Lbool.TRUE)

    def test_contradicting_units(self):
        solver = make_solver([[1], [-1]])
        self.assertFalse(solver.enqueueUnits())


class TestPureLiterals(unittest.TestCase):
    def test_single_polarity_is_assigned(self):
        solver = make_solver([[1, 2], [1, -2]])

        self.assertEqual(solver.find_and_assign_pure_literals(), 1)

        self.assertEqual(solver.trail.value_lit(L(1)), Lbool.TRUE)
        self.assertEqual(solver.trail.reason(0), CRef.PURE)
        self.assertEqual(solver.trail.value_of(1), Lbool.UNDEF)

    def test_satisfied_clauses_are_ignored(self):
        solver = make_solver([[1, -2], [2, 3], [-1, 3]])
        solver.trail.enqueue(L(1))

        # [1, -2] is satisfied, so 2 only occurs positively
        self.assertEqual(solver.find_and_assign_pure_literals(), 2)
        self.assertEqual(solver.trail.value_lit(L(2)), Lbool.TRUE)
        self.assertEqual(solver.trail.value_lit(L(3)), Lbool.TRUE)

    def test_both_polarities_are_not_pure(self):
        solver = make_solver([[1, 2], [-1, -2]])
        self.assertEqual(solver.find_and_assign_pure_literals(), 0)
        self.assertEqual(solver.trail.nAssigns(), 0)

    def test_second_pass_finds_new_pure_literal(self):
        # 1 is pure; it satisfies [1, -2], leaving 2 positive only
        solver = make_solver([[1, -2], [2, 3], [-3, 2]])

        self.assertEqual(solver.find_and_assign_pure_literals(), 2)

        self.assertEqual(solver.trail.value_lit(L(1)), Lbool.TRUE)
        self.assertEqual(solver.trail.value_lit(L(2)), Lbool.TRUE)
        self.assertEqual(solver.trail.value_of(2), Lbool.UNDEF)


class TestBacktracking(unittest.TestCase):
    def test_flips_decision_once(self):
        solver = make_solver([[1, 2], [1, -2]], pure=False)
        solver.phase = False
        solver.record_trace = True

        status = solver.solve_()

        self.assertEqual(status, Lbool.TRUE)
        self.assertEqual(solver.model, {1: True, 2: False})
        self.assertEqual(solver.conflicts, 1)
        self.assertEqual(solver.decisions, 2)
        self.assertEqual(solver.trace_events, [("BT", 1, 1), ("D", -2, 2)])

    def test_exhausted_levels_unwind(self):
        solver = make_solver([[1, 2], [1, -2], [-1, 2], [-1, -2]], pure=False)
        solver.record_trace = True

        self.assertEqual(solver.solve_(), Lbool.FALSE)
        self.assertEqual(solver.decisions, 1)
        self.assertEqual(solver.conflicts, 2)
        self.assertEqual(solver.frames, [])
        self.assertEqual(solver.decisionLevel(), 0)
        self.assertEqual(solver.trace_events[0], ("BT", -1, 1))

    def test_trace_kept_after_solve(self):
        solver = make_solver([[1, 2], [-1, -2], [2, 3], [-2, -3]], pure=False)
        solver.record_trace = True

        self.assertEqual(solver.solve_(), Lbool.TRUE)

        self.assertEqual(solver.decisionLevel(), 0)
        self.assertEqual(solver.trace_events, [("D", 1, 1), ("A", -2, 1), ("A", 3, 1)])

    def test_frames_track_levels(self):
        solver = make_solver([[1, 2, 3], [-1, -2, 3], [1, -3]], pure=False)
        solver.decision_budget = 2

        self.assertEqual(solver.search(), Lbool.UNDEF)
        self.assertEqual(len(solver.frames), solver.decisionLevel())
        for level, frame in enumerate(solver.frames):
            self.assertEqual(solver.trail.trail_lim[level], frame.trail_size)


if __name__ == '__main__':
    unittest.main()
