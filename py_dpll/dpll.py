# *************************************************************************
# SPDX-License-Identifier: Apache-2.0
# Licensed under the Apache License, Version 2.0.
# See the LICENSE file in the project root for the full license text.
# *************************************************************************
"""
Python DPLL Implementation.

Classic Davis-Putnam-Logemann-Loveland search over CNF formulas: unit
propagation on two watched literals, pure literal elimination, and
chronological backtracking driven by an explicit stack of decision frames.

Literals are packed ints `var << 1 | sign`, where `var` is the 0-based
variable index and `sign` is 1 for a negated literal. Outside the solver,
variables and literals are DIMACS integers (1-based, the sign encodes the
polarity).
"""
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple

from py_dpll.errors import AlreadyAssigned, EmptyClause, InvalidLiteral


# lbool constants as an enum-like structure, same layout as Minisat:
# l_True = 0, l_False = 1, l_Undef = 2
class Lbool:
    TRUE = 0
    FALSE = 1
    UNDEF = 2


def lbool(val: Optional[bool]) -> int:
    if val is True:
        return Lbool.TRUE
    if val is False:
        return Lbool.FALSE
    return Lbool.UNDEF


def sign(lit) -> bool:
    return lit & 1 == 1


def var(lit) -> int:
    return lit >> 1


def mkLit(var_index: int, sign_bit: bool) -> int:
    return (var_index << 1) + (1 if sign_bit else 0)


def is_positive(lit) -> bool:
    return lit & 1 == 0


def complement(lit) -> int:
    return lit ^ 1


def lit_from_dimacs(number: int) -> int:
    """
    Encode a DIMACS literal.

    Args:
        number (int): Non-zero signed variable number, e.g. -3 for "not x3".

    Returns:
        int: The packed literal.

    Raises:
        InvalidLiteral: If `number` is zero.
    """
    number = int(number)
    if number == 0:
        raise InvalidLiteral(number)
    return mkLit(abs(number) - 1, number < 0)


def lit_to_dimacs(lit: int) -> int:
    v = var(lit) + 1
    return -v if sign(lit) else v


def var_to_dimacs(v: int) -> int:
    return v + 1


# Clause reference, an index into the ClauseAllocator.
# Negative values double as assignment reasons that are not clauses.
class CRef:
    UNDEF = -1  # decision, or no conflict
    PURE = -2   # pure literal


# Options, simplified
class IntOption:
    def __init__(self, category, name, desc, default, irange):
        self.value = default


class BoolOption:
    def __init__(self, category, name, desc, default):
        self.value = default


class VarData:
    def __init__(self, reason: int, level: int):
        self.reason = reason  # Reference to a clause, CRef.UNDEF or CRef.PURE
        self.level = level  # Decision level


class Clause:
    """
    An ordered, non-empty disjunction of packed literals.

    `watch` holds the positions (not the literals) currently watched: two
    distinct positions for clauses of size >= 2, the single position 0 for
    a unit clause. Only the watch positions move; `lits` never changes.
    """

    def __init__(self, literals: Sequence[int]):
        if len(literals) == 0:
            raise EmptyClause()
        self.lits = tuple(literals)
        self.watch = [0, 1] if len(self.lits) > 1 else [0]

    def size(self) -> int:
        return len(self.lits)

    def __getitem__(self, i: int) -> int:
        return self.lits[i]

    def literals(self) -> Tuple[int, ...]:
        return self.lits

    def watched_literals(self) -> Tuple[int, ...]:
        return tuple(self.lits[i] for i in self.watch)

    def replace_watch(self, old_position: int, new_position: int):
        if new_position in self.watch:
            raise ValueError(f"position {new_position} is already watched")
        self.watch[self.watch.index(old_position)] = new_position

    def copy(self) -> 'Clause':
        """Same literals, fresh watch positions."""
        return Clause(self.lits)

    def to_dimacs(self) -> List[int]:
        return [lit_to_dimacs(lit) for lit in self.lits]

    def evaluate(self, assignment: Dict[int, bool]) -> Optional[bool]:
        """
        Evaluate under a partial assignment keyed by DIMACS variable.

        Returns None when no literal is true and some literal is unassigned.
        """
        decided = True
        for lit in self.lits:
            value = assignment.get(var(lit) + 1)
            if value is None:
                decided = False
            elif value == is_positive(lit):
                return True
        return False if decided else None

    def __repr__(self) -> str:
        return f"Clause({self.to_dimacs()})"


class Formula:
    """
    A CNF formula: clauses in insertion order plus the variables they mention.

    Clauses are only ever added. A formula that received an empty clause is
    kept with `ok = False` and is unsatisfiable without search.
    """

    def __init__(self):
        self._clauses: List[Clause] = []
        self._variables = set()
        self._num_vars = 0
        self.ok = True

    def add_clause(self, literals: Iterable[int]) -> None:
        """
        Add a clause given as DIMACS literals.

        Raises:
            InvalidLiteral: If a literal is zero. The formula is left unchanged.
        """
        lits = [lit_from_dimacs(number) for number in literals]
        if not lits:
            self.ok = False
            return
        for lit in lits:
            v = var(lit) + 1
            self._variables.add(v)
            if v > self._num_vars:
                self._num_vars = v
        self._clauses.append(Clause(lits))

    def clauses(self) -> Tuple[Clause, ...]:
        return tuple(self._clauses)

    def variables(self) -> FrozenSet[int]:
        return frozenset(self._variables)

    def nVars(self) -> int:
        """Largest DIMACS variable mentioned, i.e. the size of the 0-based index range."""
        return self._num_vars

    def nClauses(self) -> int:
        return len(self._clauses)

    def evaluate(self, assignment: Dict[int, bool]) -> Optional[bool]:
        """
        Evaluate under a partial assignment keyed by DIMACS variable.

        Returns:
            True if every clause is satisfied, False if some clause is
            falsified, None if that cannot be decided yet.
        """
        if not self.ok:
            return False
        decided = True
        for clause in self._clauses:
            result = clause.evaluate(assignment)
            if result is False:
                return False
            if result is None:
                decided = False
        return True if decided else None

    def __repr__(self) -> str:
        return f"Formula(vars={len(self._variables)}, clauses={len(self._clauses)}, ok={self.ok})"


def build(clauses: Iterable[Iterable[int]]) -> Formula:
    """
    Build a formula from clauses of DIMACS literals, e.g. [[1, -2], [2]].

    Raises:
        InvalidLiteral: If any literal is zero.
    """
    formula = Formula()
    for literals in clauses:
        formula.add_clause(literals)
    return formula


class ClauseAllocator:
    """Per-solve clause database. Clause references are list indices."""

    def __init__(self):
        self.db: List[Clause] = []

    def alloc(self, clause: Clause) -> int:
        cref = len(self.db)
        self.db.append(clause.copy())
        return cref

    def __getitem__(self, cr: int) -> Clause:
        if cr < 0 or cr >= len(self.db):
            raise ValueError(f"Invalid cref {cr} in ClauseAllocator.")
        return self.db[cr]

    def size(self):
        return len(self.db)


class Trail:
    """
    Partial assignment recorded as an ordered trail of literals.

    `trail_lim[l]` is the trail length when decision level l + 1 was opened,
    so undoing to a level is a truncation. The unprocessed suffix
    `trail[qhead:]` is the propagation queue.
    """

    def __init__(self, num_vars: int):
        self.assigns = [Lbool.UNDEF] * num_vars
        self.vardata = [VarData(CRef.UNDEF, 0) for _ in range(num_vars)]
        self.trail: List[int] = []
        self.trail_lim: List[int] = []
        self.qhead = 0

    def nAssigns(self) -> int:
        return len(self.trail)

    def nVars(self) -> int:
        return len(self.assigns)

    def value_of(self, x: int) -> int:
        return self.assigns[x]

    def value_lit(self, p: int) -> int:
        val = self.assigns[p >> 1]
        if val == Lbool.UNDEF:
            return Lbool.UNDEF
        return val ^ (p & 1)

    def level(self, x: int) -> int:
        return self.vardata[x].level

    def reason(self, x: int) -> int:
        return self.vardata[x].reason

    def current_level(self) -> int:
        return len(self.trail_lim)

    def push_decision_marker(self):
        self.trail_lim.append(len(self.trail))

    def assign(self, x: int, value: bool, reason: int = CRef.UNDEF) -> bool:
        """
        Assign variable `x` at the current decision level.

        Returns:
            bool: False if `x` already held `value` (nothing recorded).

        Raises:
            AlreadyAssigned: If `x` holds the opposite value.
        """
        current = self.assigns[x]
        if current != Lbool.UNDEF:
            if current == lbool(value):
                return False
            raise AlreadyAssigned(x, value)
        self.assigns[x] = lbool(value)
        self.vardata[x] = VarData(reason, self.current_level())
        self.trail.append(mkLit(x, not value))
        return True

    def enqueue(self, p: int, from_: int = CRef.UNDEF) -> bool:
        """Make literal `p` true, see `assign`."""
        return self.assign(var(p), not sign(p), from_)

    def undo_to(self, level: int) -> List[int]:
        """
        Remove every entry above decision level `level`.

        Returns:
            List[int]: The removed literals, most recent first.
        """
        if self.current_level() <= level:
            return []
        lim = self.trail_lim[level]
        removed = []
        for c in range(len(self.trail) - 1, lim - 1, -1):
            p = self.trail[c]
            self.assigns[var(p)] = Lbool.UNDEF
            removed.append(p)
        del self.trail[lim:]
        del self.trail_lim[level:]
        self.qhead = lim
        return removed


class Watcher:
    def __init__(self, cref: int, blocker: int):
        self.cref = cref
        self.blocker = blocker


class Watches:
    """
    Watch index: `table[p]` lists the clauses watching `~p`, i.e. the clauses
    to revisit once `p` becomes true.
    """

    def __init__(self, ca: ClauseAllocator):
        self.table = {}
        self.ca = ca

    def __getitem__(self, lit: int) -> List[Watcher]:
        if lit not in self.table:
            self.table[lit] = []
        return self.table[lit]

    def register(self, cr: int):
        c = self.ca[cr]
        if c.size() == 1:
            self[c[0] ^ 1].append(Watcher(cr, c[0]))
            return
        a, b = c.watched_literals()
        self[a ^ 1].append(Watcher(cr, b))
        self[b ^ 1].append(Watcher(cr, a))

    def on_literal_true(self, p: int, trail: Trail) -> int:
        """
        Visit every clause watching `~p` after `p` became true.

        A clause already satisfied by a non-watched literal is left in place
        with that literal as blocker. Otherwise a clause with an unassigned
        non-watched literal moves its watch there, and a clause whose other
        watched literal is the only one left unassigned enqueues it on the
        trail with the clause as reason.

        Returns:
            int: The first clause found with every literal false, or CRef.UNDEF.
        """
        confl = CRef.UNDEF
        false_lit = p ^ 1
        ws = self[p]
        i = 0
        j = 0
        end = len(ws)
        while i < end:
            w = ws[i]
            i += 1
            if trail.value_lit(w.blocker) == Lbool.TRUE:
                ws[j] = w
                j += 1
                continue
            cr = w.cref
            c = self.ca[cr]
            if c.size() == 1:
                first = c[0]
                w2 = w
            else:
                w0, w1 = c.watch
                if c[w0] == false_lit:
                    false_pos, first_pos = w0, w1
                else:
                    false_pos, first_pos = w1, w0
                assert c[false_pos] == false_lit
                first = c[first_pos]
                w2 = Watcher(cr, first)
                if first != w.blocker and trail.value_lit(first) == Lbool.TRUE:
                    ws[j] = w2
                    j += 1
                    continue
                true_pos = -1
                new_pos = -1
                for k in range(c.size()):
                    if k == false_pos or k == first_pos:
                        continue
                    val = trail.value_lit(c[k])
                    if val == Lbool.TRUE:
                        true_pos = k
                        break
                    if val == Lbool.UNDEF and new_pos == -1:
                        new_pos = k
                if true_pos != -1:
                    # satisfied: keep watching ~p, skip on the next visit
                    ws[j] = Watcher(cr, c[true_pos])
                    j += 1
                    continue
                if new_pos != -1:
                    c.replace_watch(false_pos, new_pos)
                    self[c[new_pos] ^ 1].append(w2)
                    continue
            ws[j] = w2
            j += 1
            if trail.value_lit(first) == Lbool.FALSE:
                confl = cr
                while i < end:
                    ws[j] = ws[i]
                    j += 1
                    i += 1
            else:
                trail.enqueue(first, cr)
        del ws[j:]
        return confl


class VarOrderLt:
    def __init__(self, key):
        self.key = key

    def __call__(self, x, y):
        return (self.key[x], x) < (self.key[y], y)


class Heap:
    def __init__(self, comp):
        self.data = []
        self.comp = comp
        self.index = {}  # var -> position in heap, or -1 if not in heap

    def empty(self):
        return len(self.data) == 0

    def inHeap(self, x):
        return self.index.get(x, -1) != -1

    def percolateUp(self, i):
        x = self.data[i]
        while i > 0:
            p = (i - 1) // 2
            if self.comp(x, self.data[p]):
                self.data[i] = self.data[p]
                self.index[self.data[p]] = i
                i = p
            else:
                break
        self.data[i] = x
        self.index[x] = i

    def percolateDown(self, i):
        while True:
            l = 2 * i + 1
            r = 2 * i + 2
            best = i

            if l < len(self.data) and self.comp(self.data[l], self.data[best]):
                best = l
            if r < len(self.data) and self.comp(self.data[r], self.data[best]):
                best = r

            if best == i:
                break
            self.data[i], self.data[best] = self.data[best], self.data[i]
            self.index[self.data[i]] = i
            self.index[self.data[best]] = best
            i = best

    def removeMin(self):
        if self.empty():
            return -1
        root = self.data[0]
        last = self.data.pop()
        self.index[root] = -1
        if not self.empty():
            self.data[0] = last
            self.index[last] = 0
            self.percolateDown(0)
        return root

    def build(self, vs):
        self.data = vs[:]
        self.index = {v: i for i, v in enumerate(self.data)}
        for i in range((len(self.data) // 2) - 1, -1, -1):
            self.percolateDown(i)

    def insert(self, x):
        if self.inHeap(x):
            return
        self.data.append(x)
        i = len(self.data) - 1
        self.index[x] = i
        self.percolateUp(i)


class DecisionFrame:
    """One open decision level: the literal on trial and whether its complement was tried."""

    def __init__(self, lit: int, trail_size: int):
        self.lit = lit
        self.trail_size = trail_size
        self.alternate_tried = False


class Verdict:
    """Outcome of a solve: status is an Lbool, model maps DIMACS variables to values."""

    def __init__(self, status: int, model: Optional[Dict[int, bool]] = None):
        self.status = status
        self.model = model if model is not None else {}

    @property
    def is_sat(self) -> bool:
        return self.status == Lbool.TRUE

    @property
    def is_unsat(self) -> bool:
        return self.status == Lbool.FALSE

    @property
    def is_unknown(self) -> bool:
        return self.status == Lbool.UNDEF

    def to_dimacs(self) -> List[int]:
        return [v if value else -v for v, value in sorted(self.model.items())]

    def __repr__(self) -> str:
        if self.is_sat:
            return f"Verdict(SAT, {self.to_dimacs()})"
        return "Verdict(UNSAT)" if self.is_unsat else "Verdict(UNKNOWN)"


class DPLLSolver:
    """
    DPLL search over one formula.

    The trail and the watch index belong to this solver only; build a new
    solver for every independent solve.
    """

    def __init__(self, formula: Formula):
        _cat = "CORE"
        self.opt_pure = BoolOption(_cat, "pure", "Eliminate pure literals", True)
        self.opt_phase = BoolOption(_cat, "phase", "Polarity tried first at a decision", True)
        self.opt_branching = IntOption(_cat, "branching", "0 = lowest index, 1 = most occurrences", 0, (0, 1))

        self.verbosity = 0
        self.pure = self.opt_pure.value
        self.phase = self.opt_phase.value
        self.branching = self.opt_branching.value
        self.lit_Undef = -2
        self.var_Undef = -1

        self.decisions = 0
        self.propagations = 0
        self.conflicts = 0
        self.pure_literals = 0
        self.max_level = 0

        self.decision_budget = -1
        self.conflict_budget = -1
        self.asynch_interrupt = False

        self.record_trace = False
        self.trace_events = []

        self.formula = formula
        self.ok = formula.ok
        self.ca = ClauseAllocator()
        self.trail = Trail(formula.nVars())
        self.watches = Watches(self.ca)
        self.decision = [False] * formula.nVars()
        self.occurrences = [0] * formula.nVars()
        self.frames: List[DecisionFrame] = []
        self.order_heap = None
        self.model: Dict[int, bool] = {}

        for clause in formula.clauses():
            cr = self.ca.alloc(clause)
            self.watches.register(cr)
            for lit in clause.literals():
                self.decision[var(lit)] = True
                self.occurrences[var(lit)] += 1

    def nVars(self) -> int:
        return self.trail.nVars()

    def nClauses(self) -> int:
        return self.ca.size()

    def decisionLevel(self) -> int:
        return self.trail.current_level()

    def interrupt(self):
        self.asynch_interrupt = True

    def withinBudget(self) -> bool:
        if self.asynch_interrupt:
            return False
        if self.decision_budget >= 0 and self.decisions >= self.decision_budget:
            return False
        if self.conflict_budget >= 0 and self.conflicts >= self.conflict_budget:
            return False
        return True

    def rebuildOrderHeap(self):
        if self.branching == 0:
            key = [0] * self.nVars()
        elif self.branching == 1:
            key = [-n for n in self.occurrences]
        else:
            raise ValueError(f"Unknown branching mode {self.branching}")
        self.order_heap = Heap(VarOrderLt(key))
        vs = [v for v in range(self.nVars())
              if self.decision[v] and self.trail.value_of(v) == Lbool.UNDEF]
        self.order_heap.build(vs)

    def insertVarOrder(self, x: int):
        if self.order_heap is not None and self.decision[x]:
            self.order_heap.insert(x)

    def cancel_until(self, level: int):
        for p in self.trail.undo_to(level):
            self.insertVarOrder(var(p))

    def satisfied(self, c: Clause) -> bool:
        for lit in c.lits:
            if self.trail.value_lit(lit) == Lbool.TRUE:
                return True
        return False

    def enqueueUnits(self) -> bool:
        """Assign the literal of every unit clause at level 0. False on a contradiction."""
        assert self.decisionLevel() == 0
        for cr in range(self.ca.size()):
            c = self.ca[cr]
            if c.size() == 1:
                if self.trail.value_lit(c[0]) == Lbool.FALSE:
                    return False
                self.trail.enqueue(c[0], cr)
        return True

    def propagate(self) -> int:
        """
        Unit propagation to saturation over the queued trail suffix.

        Returns:
            int: A conflicting clause reference, or CRef.UNDEF.
        """
        confl = CRef.UNDEF
        trail = self.trail
        while trail.qhead < trail.nAssigns():
            p = trail.trail[trail.qhead]
            trail.qhead += 1
            self.propagations += 1
            if self.record_trace:
                self.recordAssignment(p)
            confl = self.watches.on_literal_true(p, trail)
            if confl != CRef.UNDEF:
                trail.qhead = trail.nAssigns()
                break
        return confl

    def find_and_assign_pure_literals(self) -> int:
        """
        Assign every unassigned variable that occurs in one polarity only
        among the clauses not yet satisfied. Repeats until a pass finds none.

        Returns:
            int: Number of literals assigned. They are queued for propagation.
        """
        assigned = 0
        while True:
            polarity = {}  # var -> sign bit, or 2 once both polarities were seen
            for c in self.ca.db:
                if self.satisfied(c):
                    continue
                for lit in c.lits:
                    x = var(lit)
                    if self.trail.value_of(x) != Lbool.UNDEF:
                        continue
                    seen = polarity.get(x)
                    if seen is None:
                        polarity[x] = lit & 1
                    elif seen != 2 and seen != lit & 1:
                        polarity[x] = 2
            pure = [mkLit(x, s) for x, s in polarity.items() if s != 2]
            if not pure:
                return assigned
            for p in pure:
                self.trail.enqueue(p, CRef.PURE)
            assigned += len(pure)
            self.pure_literals += len(pure)

    def saturate(self) -> int:
        while True:
            confl = self.propagate()
            if confl != CRef.UNDEF or not self.pure:
                return confl
            if self.find_and_assign_pure_literals() == 0:
                return CRef.UNDEF

    def pickBranchLit(self) -> int:
        next_ = self.var_Undef
        while next_ == self.var_Undef or self.trail.value_of(next_) != Lbool.UNDEF:
            if self.order_heap.empty():
                return self.lit_Undef
            next_ = self.order_heap.removeMin()
        return mkLit(next_, not self.phase)

    def decide(self, p: int):
        self.decisions += 1
        self.frames.append(DecisionFrame(p, self.trail.nAssigns()))
        self.trail.push_decision_marker()
        self.max_level = max(self.max_level, self.decisionLevel())
        self.trail.enqueue(p)
        self.recordEvent("D", p)

    def backtrack(self) -> bool:
        """
        Undo the most recent decision that still has an untried polarity and
        assert its complement at the same level.

        Returns:
            bool: False when no decision is left to flip.
        """
        while self.frames and self.frames[-1].alternate_tried:
            self.frames.pop()
        if not self.frames:
            return False
        frame = self.frames[-1]
        level = len(self.frames)
        self.cancel_until(level - 1)
        if self.record_trace:
            self.trace_events = [e for e in self.trace_events if e[2] < level]
        assert self.trail.nAssigns() == frame.trail_size
        frame.alternate_tried = True
        frame.lit ^= 1
        self.trail.push_decision_marker()
        self.trail.enqueue(frame.lit)
        self.recordEvent("BT", frame.lit)
        return True

    def recordEvent(self, kind: str, p: int):
        val = lit_to_dimacs(p)
        level = self.decisionLevel()
        if self.record_trace:
            self.trace_events.append((kind, val, level))
        if self.verbosity >= 2:
            print("{} {} L {} ".format(kind, val, level), end='')

    def recordAssignment(self, p: int):
        r = self.trail.reason(var(p))
        if r == CRef.UNDEF:
            return
        kind = "P" if r == CRef.PURE else "A"
        self.trace_events.append((kind, lit_to_dimacs(p), self.trail.level(var(p))))

    def search(self) -> int:
        while True:
            confl = self.saturate()
            if confl != CRef.UNDEF:
                self.conflicts += 1
                if not self.backtrack():
                    return Lbool.FALSE
                continue
            if not self.withinBudget():
                return Lbool.UNDEF
            next_ = self.pickBranchLit()
            if next_ == self.lit_Undef:
                return Lbool.TRUE
            self.decide(next_)

    def solve_(self) -> int:
        self.model = {}
        if not self.ok:
            return Lbool.FALSE
        self.rebuildOrderHeap()
        if self.verbosity >= 1:
            print("============================[ Search Statistics ]==============================")
            print("| Vars {:>10} | Clauses {:>10} | Pure elimination {:>5} | Branching {:>3} |".format(
                len(self.formula.variables()), self.nClauses(), str(self.pure), self.branching))
            print("===============================================================================")
        status = self.search() if self.enqueueUnits() else Lbool.FALSE
        if self.verbosity >= 1:
            print("\n| Decisions {:>10} | Conflicts {:>10} | Propagations {:>10} | Max level {:>6} |".format(
                self.decisions, self.conflicts, self.propagations, self.max_level))
            print("===============================================================================")
        if status == Lbool.TRUE:
            self.model = {
                var_to_dimacs(v): self.trail.value_of(v) == Lbool.TRUE
                for v in range(self.nVars()) if self.decision[v]
            }
        elif status == Lbool.FALSE:
            self.ok = False
        self.cancel_until(0)
        del self.frames[:]
        return status


def solve(formula: Formula, pure_literals: bool = True) -> Verdict:
    """
    Decide satisfiability of `formula`.

    Args:
        formula (Formula): The formula, as returned by `build`.
        pure_literals (bool): Whether to run pure literal elimination.

    Returns:
        Verdict: SAT with a model covering every variable of the formula, or UNSAT.
    """
    solver = DPLLSolver(formula)
    solver.pure = pure_literals
    status = solver.solve_()
    return Verdict(status, solver.model)
