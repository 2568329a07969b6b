# *************************************************************************
# SPDX-License-Identifier: Apache-2.0
# Licensed under the Apache License, Version 2.0.
# See the LICENSE file in the project root for the full license text.
# *************************************************************************
"""
Solve a DIMACS CNF file with the python DPLL solver.

Example:
    python -m py_dpll.run_dpll -i ./dataset/example.cnf -o -

Exit codes follow Minisat: 10 SAT, 20 UNSAT, 0 undecided.
"""
import sys
import time
import psutil
import argparse

from pysat.formula import CNF

from py_dpll.dpll import DPLLSolver, Lbool, Verdict
from py_dpll.errors import InvalidLiteral
from utils.utils import formula_from_cnf


def print_stats(S, start_time):
    cpu_time = time.process_time() - start_time

    process = psutil.Process()
    mem_used = process.memory_info().rss / (1024 * 1024)  # in MB

    decisions_per_sec = S.decisions / cpu_time if cpu_time > 0 else 0
    propagations_per_sec = S.propagations / cpu_time if cpu_time > 0 else 0

    print("decisions             : {:<14} ({:.0f} /sec)".format(S.decisions, decisions_per_sec))
    print("conflicts             : {:<14}".format(S.conflicts))
    print("propagations          : {:<14} ({:.0f} /sec)".format(S.propagations, propagations_per_sec))
    print("pure literals         : {:<14}".format(S.pure_literals))
    print("max decision level    : {:<14}".format(S.max_level))
    print("Memory used           : {:.2f} MB".format(mem_used))
    print("CPU time              : {:.3f} s".format(cpu_time))


def write_result(output_file: str, verdict: Verdict):
    """Write SAT/UNSAT/INDET and, for SAT, the model as one DIMACS line."""
    if verdict.is_sat:
        text = "SAT\n" + " ".join(str(lit) for lit in verdict.to_dimacs() + [0]) + "\n"
    elif verdict.is_unsat:
        text = "UNSAT\n"
    else:
        text = "INDET\n"

    if output_file == '-':
        sys.stdout.write(text)
    else:
        with open(output_file, 'w') as rf:
            rf.write(text)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Solve a DIMACS CNF with the python DPLL solver."
    )
    parser.add_argument(
        "-i", "--input_file",
        required=True,
        help="Path to input CNF file (.cnf or .cnf.gz)."
    )
    parser.add_argument(
        "-o", "--output_file",
        default=None,
        help="Path to write result (SAT/UNSAT + model). Use '-' for stdout."
    )
    parser.add_argument(
        "--no-pure", action="store_true",
        help="Disable pure literal elimination."
    )
    parser.add_argument(
        "--branching", type=int, default=0, choices=(0, 1),
        help="0: lowest variable index first, 1: most occurrences first."
    )
    parser.add_argument(
        "--decision-budget", type=int, default=-1,
        help="Stop undecided after this many decisions (-1: unlimited)."
    )
    parser.add_argument("-v", "--verbosity", type=int, default=1)
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    start_time = time.process_time()

    try:
        formula = formula_from_cnf(CNF(from_file=args.input_file))
    except (OSError, ValueError) as e:
        # InvalidLiteral is a ValueError too
        kind = "invalid literal" if isinstance(e, InvalidLiteral) else "cannot read input"
        print("PARSE ERROR! {}: {}".format(kind, e), file=sys.stderr)
        return 1

    S = DPLLSolver(formula)
    S.verbosity = args.verbosity
    S.pure = not args.no_pure
    S.branching = args.branching
    S.decision_budget = args.decision_budget

    result = S.solve_()
    verdict = Verdict(result, S.model)

    if args.verbosity >= 1:
        print_stats(S, start_time)

    if result == Lbool.TRUE:
        print("SATISFIABLE")
        code = 10
    elif result == Lbool.FALSE:
        print("UNSATISFIABLE")
        code = 20
    else:
        print("INDETERMINATE")
        code = 0

    if args.output_file:
        write_result(args.output_file, verdict)
    return code


if __name__ == "__main__":
    sys.exit(main())
