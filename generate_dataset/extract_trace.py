# *************************************************************************
# SPDX-License-Identifier: Apache-2.0
# Licensed under the Apache License, Version 2.0.
# See the LICENSE file in the project root for the full license text.
# *************************************************************************
"""
Solve bucketed CNFs with the DPLL solver and write gzip-compressed JSONL.

Example:
    python -m generate_dataset.extract_trace \
        --raw-dir ./dataset/train_raw/ \
        --out-dir ./dataset/train/

Output JSONL (gzip):
    {"cnf":"...","n_v":18,"n_c":74,"verdict":"SAT","decisions":7,"conflicts":3,"trace":"D 1 L 1 A 9 ..."}
"""
import argparse
import gzip
import json
import sys
from multiprocessing import Pool, cpu_count
from pathlib import Path
from typing import Dict

from tqdm import tqdm
from pysat.formula import CNF

from py_dpll.dpll import DPLLSolver, Lbool
from utils.trace_utils import convert_trace_to_str
from utils.utils import cnf_line_2_CNF_class, formula_from_cnf

VERDICT_NAMES = {Lbool.TRUE: "SAT", Lbool.FALSE: "UNSAT", Lbool.UNDEF: "INDET"}


def _solve_and_trace(dimacs_line: str, decision_budget: int = -1) -> Dict:
    """
    Solve one CNF line and extract its search trace.

    Args:
        dimacs_line: One-line DIMACS-lite CNF.
        decision_budget: Decisions allowed before giving up (-1: unlimited).

    Returns:
        Record dict with fields: cnf (full DIMACS), n_v, n_c, verdict, decisions, conflicts, trace.
    """
    cnf_obj = cnf_line_2_CNF_class(dimacs_line)

    solver = DPLLSolver(formula_from_cnf(cnf_obj))
    solver.record_trace = True
    solver.decision_budget = decision_budget
    status = solver.solve_()

    cnf_obj = CNF(from_clauses=cnf_obj.clauses)

    return {
        "cnf": cnf_obj.to_dimacs(),
        "n_v": cnf_obj.nv,
        "n_c": len(cnf_obj.clauses),
        "verdict": VERDICT_NAMES[status],
        "decisions": solver.decisions,
        "conflicts": solver.conflicts,
        "trace": convert_trace_to_str(solver.trace_events),
    }


def _process_one_file(raw_path: Path, out_path: Path, workers: int) -> None:
    """
    Process one .txt bucket into a .jsonl.gz of trace records.

    Args:
        raw_path: Path to input .txt (one CNF per line).
        out_path: Destination .jsonl.gz path.
        workers: Solver processes to use in the pool.
    """
    out_path.parent.mkdir(parents=True, exist_ok=True)

    with raw_path.open() as fh:
        lines = [line for line in fh if line.strip()]

    with Pool(processes=workers) as pool, \
            gzip.open(out_path, "wt") as gz_out:
        for rec in tqdm(pool.imap_unordered(_solve_and_trace, lines, 128),
                        total=len(lines),
                        desc=f"[{raw_path.name}]"):
            gz_out.write(json.dumps(rec, separators=(",", ":")) + "\n")


def parse_args() -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Batch DPLL trace extractor")
    ap.add_argument("--raw-dir", default='../dataset/train_raw/',
                    help="root directory that contains *.txt buckets")
    ap.add_argument("--out-dir", default=None,
                    help="root for *.jsonl.gz (default: alongside raw file)")
    ap.add_argument("--glob", default="**/*.txt",
                    help="glob relative to --raw-dir (default: **/*.txt)")
    ap.add_argument("--workers", type=int, default=max(1, cpu_count() // 4),
                    help="Solver processes per file.")
    return ap.parse_args()


def main() -> None:
    args = parse_args()
    raw_root = Path(args.raw_dir).resolve()
    out_root = Path(args.out_dir).resolve() if args.out_dir else raw_root

    txt_files = sorted(raw_root.glob(args.glob))
    if not txt_files:
        print("No matching .txt files found.", file=sys.stderr)
        sys.exit(1)

    for raw_path in txt_files:
        rel = raw_path.relative_to(raw_root).with_suffix(".jsonl.gz")
        out_path = out_root / rel
        if out_path.exists():
            print(f"[skip] {out_path} already exists")
            continue

        print(f"-> {rel}")
        _process_one_file(raw_path, out_path, args.workers)


if __name__ == "__main__":
    main()
