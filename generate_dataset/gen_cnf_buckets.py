"""
Generate random k-SAT formulas in variable-count buckets and write each CNF on one line
(DIMACS-lite: integers with trailing 0 per clause).

Two modes:
    * planted: every clause is satisfied by a hidden random assignment, so the
      formula is satisfiable and every variable occurs at least once.
    * uniform: each clause draws `clause_size` distinct variables with random
      polarities; the formula may be unsatisfiable.

Example:
    # One bucket 5-15 with 500 items
    python ./generate_dataset/gen_cnf_buckets.py \
        --vars-min 5 --vars-max 15 --samples 500 --out-dir ./dataset/train_raw/
"""
import argparse
import random
from pathlib import Path
from typing import Dict, List

import numpy as np
from tqdm import trange


LITERAL_MAKES_CLAUSE_TRUE_PROB = 0.5


def generate_random_assignment(num_vars: int) -> Dict[int, bool]:
    """
    Generate a random boolean assignment for variables 1..N.

    Args:
        num_vars: Number of variables.

    Returns:
        Mapping from variable to True/False.
    """
    values = np.random.choice([True, False], size=num_vars)
    return {i + 1: bool(values[i]) for i in range(num_vars)}


def generate_sat_clause_from_assignment(
        assignment: Dict[int, bool],
        num_literals: int
) -> List[int]:
    """
    Create one clause that is satisfied by the given assignment.

    Args:
        assignment: Variable -> truth value.
        num_literals: Number of literals in the clause.

    Returns:
        List of DIMACS literals like [1, -3, 7].
    """
    selected_vars = random.sample(list(assignment.keys()), k=num_literals)
    clause = []
    clause_is_true = False

    for i, v in enumerate(selected_vars):
        make_true = (random.random() < LITERAL_MAKES_CLAUSE_TRUE_PROB)
        is_last = (i == num_literals - 1)
        if make_true or (is_last and not clause_is_true):
            clause.append(v if assignment[v] else -v)
            clause_is_true = True
        else:
            clause.append(-v if assignment[v] else v)

    return clause


def adjust_clauses_to_include_unused_vars(
        clauses: List[List[int]],
        assignment: Dict[int, bool],
        unused_vars: List[int],
        clause_size: int
) -> None:
    """
    Ensure every variable appears at least once by patching clauses in place.

    A literal is only dropped from a clause whose variables all occur
    elsewhere, and the literal added instead is true under the assignment,
    so the patched clause stays satisfied.
    """
    used_var_count = {}
    for clause in clauses:
        for lit in clause:
            used_var_count[abs(lit)] = used_var_count.get(abs(lit), 0) + 1

    for v in unused_vars:
        valid_clause_indices = [
            idx for idx, clause in enumerate(clauses)
            if all(used_var_count[abs(lit)] > 1 for lit in clause)
        ]
        if not valid_clause_indices:
            raise RuntimeError("No clause found to safely replace a variable with an unused variable.")

        chosen_clause = clauses[random.choice(valid_clause_indices)]
        drop_idx = random.randrange(clause_size)
        dropped_lit = chosen_clause.pop(drop_idx)
        used_var_count[abs(dropped_lit)] -= 1

        chosen_clause.append(v if assignment[v] else -v)
        used_var_count[v] = used_var_count.get(v, 0) + 1


def generate_sat_problem(
        num_vars: int,
        num_clauses: int,
        clause_size: int
) -> List[List[int]]:
    """
    Generate a satisfiable CNF with the requested size.

    Args:
        num_vars: Number of variables.
        num_clauses: Number of clauses.
        clause_size: Literals per clause (e.g., 3 for 3-SAT).

    Returns:
        List of clauses of DIMACS literals.
    """
    assignment = generate_random_assignment(num_vars)
    clauses = [
        generate_sat_clause_from_assignment(assignment, clause_size)
        for _ in range(num_clauses)
    ]

    used_vars = set(abs(lit) for clause in clauses for lit in clause)
    unused_vars = sorted(set(assignment.keys()) - used_vars)

    if unused_vars:
        adjust_clauses_to_include_unused_vars(
            clauses,
            assignment,
            unused_vars,
            clause_size
        )

    return clauses


def generate_uniform_problem(
        num_vars: int,
        num_clauses: int,
        clause_size: int
) -> List[List[int]]:
    """
    Generate a uniform random k-CNF; satisfiability is not guaranteed.

    Raises:
        ValueError: If `clause_size` exceeds `num_vars`.
    """
    if clause_size > num_vars:
        raise ValueError(f"clause size {clause_size} > number of variables {num_vars}")
    clauses = []
    for _ in range(num_clauses):
        selected_vars = random.sample(range(1, num_vars + 1), k=clause_size)
        signs = np.random.choice([1, -1], size=clause_size)
        clauses.append([int(s) * v for s, v in zip(signs, selected_vars)])
    return clauses


def to_dimacs_like_format(clauses: List[List[int]]) -> str:
    """
    Convert clauses like [[1, -3]] to '1 -3 0' form in a single line.
    """
    return " ".join(" ".join(str(lit) for lit in clause) + " 0" for clause in clauses)


def write_bucket(
        vars_min: int,
        vars_max: int,
        samples: int,
        ratio_min: float,
        ratio_max: float,
        clause_size: int,
        out_dir: Path,
        mode: str = "planted",
) -> Path:
    """
    Write a bucket of random CNFs to a text file (one CNF per line).

    Args:
        vars_min: Inclusive lower bound on #vars.
        vars_max: Inclusive upper bound on #vars.
        samples: Number of CNFs to generate.
        ratio_min: Min clause/var ratio.
        ratio_max: Max clause/var ratio.
        clause_size: Literals per clause.
        out_dir: Output folder for the bucket file.
        mode: "planted" or "uniform".

    Returns:
        Path of the written bucket.
    """
    generators = {"planted": generate_sat_problem, "uniform": generate_uniform_problem}
    if mode not in generators:
        raise ValueError(f"Unknown mode '{mode}'")
    generate = generators[mode]

    out_dir.mkdir(parents=True, exist_ok=True)
    fname = out_dir / f"{'sat' if mode == 'planted' else 'rand'}_{vars_min}_{vars_max}.txt"
    with fname.open("w") as fh:
        desc = f"[{fname.name}] {samples:,} formulas"
        for _ in trange(samples, desc=desc):
            n_vars = random.randint(vars_min, vars_max)
            ratio = random.uniform(ratio_min, ratio_max)
            n_clauses = max(1, int(round(ratio * n_vars)))

            clauses = generate(n_vars, n_clauses, clause_size)
            fh.write(to_dimacs_like_format(clauses) + "\n")
    return fname


def parse_args() -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Generate bucketed k-SAT dataset")

    ap.add_argument("--vars-min", type=int, required=True)
    ap.add_argument("--vars-max", type=int, required=True)
    ap.add_argument("--samples", type=int, required=True)
    ap.add_argument("--ratio-min", type=float, default=4.1)
    ap.add_argument("--ratio-max", type=float, default=4.4)
    ap.add_argument("--clause-size", type=int, default=3)
    ap.add_argument("--mode", choices=("planted", "uniform"), default="planted")
    ap.add_argument("--seed", type=int, default=42)
    ap.add_argument("--out-dir", type=Path, required=True)
    return ap.parse_args()


def main() -> None:
    args = parse_args()

    random.seed(args.seed)
    np.random.seed(args.seed)

    write_bucket(
        vars_min=args.vars_min,
        vars_max=args.vars_max,
        samples=args.samples,
        ratio_min=args.ratio_min,
        ratio_max=args.ratio_max,
        clause_size=args.clause_size,
        out_dir=args.out_dir,
        mode=args.mode,
    )


if __name__ == "__main__":
    main()
