"""
This file includes some general help functions.
"""
import os

from typing import List
from pysat.formula import CNF

from py_dpll.dpll import Formula, build


def get_cnf_files(folder_path: str) -> List[str]:
    """Returns a sorted list of .cnf and .cnf.gz files in the specified folder."""
    return sorted(
        os.path.join(folder_path, f)
        for f in os.listdir(folder_path)
        if f.endswith('.cnf') or f.endswith('.cnf.gz')
    )


def read_sat_problems_lines(filename: str) -> List[str]:
    """
    Reads SAT problems from a file, each line is a problem in CNF format, e.g., "4 5 -1 0 5 1 -2 0".

    Args:
        filename (str): Path to the file containing SAT problems.

    Returns:
        list: A list of SAT problems, one per line.
    """
    with open(filename, 'r') as file:
        problems = file.readlines()
    return [line.strip() for line in problems if line.strip()]


def write_temp_cnf_file(cnf_formula: CNF, filename: str = './temp_problem.cnf') -> None:
    cnf_formula.to_file(filename)


def cnf_line_2_CNF_class(problem_line: str) -> CNF:
    """
    Parses a problem string into a CNF object.

    Args:
        problem_line (str): The problem string where clauses are divided by '0'.

    Returns:
        CNF object representing the SAT problem.
    """
    cnf = CNF()
    tokens = problem_line.strip().split()
    clause = []
    for token in tokens:
        if token == '0':
            if clause:
                cnf.append(clause)
                clause = []
        else:
            literal = int(token)
            clause.append(literal)

    if clause:
        cnf.append(clause)
    return cnf


def formula_from_cnf(cnf: CNF) -> Formula:
    """
    Translate a pysat CNF into a solver formula.

    Raises:
        InvalidLiteral: If a clause holds a zero literal.
    """
    return build(cnf.clauses)
