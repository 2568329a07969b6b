"""
This file includes some help functions for DPLL search traces.

A trace is the list of `(kind, literal, level)` events recorded by
`DPLLSolver` when `record_trace` is set:
  * D  - decision,
  * BT - complement of a decision, tried after its first branch failed,
  * A  - literal implied by a clause,
  * P  - pure literal.
"""
import re

from typing import List


def convert_trace_to_str(events) -> str:
    """
    Converts a list of tuples like:
        [('A', 3, 0), ('D', 1, 1), ('P', -4, 1), ('BT', -1, 1), ('A', 2, 1)]
    into a string like:
        "A 3 D 1 L 1 P -4 BT -1 L 1 A 2"

    Rules:
    - If etype in ('D', 'BT'): output "<etype> <val> L <lvl>"
    - If etype in ('A', 'P'): output "<etype> <val>"
    """
    out_tokens = []
    for etype, val, lvl in events:
        if etype in ("D", "BT"):
            out_tokens.extend([etype, str(val), "L", str(lvl)])
        elif etype in ("A", "P"):
            out_tokens.extend([etype, str(val)])
        else:
            raise ValueError(f"Unknown trace event '{etype}'")

    return " ".join(out_tokens)


def simplify_trace(trace_str: str) -> str:
    """
    Unify 'BT' -> 'D', remove 'L x',
    keep the literal after 'A'/'P' but remove the token itself.

    For example:
      "D -1 L 1 BT 1 L 1 A 9 P 10" -> "D -1 D 1 9 10"
    """
    tokens = trace_str.split()
    new_tokens = []
    i = 0

    while i < len(tokens):
        t = tokens[i]

        if t == "BT":
            new_tokens.append("D")
            i += 1
        elif t == "L":
            i += 2
        elif t in ("A", "P"):
            i += 1
            if i < len(tokens):
                new_tokens.append(tokens[i])
            i += 1
        else:
            new_tokens.append(t)
            i += 1

    return " ".join(new_tokens)


def extract_numbers_in_order(trace_string: str) -> List[int]:
    """
    Extracts the decision literals (D and BT) in order of the trace.

    Args:
        trace_string: A string of traces.

    Returns:
        A list of integers.
    """
    pattern = r'(?:D|BT)\s+(-?\d+)'
    matches = re.findall(pattern, trace_string)
    return [int(m) for m in matches]
