# *************************************************************************
# SPDX-License-Identifier: Apache-2.0
# Licensed under the Apache License, Version 2.0.
# See the LICENSE file in the project root for the full license text.
# *************************************************************************
"""
Errors raised while building formulas and running the DPLL search.
"""


class InvalidLiteral(ValueError):
    """A literal with magnitude zero was supplied."""

    def __init__(self, number: int):
        super().__init__(f"DIMACS literal cannot be {number}")
        self.number = number


class EmptyClause(ValueError):
    """A clause was created without literals."""

    def __init__(self):
        super().__init__("clause must contain at least one literal")


class AlreadyAssigned(AssertionError):
    """
    A variable was assigned the opposite of the value it already holds.

    Only a faulty propagation could trigger this, so it derives from
    AssertionError rather than being part of the public contract.
    """

    def __init__(self, var_index: int, value: bool):
        super().__init__(f"variable {var_index + 1} is already assigned {not value}")
        self.var_index = var_index
        self.value = value
