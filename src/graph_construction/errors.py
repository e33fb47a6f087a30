"""
Data integrity errors.

These abort a whole graph build. Routine filtering outcomes (untracked ids,
self transfers, dust, excluded category pairs) are not errors and never raise.
"""


class DataIntegrityError(ValueError):
    """Input account data is inconsistent and no graph can be built from it."""


class AliasCollisionError(DataIntegrityError):
    """An account id is claimed by two different main accounts."""

    def __init__(self, account_id: str, first_main: str, second_main: str):
        self.account_id = account_id
        self.first_main = first_main
        self.second_main = second_main
        super().__init__(
            f"Account '{account_id}' is claimed by both '{first_main}' and '{second_main}'"
        )


class UnknownCategoryError(DataIntegrityError):
    """A category value outside the known enumeration."""

    def __init__(self, value):
        self.value = value
        super().__init__(f"Unknown account category: {value!r}")
