from __future__ import annotations


class QBNError(ValueError):
    """Base class for deck, predicate and range failures.

    Subclasses ValueError so the HTTP layer maps every one of them to a 422.
    """


class UnknownFragment(QBNError):
    def __init__(self, title: object) -> None:
        super().__init__(f"No such passage {_quote(title)}.")
        self.title = title


class InvalidRangeName(QBNError):
    pass


class InvalidRangeSpec(QBNError):
    pass


class UnknownWidget(QBNError):
    def __init__(self, name: str) -> None:
        super().__init__(f"No such widget {_quote(name)}.")
        self.name = name


class UnknownSeparator(QBNError):
    def __init__(self, name: str) -> None:
        super().__init__(f"No such separator widget {_quote(name)}.")
        self.name = name


class HandBindingFailure(QBNError):
    def __init__(self, name: object, reason: str | None = None) -> None:
        msg = f"failed to set hand {_quote(name)}"
        super().__init__(f"{msg}: {reason}." if reason else f"{msg}.")
        self.name = name


def _quote(value: object) -> str:
    if isinstance(value, str):
        return f'"{value}"'
    return repr(value)
