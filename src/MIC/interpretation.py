"""
Boundary towards clinical interpretation (S/I/R) of MIC values.

No breakpoint tables ship with this package; callers plug in their own
`MICInterpreter`.
"""

import abc
import typing

from .dtype import MIC


class MICInterpreter(metaclass=abc.ABCMeta):
    @abc.abstractmethod
    def interpret(self, mic: MIC, organism: str, agent: str, guideline: typing.Optional[str] = None) -> str:
        """Return the interpretation category (e.g. "S", "I" or "R") of one MIC value."""
        raise NotImplementedError


def interpret_mic(
    interpreter: MICInterpreter,
    value: typing.Any,
    organism: str,
    agent: str,
    guideline: typing.Optional[str] = None,
) -> str:
    """
    Validate `value` and hand it to `interpreter`.
    Raises ValueError when `value` is not a valid MIC.
    """
    mic = value if isinstance(value, MIC) else MIC(value)
    return interpreter.interpret(mic, organism, agent, guideline)
