from __future__ import annotations

import re

from featurerun.schemas import Step

_KEYWORD_DECORATORS = {"given": "given", "when": "when", "then": "then"}
_NUMBER_PATTERN = re.compile(r"(?<![\w.])-?\d+(?:\.\d+)?(?![\w.])")
_QUOTED_PATTERN = re.compile(r'"[^"]*"')


class PythonSnippetBuilder:
    """Suggest a step function for an undefined step.

    Quoted strings become ``{string}`` parameters and bare numbers become
    ``{number}`` parameters. "And"/"But" steps fall back to ``step``.
    """

    def __init__(self, *, function_name: str = "step_impl") -> None:
        if not function_name.isidentifier():
            raise ValueError(f"function_name is not a valid identifier: {function_name!r}")
        self.function_name = function_name

    def build(self, step: Step) -> str:
        decorator = _KEYWORD_DECORATORS.get(step.keyword.strip().lower(), "step")
        expression, parameter_count = self._expression(step.name or "")
        parameters = ["context", *(f"arg{index}" for index in range(1, parameter_count + 1))]
        return "\n".join(
            [
                f"@{decorator}({expression!r})",
                f"def {self.function_name}({', '.join(parameters)}):",
                "    raise NotImplementedError",
            ]
        )

    @staticmethod
    def _expression(name: str) -> tuple[str, int]:
        expression, quoted = _QUOTED_PATTERN.subn("{string}", name)
        expression, numbers = _NUMBER_PATTERN.subn("{number}", expression)
        return expression, quoted + numbers
