from typing import Optional


class CompileError(ValueError):
    """Base class for every fatal DotWeb compilation error."""

    kind = 'compile-error'

    def __init__(self, message: str, line: Optional[str] = None):
        self.message = message
        self.line = line
        super().__init__(self._format())

    def _format(self) -> str:
        if self.line:
            return f"DotWeb Compile Error ({self.line}): {self.message}"
        return f"DotWeb Compile Error: {self.message}"


class InvalidPropSyntaxError(CompileError):
    kind = 'invalid-prop-syntax'


class BlockOnNonComponentPropError(CompileError):
    kind = 'block-on-non-component-prop'


class MissingBlockError(CompileError):
    kind = 'missing-block-for-component-prop'


class MissingPropValueError(CompileError):
    kind = 'missing-value-for-prop'


class InvalidBooleanError(CompileError):
    kind = 'invalid-boolean-literal'


class InvalidNumberError(CompileError):
    kind = 'invalid-number-literal'


class InvalidDefinitionError(CompileError):
    kind = 'invalid-component-definition'


class RecursiveComponentError(CompileError):
    kind = 'recursive-component'


class ExpressionError(CompileError):
    """Raised by the evaluator when an expression cannot be evaluated."""

    kind = 'expression-evaluation-failure'


class ConfigError(Exception):
    """Raised when a build/watch configuration file is unusable."""
