# src/pipeshell/model.py (Shell Layer)
import shlex
from typing import List, Optional, Set

from pydantic import BaseModel, ConfigDict, Field, model_validator

# Reserved descriptor name marking a variable assignment instead of an invocation.
ASSIGNMENT_COMMAND = "$"
EXIT_COMMAND = "exit"


class CommandDescription(BaseModel):
    """
    One parsed pipeline stage, or one variable assignment.

    For invocations `arguments[0]` is the command name; for assignments the
    arguments are exactly `[key, value]`. The quoting sets hold argument
    indices whose token was entirely enclosed in single or double quotes.
    """
    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Command identifier, or ASSIGNMENT_COMMAND.")
    arguments: List[str] = Field(default_factory=list)
    file_in_path: Optional[str] = Field(default=None, description="Path given with '<'.")
    file_out_path: Optional[str] = Field(default=None, description="Path given with '>' or '>>'.")
    append_out: bool = Field(default=False, description="True when the output redirect was '>>'.")
    is_piped: bool = Field(default=False, description="Output feeds the next stage of the pipeline.")
    single_quoted: Set[int] = Field(default_factory=set)
    double_quoted: Set[int] = Field(default_factory=set)
    in_path_literal: bool = Field(default=False, description="Input path token was fully single-quoted.")
    out_path_literal: bool = Field(default=False, description="Output path token was fully single-quoted.")

    @model_validator(mode="after")
    def _check_invariants(self) -> "CommandDescription":
        if self.is_assignment:
            if len(self.arguments) != 2:
                raise ValueError("an assignment carries exactly a key and a value")
            if self.is_piped:
                raise ValueError("an assignment cannot be a pipeline stage")
        else:
            if not self.arguments:
                raise ValueError("an invocation needs at least its command name")
            if self.arguments[0] != self.name:
                raise ValueError("arguments[0] must equal the command name")

        count = len(self.arguments)
        for index in self.single_quoted | self.double_quoted:
            if not 0 <= index < count:
                raise ValueError(f"quoting index {index} is out of range")
        if self.single_quoted & self.double_quoted:
            raise ValueError("an argument cannot be both single- and double-quoted")
        return self

    @property
    def is_assignment(self) -> bool:
        return self.name == ASSIGNMENT_COMMAND

    def with_arguments(self, arguments: List[str]) -> "CommandDescription":
        """
        Returns a validated copy carrying rewritten (e.g. substituted) arguments.
        The name of an invocation follows its new first argument.
        """
        data = self.model_dump()
        data["arguments"] = list(arguments)
        if not self.is_assignment and arguments:
            data["name"] = arguments[0]
        return CommandDescription.model_validate(data)

    def to_command_line(self) -> str:
        """Serializes the stage back into a line that parses to an equivalent descriptor."""
        if self.is_assignment:
            key, value = self.arguments
            return f"{key}={shlex.quote(value)}"

        parts = [shlex.quote(arg) for arg in self.arguments]
        if self.file_in_path is not None:
            parts += ["<", shlex.quote(self.file_in_path)]
        if self.file_out_path is not None:
            parts += [">>" if self.append_out else ">", shlex.quote(self.file_out_path)]
        return " ".join(parts)
